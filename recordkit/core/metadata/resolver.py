"""Type & key resolution for view models.

A view model declares its backing entity through the ``__entity__`` class
attribute and marks exactly one field with the :class:`PrimaryKey` marker::

    class ProjectTypeViewModel(ViewModel):
        __entity__ = ProjectType

        id: Annotated[int, PrimaryKey()] = 0
        type_name_en: str | None = None

Resolution is structural and deliberately not cached.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from pydantic_core import PydanticUndefined

from recordkit.core.exceptions import (
    AmbiguousPrimaryKeyError,
    EntityTypeNotDefinedError,
    PrimaryKeyNotFoundError,
)


class PrimaryKey:
    """``Annotated`` marker tagging a view model field as primary key."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "PrimaryKey()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PrimaryKey)

    def __hash__(self) -> int:
        return hash(PrimaryKey)


@dataclass(frozen=True)
class ViewModelMetadata:
    """Resolved metadata of a view model type."""

    view_model_type: type[BaseModel]
    entity_type: type[BaseModel]
    primary_key: str


def _as_type(view_model: type | Any) -> type:
    return view_model if inspect.isclass(view_model) else type(view_model)


def resolve_entity_type(view_model: type | Any) -> type[BaseModel]:
    """Return the entity type backing ``view_model``.

    Args:
        view_model: View model type or instance

    Raises:
        EntityTypeNotDefinedError: When no entity class is declared
    """
    view_model_type = _as_type(view_model)
    entity_type = getattr(view_model_type, "__entity__", None)
    if not inspect.isclass(entity_type) or not issubclass(entity_type, BaseModel):
        raise EntityTypeNotDefinedError(view_model_type)
    return entity_type


def resolve_primary_key(view_model: type | Any) -> str:
    """Return the name of the field marked as primary key.

    Args:
        view_model: View model type or instance

    Raises:
        PrimaryKeyNotFoundError: When no field is marked
        AmbiguousPrimaryKeyError: When several fields are marked
    """
    view_model_type = _as_type(view_model)
    fields = getattr(view_model_type, "model_fields", None)
    if not fields:
        raise PrimaryKeyNotFoundError(view_model_type)

    candidates = [
        name for name, info in fields.items() if any(isinstance(meta, PrimaryKey) for meta in info.metadata)
    ]
    if not candidates:
        raise PrimaryKeyNotFoundError(view_model_type)
    if len(candidates) > 1:
        raise AmbiguousPrimaryKeyError(view_model_type, candidates)
    return candidates[0]


def resolve(view_model: type | Any) -> ViewModelMetadata:
    """Resolve both the entity type and the primary key of ``view_model``."""
    view_model_type = _as_type(view_model)
    return ViewModelMetadata(
        view_model_type=view_model_type,
        entity_type=resolve_entity_type(view_model_type),
        primary_key=resolve_primary_key(view_model_type),
    )


_ZERO_VALUES: dict[Any, Any] = {int: 0, str: "", float: 0.0}


def reset_primary_key(record: BaseModel) -> str:
    """Reset the primary key of ``record`` to its declared default (insert-as-new).

    Fields without a default fall back to the zero value of their type.

    Returns:
        The name of the reset field
    """
    key = resolve_primary_key(record)
    info = type(record).model_fields[key]
    default = info.get_default(call_default_factory=True)
    if default is PydanticUndefined:
        default = _ZERO_VALUES.get(info.annotation)
    setattr(record, key, default)
    return key
