"""Storage-side record model."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from pydantic import BaseModel

from recordkit.core.exceptions import ConfigurationError

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class Entity(BaseModel):
    """Base class for records persisted by a store.

    ``__primary_key__`` names the key field; ``__tablename__`` overrides the
    snake_case table name derived from the class name.
    """

    __primary_key__: ClassVar[str] = "id"
    __tablename__: ClassVar[str | None] = None

    @classmethod
    def table_name(cls) -> str:
        return cls.__tablename__ or _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()

    @classmethod
    def key_field(cls) -> str:
        key = cls.__primary_key__
        if key not in cls.model_fields:
            raise ConfigurationError(
                f"Entity {cls.__name__} declares primary key '{key}' but has no such field.",
                details={"entity": cls.__name__, "key_field": key},
            )
        return key

    def key_value(self) -> Any:
        return getattr(self, self.key_field())


def entity_key_field(entity_type: type[BaseModel]) -> str:
    """Key field of any pydantic entity type, defaulting to ``id``."""
    if issubclass(entity_type, Entity):
        return entity_type.key_field()
    key = getattr(entity_type, "__primary_key__", "id")
    if key not in entity_type.model_fields:
        raise ConfigurationError(
            f"Entity {entity_type.__name__} has no primary key field '{key}'.",
            details={"entity": entity_type.__name__, "key_field": key},
        )
    return key


def entity_table_name(entity_type: type[BaseModel]) -> str:
    if issubclass(entity_type, Entity):
        return entity_type.table_name()
    return getattr(entity_type, "__tablename__", None) or _CAMEL_BOUNDARY.sub("_", entity_type.__name__).lower()
