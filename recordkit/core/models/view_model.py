"""Caller-facing record model."""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel

from recordkit.core.metadata import reset_primary_key, resolve_entity_type, resolve_primary_key


class ViewModel(BaseModel):
    """Base class for view models.

    Subclasses set ``__entity__`` to their backing entity class and mark one
    field with ``Annotated[..., PrimaryKey()]``.
    """

    __entity__: ClassVar[type[BaseModel] | None] = None

    @classmethod
    def entity_type(cls) -> type[BaseModel]:
        return resolve_entity_type(cls)

    @classmethod
    def primary_key_field(cls) -> str:
        return resolve_primary_key(cls)

    def primary_key_value(self) -> Any:
        return getattr(self, self.primary_key_field())

    def reset_primary_key(self) -> None:
        """Reset the primary key to its declared default (insert-as-new)."""
        reset_primary_key(self)
