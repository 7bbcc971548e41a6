"""Convention-based field mapper between view models and entities.

Maps are declared once at startup and reused::

    mapper = FieldMapper().create_map(ProjectType, ProjectTypeViewModel)

Fields are matched by name; fields present on only one side are ignored.
Each copied value is validated against the target field's annotation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from recordkit.core.exceptions import FieldMappingError, MappingNotConfiguredError
from recordkit.core.logging import get_logger
from recordkit.core.metadata import resolve_entity_type

TargetT = TypeVar("TargetT", bound=BaseModel)

logger = get_logger(__name__)


@dataclass(frozen=True)
class TypeMap:
    """Fields copied from ``source`` to ``target``."""

    source: type[BaseModel]
    target: type[BaseModel]
    fields: tuple[str, ...]


class FieldMapper:
    """Bidirectional copier configured with explicit type maps."""

    def __init__(self) -> None:
        self._maps: dict[tuple[type, type], TypeMap] = {}
        self._adapters: dict[tuple[type, str], TypeAdapter] = {}

    @classmethod
    def for_view_models(cls, *view_model_types: type[BaseModel]) -> FieldMapper:
        """Create a mapper with a two-way map for each view model and its entity."""
        mapper = cls()
        for view_model_type in view_model_types:
            mapper.create_map(resolve_entity_type(view_model_type), view_model_type)
        return mapper

    def create_map(
        self,
        source: type[BaseModel],
        target: type[BaseModel],
        reverse: bool = True,
    ) -> FieldMapper:
        """Register a map from ``source`` to ``target`` (and back unless ``reverse`` is false)."""
        self._register(source, target)
        if reverse:
            self._register(target, source)
        return self

    def _register(self, source: type[BaseModel], target: type[BaseModel]) -> None:
        shared = tuple(name for name in source.model_fields if name in target.model_fields)
        self._maps[(source, target)] = TypeMap(source, target, shared)
        logger.debug("Registered map {} -> {} ({} fields)", source.__name__, target.__name__, len(shared))

    def has_map(self, source: type, target: type) -> bool:
        return (source, target) in self._maps

    def get_map(self, source: type, target: type) -> TypeMap:
        try:
            return self._maps[(source, target)]
        except KeyError:
            raise MappingNotConfiguredError(source, target) from None

    def _adapter(self, target: type[BaseModel], name: str) -> TypeAdapter:
        key = (target, name)
        adapter = self._adapters.get(key)
        if adapter is None:
            adapter = TypeAdapter(target.model_fields[name].annotation)
            self._adapters[key] = adapter
        return adapter

    def _values(self, source: BaseModel, type_map: TypeMap) -> dict[str, Any]:
        return {name: getattr(source, name) for name in type_map.fields}

    def map(self, source: BaseModel, target_type: type[TargetT]) -> TargetT:
        """Construct a new ``target_type`` instance from ``source``."""
        type_map = self.get_map(type(source), target_type)
        try:
            return target_type(**self._values(source, type_map))
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "<model>"
            raise FieldMappingError(field, target_type, error["msg"]) from e

    def map_onto(self, source: BaseModel, target: TargetT) -> TargetT:
        """Copy matching fields of ``source`` onto the existing ``target``.

        Target fields without a counterpart on ``source`` keep their values.
        """
        target_type = type(target)
        type_map = self.get_map(type(source), target_type)
        validated: dict[str, Any] = {}
        for name, value in self._values(source, type_map).items():
            try:
                validated[name] = self._adapter(target_type, name).validate_python(value)
            except ValidationError as e:
                raise FieldMappingError(name, target_type, e.errors()[0]["msg"]) from e
        for name, value in validated.items():
            setattr(target, name, value)
        return target

    def to_entity(self, view_model: BaseModel, entity_type: type[TargetT] | None = None) -> TargetT:
        return self.map(view_model, entity_type or resolve_entity_type(view_model))

    def apply_to_entity(self, view_model: BaseModel, entity: TargetT) -> TargetT:
        return self.map_onto(view_model, entity)

    def to_view_model(self, entity: BaseModel, view_model_type: type[TargetT]) -> TargetT:
        return self.map(entity, view_model_type)

    def to_view_models(self, entities: Iterable[BaseModel], view_model_type: type[TargetT]) -> list[TargetT]:
        return [self.map(entity, view_model_type) for entity in entities]
