"""Dict-backed transactional store."""

from __future__ import annotations

import threading
import uuid
from typing import Any, TypeVar

from pydantic import BaseModel

from recordkit.core.exceptions import ConcurrencyConflictError, DuplicateKeyError
from recordkit.core.logging import get_logger
from recordkit.core.models.entity import entity_key_field, entity_table_name
from recordkit.core.predicates import Predicate, filter_records
from recordkit.core.storage.base import ChangeSet, QueryableCollection, Store, TrackingScope, is_unset_key

EntityT = TypeVar("EntityT", bound=BaseModel)

logger = get_logger(__name__)


class InMemoryCollection(QueryableCollection[EntityT]):
    scope: InMemoryScope

    async def _query(self, predicates: tuple[Predicate, ...], limit: int | None) -> list[EntityT]:
        entities = self.scope.store.snapshot(self.entity_type)
        for predicate in predicates:
            entities = filter_records(predicate, entities)
        return entities if limit is None else entities[:limit]


class InMemoryScope(TrackingScope):
    """Unit of work over an :class:`InMemoryStore`."""

    collection_class: type[InMemoryCollection] = InMemoryCollection

    def __init__(self, store: InMemoryStore) -> None:
        super().__init__()
        self.store = store

    def get_collection(self, entity_type: type[EntityT]) -> InMemoryCollection[EntityT]:
        return self.collection_class(self, entity_type)

    async def _apply(self, changes: ChangeSet) -> None:
        if changes:
            self.store.apply(changes)


class InMemoryStore(Store):
    """Process-local store keeping deep copies of committed entities.

    Commits are all-or-nothing: every change is validated against a copy of
    the affected tables before the copies replace the originals.
    """

    scope_class: type[InMemoryScope] = InMemoryScope

    def __init__(self) -> None:
        self._tables: dict[type[BaseModel], dict[Any, BaseModel]] = {}
        self._sequences: dict[type[BaseModel], int] = {}
        self._lock = threading.Lock()

    def open_scope(self) -> InMemoryScope:
        return self.scope_class(self)

    def snapshot(self, entity_type: type[EntityT]) -> list[EntityT]:
        """Copies of the committed entities of ``entity_type``, in insertion order."""
        with self._lock:
            rows = list(self._tables.get(entity_type, {}).values())
        return [row.model_copy(deep=True) for row in rows]  # type: ignore[misc]

    def count(self, entity_type: type[BaseModel]) -> int:
        with self._lock:
            return len(self._tables.get(entity_type, {}))

    def clear(self) -> None:
        with self._lock:
            self._tables.clear()
            self._sequences.clear()

    def _next_key(self, entity_type: type[BaseModel], key_field: str, table: dict[Any, BaseModel]) -> Any:
        annotation = entity_type.model_fields[key_field].annotation
        if annotation is str:
            return uuid.uuid4().hex
        current = max((key for key in table if isinstance(key, int)), default=0)
        next_key = max(self._sequences.get(entity_type, 0), current) + 1
        self._sequences[entity_type] = next_key
        return next_key

    def apply(self, changes: ChangeSet) -> None:
        """Apply ``changes`` atomically.

        Raises:
            DuplicateKeyError: If an added entity's key is already taken
            ConcurrencyConflictError: If a modified or removed entity no longer exists
        """
        with self._lock:
            tables: dict[type[BaseModel], dict[Any, BaseModel]] = {}
            sequences = dict(self._sequences)

            def table_for(entity_type: type[BaseModel]) -> dict[Any, BaseModel]:
                if entity_type not in tables:
                    tables[entity_type] = dict(self._tables.get(entity_type, {}))
                return tables[entity_type]

            assigned: list[tuple[BaseModel, str, Any]] = []
            try:
                for entity in changes.removed:
                    entity_type = type(entity)
                    table = table_for(entity_type)
                    key = getattr(entity, entity_key_field(entity_type))
                    if key not in table:
                        raise ConcurrencyConflictError(entity_table_name(entity_type), key)
                    del table[key]

                for entity in changes.modified:
                    entity_type = type(entity)
                    table = table_for(entity_type)
                    key = getattr(entity, entity_key_field(entity_type))
                    if key not in table:
                        raise ConcurrencyConflictError(entity_table_name(entity_type), key)
                    table[key] = entity_type.model_validate(entity.model_dump())

                for entity in changes.added:
                    entity_type = type(entity)
                    table = table_for(entity_type)
                    key_field = entity_key_field(entity_type)
                    key = getattr(entity, key_field)
                    if is_unset_key(key):
                        key = self._next_key(entity_type, key_field, table)
                    if key in table:
                        raise DuplicateKeyError(entity_table_name(entity_type), key)
                    stored = entity_type.model_validate({**entity.model_dump(), key_field: key})
                    table[key] = stored
                    assigned.append((entity, key_field, key))
            except Exception:
                self._sequences = sequences
                raise

            self._tables.update(tables)

        for entity, key_field, key in assigned:
            setattr(entity, key_field, key)
        logger.debug(
            "Committed {} added, {} modified, {} removed",
            len(changes.added),
            len(changes.modified),
            len(changes.removed),
        )
