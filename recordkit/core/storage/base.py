"""Store contract consumed by the CRUD engine.

A store hands out scoped connections; a scope exposes one queryable
collection per entity type and applies staged changes on ``commit``.
Leaving a scope without committing discards its changes::

    async with store.open_scope() as scope:
        collection = scope.get_collection(ProjectType)
        collection.add(ProjectType(type_name_en="New"))
        await scope.commit()
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from recordkit.core.predicates import Predicate

EntityT = TypeVar("EntityT", bound=BaseModel)


class QueryableCollection(ABC, Generic[EntityT]):
    """Entities of one type, as seen from a scope."""

    def __init__(
        self,
        scope: TrackingScope,
        entity_type: type[EntityT],
        predicates: tuple[Predicate, ...] = (),
    ) -> None:
        self.scope = scope
        self.entity_type = entity_type
        self.predicates = predicates

    def _check_target(self, predicate: Predicate) -> None:
        if predicate.record_type is not self.entity_type:
            raise ValueError(
                f"Predicate over {predicate.record_type.__name__} cannot filter {self.entity_type.__name__}"
            )

    def filter(self, predicate: Predicate) -> QueryableCollection[EntityT]:
        """Return a collection narrowed by ``predicate``."""
        self._check_target(predicate)
        return type(self)(self.scope, self.entity_type, (*self.predicates, predicate))

    def _with(self, predicate: Predicate | None) -> tuple[Predicate, ...]:
        if predicate is None:
            return self.predicates
        self._check_target(predicate)
        return (*self.predicates, predicate)

    async def first_matching(self, predicate: Predicate | None = None) -> EntityT | None:
        """First entity matching the collection filters and ``predicate``, or None."""
        entities = await self._fetch(self._with(predicate), limit=1)
        return entities[0] if entities else None

    async def to_list(self) -> list[EntityT]:
        return await self._fetch(self.predicates)

    async def _fetch(self, predicates: tuple[Predicate, ...], limit: int | None = None) -> list[EntityT]:
        entities = await self._query(predicates, limit)
        for entity in entities:
            self.scope.track(entity)
        return entities

    @abstractmethod
    async def _query(self, predicates: tuple[Predicate, ...], limit: int | None) -> list[EntityT]:
        """Load matching entities as fresh instances."""

    def add(self, entity: EntityT) -> None:
        """Stage ``entity`` for insertion on commit."""
        self._check_instance(entity)
        self.scope.stage_add(entity)

    def remove(self, entity: EntityT) -> None:
        """Stage ``entity`` for deletion on commit."""
        self._check_instance(entity)
        self.scope.stage_remove(entity)

    def _check_instance(self, entity: Any) -> None:
        if not isinstance(entity, self.entity_type):
            raise TypeError(f"Expected {self.entity_type.__name__}, got {type(entity).__name__}")


@dataclass
class ChangeSet:
    """Changes staged in a scope, in commit order."""

    added: list[BaseModel] = field(default_factory=list)
    modified: list[BaseModel] = field(default_factory=list)
    removed: list[BaseModel] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.added or self.modified or self.removed)


class ScopedConnection(ABC):
    """A unit of work against a store."""

    @abstractmethod
    def get_collection(self, entity_type: type[EntityT]) -> QueryableCollection[EntityT]: ...

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...

    async def close(self) -> None:
        """Release resources held by the scope."""

    async def __aenter__(self) -> ScopedConnection:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            await self.rollback()
        finally:
            await self.close()


class TrackingScope(ScopedConnection):
    """Scope that stages adds and removes and detects edits to fetched entities."""

    def __init__(self) -> None:
        self._added: list[BaseModel] = []
        self._removed: list[BaseModel] = []
        self._tracked: list[tuple[BaseModel, dict[str, Any]]] = []

    def track(self, entity: BaseModel) -> None:
        self._tracked.append((entity, entity.model_dump()))

    def stage_add(self, entity: BaseModel) -> None:
        if not any(added is entity for added in self._added):
            self._added.append(entity)

    def stage_remove(self, entity: BaseModel) -> None:
        if any(added is entity for added in self._added):
            self._added = [added for added in self._added if added is not entity]
        elif not any(removed is entity for removed in self._removed):
            self._removed.append(entity)

    def pending_changes(self) -> ChangeSet:
        modified = [
            entity
            for entity, snapshot in self._tracked
            if not any(removed is entity for removed in self._removed) and entity.model_dump() != snapshot
        ]
        return ChangeSet(added=list(self._added), modified=modified, removed=list(self._removed))

    def _reset(self) -> None:
        self._added = []
        self._removed = []
        self._tracked = [(entity, entity.model_dump()) for entity, _ in self._tracked]

    async def commit(self) -> None:
        changes = self.pending_changes()
        await self._apply(changes)
        self._reset()

    async def rollback(self) -> None:
        self._added = []
        self._removed = []
        self._tracked = []

    @abstractmethod
    async def _apply(self, changes: ChangeSet) -> None:
        """Persist ``changes`` atomically; added entities receive their store-assigned keys."""


class Store(ABC):
    """Factory of scoped connections."""

    @abstractmethod
    def open_scope(self) -> ScopedConnection: ...


def is_unset_key(value: Any) -> bool:
    """Whether a key value asks the store to assign one (None, 0 or "")."""
    return value is None or (type(value) in (int, str) and not value)
