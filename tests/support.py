"""Record types, stores and helpers shared by the tests."""

from __future__ import annotations

from typing import Annotated

from recordkit.core.exceptions import StorageError
from recordkit.core.models import Entity, PrimaryKey, ViewModel
from recordkit.core.storage import ChangeSet, InMemoryScope, InMemoryStore
from recordkit.samples import ProjectType


class Widget(Entity):
    """Entity keyed by a string code."""

    __primary_key__ = "code"

    code: str = ""
    label: str | None = None
    weight: float = 0.0


class WidgetViewModel(ViewModel):
    __entity__ = Widget

    code: Annotated[str, PrimaryKey()] = ""
    label: str | None = None
    weight: float = 0.0


class OrphanViewModel(ViewModel):
    """View model without a backing entity."""

    id: Annotated[int, PrimaryKey()] = 0
    name: str | None = None


class KeylessViewModel(ViewModel):
    """View model without a primary key marker."""

    __entity__ = ProjectType

    id: int = 0
    type_name_en: str | None = None


class ExtendedProjectTypeViewModel(ViewModel):
    """View model carrying a field the entity does not have."""

    __entity__ = ProjectType

    id: Annotated[int, PrimaryKey()] = 0
    type_name_en: str | None = None
    is_active: bool = True
    priority: int = 0


class FaultInjectingScope(InMemoryScope):
    """Scope whose commits fail while the store has faults left."""

    store: FaultInjectingStore

    async def _apply(self, changes: ChangeSet) -> None:
        self.store.commit_calls += 1
        if self.store.should_fail(changes):
            raise StorageError("Injected commit failure")
        await super()._apply(changes)


class FaultInjectingStore(InMemoryStore):
    """In-memory store failing the next ``commit_failures`` commits.

    ``fail_when`` restricts injected failures to change sets it accepts;
    ``query_failures`` makes reads fail.
    """

    scope_class = FaultInjectingScope

    def __init__(self, commit_failures: int = 0, query_failures: int = 0, fail_when=None) -> None:
        super().__init__()
        self.commit_failures = commit_failures
        self.query_failures = query_failures
        self.fail_when = fail_when
        self.commit_calls = 0
        self.query_calls = 0

    def should_fail(self, changes: ChangeSet) -> bool:
        if self.fail_when is not None:
            return bool(self.fail_when(changes))
        if self.commit_failures > 0:
            self.commit_failures -= 1
            return True
        return False

    def snapshot(self, entity_type):
        self.query_calls += 1
        if self.query_failures > 0:
            self.query_failures -= 1
            raise ConnectionError("Injected connection failure")
        return super().snapshot(entity_type)


async def seed(store, *entities):
    """Commit ``entities`` through one scope and return them with their keys."""
    async with store.open_scope() as scope:
        for entity in entities:
            scope.get_collection(type(entity)).add(entity)
        await scope.commit()
    return list(entities)
