"""Tests for the CRUD engine."""

import asyncio

import pytest
from support import (
    ExtendedProjectTypeViewModel,
    FaultInjectingScope,
    FaultInjectingStore,
    KeylessViewModel,
    OrphanViewModel,
    seed,
)

from recordkit.core.exceptions import ErrorKind
from recordkit.core.predicates import where
from recordkit.core.storage import DuckDBStore
from recordkit.samples import ProjectType, ProjectTypeViewModel

ACTIVE = where(ProjectTypeViewModel, lambda vm: vm.is_active == True)  # noqa: E712


async def seed_project_types(store, *specs):
    """Seed ``(name, is_active)`` pairs as entities."""
    return await seed(store, *(ProjectType(type_name_en=name, is_active=active) for name, active in specs))


class TestAdd:
    """Adding records."""

    @pytest.mark.asyncio
    async def test_saves_records(self, engine, memory_store, project_types, registry):
        result = await engine.add(ProjectTypeViewModel, project_types)

        assert [e.type_name_en for e in result.saved_records] == ["Residential", "Commercial", "Industrial"]
        assert [e.id for e in result.saved_records] == [1, 2, 3]
        assert result.failed_records == []
        assert result.succeeded
        assert memory_store.count(ProjectType) == 3
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_resets_inbound_keys(self, engine, memory_store):
        await seed_project_types(memory_store, ("Existing", True))
        record = ProjectTypeViewModel(id=5, type_name_en="Forced key")

        result = await engine.add(ProjectTypeViewModel, [record])

        assert result.saved_records[0].id == 2
        assert record.id == 0
        assert [e.id for e in memory_store.snapshot(ProjectType)] == [1, 2]

    @pytest.mark.asyncio
    async def test_only_matching_records_sent(self, make_engine):
        store = FaultInjectingStore()
        engine = make_engine(store)
        records = [
            ProjectTypeViewModel(type_name_en="Active", is_active=True),
            ProjectTypeViewModel(type_name_en="Inactive", is_active=False),
        ]

        result = await engine.add(ProjectTypeViewModel, records, predicate=ACTIVE)

        assert [e.type_name_en for e in result.saved_records] == ["Active"]
        assert store.commit_calls == 1
        assert [e.type_name_en for e in store.snapshot(ProjectType)] == ["Active"]

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, make_engine, registry):
        store = FaultInjectingStore(commit_failures=1)
        engine = make_engine(store)
        record = ProjectTypeViewModel(type_name_en="Flaky")

        result = await engine.add(ProjectTypeViewModel, [record])

        assert len(result.saved_records) == 1
        assert result.failed_records == []
        assert len(registry) == 0
        assert store.commit_calls == 2

    @pytest.mark.asyncio
    async def test_permanent_failure_one_entry_per_record(self, make_engine, registry, project_types):
        store = FaultInjectingStore(commit_failures=100)
        engine = make_engine(store)

        result = await engine.add(ProjectTypeViewModel, project_types)

        assert result.saved_records == []
        assert len(result.failed_records) == 3
        assert [f.record for f in result.failed_records] == project_types
        assert all(f.error_kind == ErrorKind.STORAGE for f in result.failed_records)
        assert all(f.operation == "add" for f in result.failed_records)
        assert store.commit_calls == 9
        assert registry.snapshot() == result.failed_records

    @pytest.mark.asyncio
    async def test_mixed_outcome(self, make_engine, registry):
        store = FaultInjectingStore(fail_when=lambda changes: any(e.type_name_en == "Bad" for e in changes.added))
        engine = make_engine(store)
        good = ProjectTypeViewModel(type_name_en="Good")
        bad = ProjectTypeViewModel(type_name_en="Bad")

        result = await engine.add(ProjectTypeViewModel, [good, bad])

        assert [e.type_name_en for e in result.saved_records] == ["Good"]
        assert len(result.failed_records) == 1
        assert result.failed_records[0].record is bad
        assert not any(f.record is good for f in registry)
        assert store.commit_calls == 4

    @pytest.mark.asyncio
    async def test_same_record_twice_saved_once(self, engine, memory_store):
        record = ProjectTypeViewModel(type_name_en="Twice")

        result = await engine.add(ProjectTypeViewModel, [record, record])

        assert len(result.saved_records) == 1
        assert result.failed_records == []
        assert memory_store.count(ProjectType) == 1

    @pytest.mark.asyncio
    async def test_entity_type_undefined_not_retried(self, engine, memory_store):
        record = OrphanViewModel(name="orphan")

        result = await engine.add(OrphanViewModel, [record])

        assert result.saved_records == []
        assert len(result.failed_records) == 1
        failure = result.failed_records[0]
        assert failure.record is record
        assert failure.error_kind == ErrorKind.ENTITY_TYPE_UNDEFINED
        assert failure.error_message == "Entity type is not defined for OrphanViewModel."

    @pytest.mark.asyncio
    async def test_primary_key_undefined(self, engine, memory_store):
        result = await engine.add(KeylessViewModel, [KeylessViewModel(type_name_en="k")])

        assert len(result.failed_records) == 1
        assert result.failed_records[0].error_kind == ErrorKind.PRIMARY_KEY_UNDEFINED
        assert memory_store.count(ProjectType) == 0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, make_engine, registry):
        class CancellingScope(FaultInjectingScope):
            async def _apply(self, changes):
                raise asyncio.CancelledError()

        store = FaultInjectingStore()
        store.scope_class = CancellingScope
        engine = make_engine(store)

        with pytest.raises(asyncio.CancelledError):
            await engine.add(ProjectTypeViewModel, [ProjectTypeViewModel(type_name_en="A")])

        assert store.count(ProjectType) == 0


class TestEdit:
    """Editing records."""

    @pytest.mark.asyncio
    async def test_no_selector_is_noop(self, engine, registry):
        result = await engine.edit(ProjectTypeViewModel)

        assert result.updated_entities == []
        assert result.failed_records == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_predicate_matching_nothing(self, engine, memory_store):
        await seed_project_types(memory_store, ("Inactive", False))

        result = await engine.edit(ProjectTypeViewModel, predicate=ACTIVE)

        assert result.updated_entities == []
        assert result.failed_records == []

    @pytest.mark.asyncio
    async def test_update_action_by_predicate(self, engine, memory_store):
        seeded = await seed_project_types(memory_store, ("A", True), ("B", False), ("C", True))
        created = {e.id: e.created_date for e in seeded}

        def deactivate(vm):
            vm.is_active = False

        result = await engine.edit(ProjectTypeViewModel, predicate=ACTIVE, update_action=deactivate)

        assert [e.type_name_en for e in result.updated_entities] == ["A", "C"]
        assert result.failed_records == []
        stored = memory_store.snapshot(ProjectType)
        assert [e.is_active for e in stored] == [False, False, False]
        assert {e.id: e.created_date for e in stored} == created

    @pytest.mark.asyncio
    async def test_update_all(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False))

        def rename(vm):
            vm.type_name_en = vm.type_name_en.lower()

        result = await engine.edit(ProjectTypeViewModel, update_action=rename, update_all=True)

        assert len(result.updated_entities) == 2
        assert [e.type_name_en for e in memory_store.snapshot(ProjectType)] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_explicit_records(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True))

        result = await engine.edit(ProjectTypeViewModel, [ProjectTypeViewModel(id=1, type_name_en="Renamed")])

        assert [e.type_name_en for e in result.updated_entities] == ["Renamed"]
        assert memory_store.snapshot(ProjectType)[0].type_name_en == "Renamed"

    @pytest.mark.asyncio
    async def test_update_action_applied_once_across_retries(self, make_engine):
        store = FaultInjectingStore()
        await seed_project_types(store, ("A", True))
        store.commit_failures = 2
        engine = make_engine(store)
        calls = []

        def rename(vm):
            calls.append(vm.id)
            vm.type_name_en = vm.type_name_en + "!"

        result = await engine.edit(ProjectTypeViewModel, predicate=ACTIVE, update_action=rename)

        assert calls == [1]
        assert result.failed_records == []
        assert store.snapshot(ProjectType)[0].type_name_en == "A!"

    @pytest.mark.asyncio
    async def test_same_record_twice_updated_once(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True))
        record = ProjectTypeViewModel(id=1, type_name_en="A")
        calls = []

        def rename(vm):
            calls.append(vm.id)
            vm.type_name_en = "B"

        result = await engine.edit(ProjectTypeViewModel, [record, record], update_action=rename)

        assert calls == [1]
        assert len(result.updated_entities) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("record", "kind"),
        [
            (OrphanViewModel(id=1, name="orphan"), ErrorKind.ENTITY_TYPE_UNDEFINED),
            (KeylessViewModel(id=1, type_name_en="keyless"), ErrorKind.PRIMARY_KEY_UNDEFINED),
        ],
    )
    async def test_configuration_failure_not_retried(self, make_engine, registry, record, kind):
        store = FaultInjectingStore()
        engine = make_engine(store)

        result = await engine.edit(type(record), [record])

        assert result.updated_entities == []
        assert [f.error_kind for f in result.failed_records] == [kind]
        assert result.failed_records[0].record is record
        assert store.query_calls == 0
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_not_found_retried_by_default(self, make_engine, registry):
        store = FaultInjectingStore()
        engine = make_engine(store)
        record = ProjectTypeViewModel(id=404, type_name_en="ghost")

        result = await engine.edit(ProjectTypeViewModel, [record])

        assert result.updated_entities == []
        assert len(result.failed_records) == 1
        assert result.failed_records[0].error_kind == ErrorKind.NOT_FOUND
        assert result.failed_records[0].record is record
        assert store.query_calls == 3
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_not_found_terminal_when_configured(self, make_engine):
        store = FaultInjectingStore()
        engine = make_engine(store, not_found_is_terminal=True)

        result = await engine.edit(ProjectTypeViewModel, [ProjectTypeViewModel(id=404)])

        assert len(result.failed_records) == 1
        assert store.query_calls == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_is_terminal(self, make_engine):
        store = FaultInjectingStore(query_failures=1)
        engine = make_engine(store)

        result = await engine.edit(ProjectTypeViewModel, predicate=ACTIVE)

        assert result.updated_entities == []
        assert len(result.failed_records) == 1
        assert result.failed_records[0].record is None
        assert result.failed_records[0].error_kind == ErrorKind.CONNECTION
        assert store.query_calls == 1

    @pytest.mark.asyncio
    async def test_untranslatable_predicate(self, engine):
        predicate = where(ExtendedProjectTypeViewModel, lambda vm: vm.priority > 1)

        result = await engine.edit(ExtendedProjectTypeViewModel, predicate=predicate)

        assert len(result.failed_records) == 1
        assert result.failed_records[0].error_kind == ErrorKind.UNMAPPABLE_FIELD

    @pytest.mark.asyncio
    async def test_earlier_failure_cleared_on_success(self, make_engine, registry):
        store = FaultInjectingStore()
        await seed_project_types(store, ("A", True))
        store.commit_failures = 1
        engine = make_engine(store)

        result = await engine.edit(ProjectTypeViewModel, [ProjectTypeViewModel(id=1, type_name_en="B")])

        assert len(result.updated_entities) == 1
        assert result.failed_records == []
        assert len(registry) == 0


class TestDelete:
    """Deleting records."""

    @pytest.mark.asyncio
    async def test_no_selector_is_noop(self, engine):
        result = await engine.delete(ProjectTypeViewModel)

        assert result.deleted_count == 0
        assert result.failed_records == []

    @pytest.mark.asyncio
    async def test_by_predicate(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False), ("C", True))

        result = await engine.delete(ProjectTypeViewModel, predicate=ACTIVE)

        assert result.deleted_count == 2
        assert [e.type_name_en for e in memory_store.snapshot(ProjectType)] == ["B"]

    @pytest.mark.asyncio
    async def test_delete_all(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False))

        result = await engine.delete(ProjectTypeViewModel, delete_all=True)

        assert result.deleted_count == 2
        assert memory_store.count(ProjectType) == 0

    @pytest.mark.asyncio
    async def test_explicit_records_with_missing_entity(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True))
        missing = ProjectTypeViewModel(id=99)

        result = await engine.delete(ProjectTypeViewModel, [ProjectTypeViewModel(id=1), missing])

        assert result.deleted_count == 1
        assert len(result.failed_records) == 1
        assert result.failed_records[0].record is missing

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("record", "kind"),
        [
            (OrphanViewModel(id=1, name="orphan"), ErrorKind.ENTITY_TYPE_UNDEFINED),
            (KeylessViewModel(id=1, type_name_en="keyless"), ErrorKind.PRIMARY_KEY_UNDEFINED),
        ],
    )
    async def test_configuration_failure_not_retried(self, make_engine, record, kind):
        store = FaultInjectingStore()
        engine = make_engine(store)

        result = await engine.delete(type(record), [record])

        assert result.deleted_count == 0
        assert [f.error_kind for f in result.failed_records] == [kind]
        assert store.query_calls == 0

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, make_engine, registry):
        store = FaultInjectingStore()
        await seed_project_types(store, ("A", True))
        store.commit_failures = 2
        engine = make_engine(store)

        result = await engine.delete(ProjectTypeViewModel, delete_all=True)

        assert result.deleted_count == 1
        assert result.failed_records == []
        assert len(registry) == 0


class TestGet:
    """Fetching records."""

    @pytest.mark.asyncio
    async def test_no_criteria(self, engine, registry):
        result = await engine.get(ProjectTypeViewModel)

        assert result.records == []
        assert len(result.failed_records) == 1
        assert result.failed_records[0].error_message == "No criteria provided for retrieval."
        assert result.failed_records[0].error_kind == ErrorKind.NO_CRITERIA
        assert result.failed_records[0].record is None
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_return_all_idempotent(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False))

        first = await engine.get(ProjectTypeViewModel, return_all=True)
        second = await engine.get(ProjectTypeViewModel, return_all=True)

        assert [r.type_name_en for r in first.records] == ["A", "B"]
        assert all(isinstance(r, ProjectTypeViewModel) for r in first.records)
        assert first.records == second.records
        assert first.failed_records == second.failed_records == []

    @pytest.mark.asyncio
    async def test_by_id(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False))

        result = await engine.get(ProjectTypeViewModel, id=2)

        assert [r.type_name_en for r in result.records] == ["B"]

    @pytest.mark.asyncio
    async def test_missing_id_is_not_a_failure(self, engine, memory_store, registry):
        await seed_project_types(memory_store, ("A", True))

        result = await engine.get(ProjectTypeViewModel, id=999)

        assert result.records == []
        assert result.failed_records == []
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_by_predicate(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False), ("C", True))

        result = await engine.get(ProjectTypeViewModel, predicate=ACTIVE)

        assert [r.type_name_en for r in result.records] == ["A", "C"]

    @pytest.mark.asyncio
    async def test_return_all_takes_precedence(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False))

        result = await engine.get(ProjectTypeViewModel, id=1, predicate=ACTIVE, return_all=True)

        assert len(result.records) == 2

    @pytest.mark.asyncio
    async def test_id_takes_precedence_over_predicate(self, engine, memory_store):
        await seed_project_types(memory_store, ("A", True), ("B", False))

        result = await engine.get(ProjectTypeViewModel, id=2, predicate=ACTIVE)

        assert [r.type_name_en for r in result.records] == ["B"]

    @pytest.mark.asyncio
    async def test_transient_failure_retried(self, make_engine, registry):
        store = FaultInjectingStore()
        await seed_project_types(store, ("A", True))
        store.query_failures = 1
        engine = make_engine(store)

        result = await engine.get(ProjectTypeViewModel, return_all=True)

        assert [r.type_name_en for r in result.records] == ["A"]
        assert len(result.failed_records) == 1
        assert len(registry) == 0
        assert store.query_calls == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_ceiling(self, make_engine, registry):
        store = FaultInjectingStore(query_failures=10)
        engine = make_engine(store)

        result = await engine.get(ProjectTypeViewModel, return_all=True)

        assert result.records == []
        assert len(result.failed_records) == 3
        assert all(f.error_kind == ErrorKind.CONNECTION for f in result.failed_records)
        assert len(registry) == 3
        assert store.query_calls == 3

    @pytest.mark.asyncio
    async def test_backoff_between_attempts(self, make_engine, monkeypatch):
        slept = []

        async def fake_sleep(delay):
            slept.append(delay)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        store = FaultInjectingStore(query_failures=10)
        engine = make_engine(store, retry_delay_seconds=1.0)

        await engine.get(ProjectTypeViewModel, return_all=True)

        assert slept == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_backoff_grows_with_multiplier(self, make_engine, monkeypatch):
        slept = []

        async def fake_sleep(delay):
            slept.append(delay)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        store = FaultInjectingStore(query_failures=10)
        engine = make_engine(store, max_attempts=4, retry_delay_seconds=1.0, retry_backoff_multiplier=2.0,
                             retry_max_delay_seconds=3.0)

        await engine.get(ProjectTypeViewModel, return_all=True)

        assert slept == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_entity_type_undefined_not_retried(self, make_engine):
        store = FaultInjectingStore()
        engine = make_engine(store)

        result = await engine.get(OrphanViewModel, return_all=True)

        assert len(result.failed_records) == 1
        assert result.failed_records[0].error_kind == ErrorKind.ENTITY_TYPE_UNDEFINED
        assert store.query_calls == 0

    @pytest.mark.asyncio
    async def test_untranslatable_predicate(self, engine):
        predicate = where(ExtendedProjectTypeViewModel, lambda vm: vm.priority > 1)

        result = await engine.get(ExtendedProjectTypeViewModel, predicate=predicate)

        assert result.records == []
        assert len(result.failed_records) == 1
        assert result.failed_records[0].error_kind == ErrorKind.UNMAPPABLE_FIELD


class TestEngineOnDuckDB:
    """End-to-end flow on DuckDB."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, make_engine, registry):
        with DuckDBStore() as store:
            engine = make_engine(store)
            records = [
                ProjectTypeViewModel(id=7, type_name_en="A", is_active=True),
                ProjectTypeViewModel(type_name_en="B", is_active=True),
                ProjectTypeViewModel(type_name_en="C", is_active=False),
            ]

            added = await engine.add(ProjectTypeViewModel, records, predicate=ACTIVE)
            assert [e.id for e in added.saved_records] == [1, 2]

            def deactivate(vm):
                vm.is_active = False

            edited = await engine.edit(ProjectTypeViewModel, [ProjectTypeViewModel(id=1, type_name_en="A")],
                                       update_action=deactivate)
            assert len(edited.updated_entities) == 1

            active = await engine.get(ProjectTypeViewModel, predicate=ACTIVE)
            assert [r.type_name_en for r in active.records] == ["B"]

            deleted = await engine.delete(ProjectTypeViewModel, delete_all=True)
            assert deleted.deleted_count == 2

            remaining = await engine.get(ProjectTypeViewModel, return_all=True)
            assert remaining.records == []
            assert len(registry) == 0
