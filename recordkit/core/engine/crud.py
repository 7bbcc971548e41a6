"""CRUD engine with per-record retry.

Every operation returns a result object instead of raising: failures are
collected as :class:`FailedRecord` entries in the result and in the shared
:class:`FailureRegistry`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from pydantic import BaseModel

from recordkit.core.config import EngineSettings
from recordkit.core.exceptions import (
    EntityNotFoundError,
    ErrorHandler,
    ErrorKind,
    NoCriteriaError,
    get_error_handler,
)
from recordkit.core.failures import FailureRegistry, FailureTracker
from recordkit.core.logging import get_logger, log_context
from recordkit.core.mapping import FieldMapper
from recordkit.core.metadata import reset_primary_key, resolve, resolve_entity_type, resolve_primary_key
from recordkit.core.models import AddResult, DeleteResult, EditResult, GetResult
from recordkit.core.patterns import RetryPolicy
from recordkit.core.predicates import Predicate, filter_records, primary_key_predicate, translate
from recordkit.core.storage import QueryableCollection, Store

ViewModelT = TypeVar("ViewModelT", bound=BaseModel)

logger = get_logger(__name__)


class _WorkingSet:
    """Records still pending within a retry loop; only ever shrinks.

    Records are held by identity, so a record passed twice is processed once.
    """

    def __init__(self, records: Iterable[Any]):
        self._records = {id(record): record for record in records}

    def __iter__(self):
        return iter(list(self._records.values()))

    def __len__(self) -> int:
        return len(self._records)

    def discard(self, record: Any) -> None:
        self._records.pop(id(record), None)


class CrudEngine:
    """Add, edit, delete and fetch view models through a store.

    Args:
        store: Store providing scoped connections
        mapper: Mapper configured for every view model used with the engine
        registry: Shared failure registry
        settings: Engine settings; defaults are used when omitted
        error_handler: Classifier and logger for caught exceptions
    """

    def __init__(
        self,
        store: Store,
        mapper: FieldMapper,
        registry: FailureRegistry,
        settings: EngineSettings | None = None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.store = store
        self.mapper = mapper
        self.registry = registry
        self.settings = settings or EngineSettings()
        self.retry_policy = RetryPolicy.from_settings(self.settings)
        self.error_handler = error_handler or get_error_handler()

    def _tracker(self, operation: str) -> FailureTracker:
        return FailureTracker(self.registry, operation, self.error_handler)

    def _is_terminal(self, error: BaseException) -> bool:
        kind = self.error_handler.classify(error)
        if kind is ErrorKind.NOT_FOUND:
            return self.settings.not_found_is_terminal
        return kind.is_configuration

    def _record_failure(self, tracker: FailureTracker, working: _WorkingSet, record: Any, error: Exception) -> None:
        tracker.record(record, error, stacklevel=2)
        if self._is_terminal(error):
            working.discard(record)

    def _record_success(self, tracker: FailureTracker, working: _WorkingSet, record: Any) -> None:
        working.discard(record)
        if tracker.clear(record):
            logger.debug("Cleared earlier failure after success on retry")

    def _report_permanent(self, tracker: FailureTracker, working: _WorkingSet) -> None:
        for record in working:
            failure = tracker.find(record)
            logger.error(
                "Record failed permanently after {} attempts: {}",
                self.retry_policy.max_attempts,
                failure.error_message if failure is not None else "unknown error",
            )

    async def _fetch_view_models(
        self,
        view_model_type: type[ViewModelT],
        predicate: Predicate | None,
    ) -> list[ViewModelT]:
        entity_type = resolve_entity_type(view_model_type)
        entity_predicate = translate(predicate, entity_type) if predicate is not None else None
        async with self.store.open_scope() as scope:
            collection: QueryableCollection = scope.get_collection(entity_type)
            if entity_predicate is not None:
                collection = collection.filter(entity_predicate)
            entities = await collection.to_list()
        return self.mapper.to_view_models(entities, view_model_type)

    async def _find_entity(self, collection: QueryableCollection, record: Any, key_field: str) -> BaseModel:
        entity = await collection.first_matching(primary_key_predicate(collection.entity_type, key_field, record))
        if entity is None:
            key_value = getattr(record, key_field)
            raise EntityNotFoundError(
                f"No {collection.entity_type.__name__} with {key_field}={key_value!r}.",
                key_field,
                key_value,
            )
        return entity

    async def add(
        self,
        view_model_type: type[ViewModelT],
        records: Iterable[ViewModelT],
        predicate: Predicate | None = None,
    ) -> AddResult[ViewModelT]:
        """Insert records as new entities.

        Only records matching ``predicate`` are sent to the store. Primary keys
        are reset before insertion so the store assigns them.

        Args:
            view_model_type: View model type of the records
            records: Records to insert
            predicate: Optional filter over ``view_model_type``

        Returns:
            Saved entities (with their assigned keys) and failures
        """
        with log_context(operation="add", view_model=view_model_type.__name__):
            tracker = self._tracker("add")
            saved: list[Any] = []

            try:
                candidates = filter_records(predicate, list(records))
            except Exception as e:
                tracker.record(None, e)
                return AddResult(saved, tracker.failures)

            working = _WorkingSet(candidates)
            for record in working:
                try:
                    reset_primary_key(record)
                except Exception as e:
                    self._record_failure(tracker, working, record, e)

            for attempt in self.retry_policy.attempts():
                if not working:
                    break
                logger.debug("Attempt {} with {} pending records", attempt, len(working))
                for record in working:
                    try:
                        entity_type = resolve_entity_type(record)
                        entity = self.mapper.to_entity(record, entity_type)
                        async with self.store.open_scope() as scope:
                            scope.get_collection(entity_type).add(entity)
                            await scope.commit()
                    except Exception as e:
                        self._record_failure(tracker, working, record, e)
                        continue
                    saved.append(entity)
                    self._record_success(tracker, working, record)

            self._report_permanent(tracker, working)
            logger.info("Added {} records, {} failed", len(saved), len(tracker))
            return AddResult(saved, tracker.failures)

    async def edit(
        self,
        view_model_type: type[ViewModelT],
        records: Iterable[ViewModelT] | None = None,
        predicate: Predicate | None = None,
        update_action: Callable[[ViewModelT], Any] | None = None,
        update_all: bool = False,
    ) -> EditResult[ViewModelT]:
        """Update the stored entities behind records.

        Without explicit ``records`` the records are fetched first, narrowed
        by ``predicate``; ``update_all`` allows fetching without one.

        Args:
            view_model_type: View model type of the records
            records: Records carrying the new values
            predicate: Filter used to fetch records when none are given
            update_action: Applied to each record once before it is written
            update_all: Fetch every record when no predicate is given

        Returns:
            Updated entities and failures
        """
        with log_context(operation="edit", view_model=view_model_type.__name__):
            tracker = self._tracker("edit")
            updated: list[Any] = []

            if records is None:
                if predicate is None and not update_all:
                    logger.info("No records, predicate or update_all given; nothing to edit")
                    return EditResult(updated, tracker.failures)
                try:
                    records = await self._fetch_view_models(view_model_type, predicate)
                except Exception as e:
                    tracker.record(None, e)
                    return EditResult(updated, tracker.failures)

            working = _WorkingSet(records)
            actioned: set[int] = set()
            for attempt in self.retry_policy.attempts():
                if not working:
                    break
                logger.debug("Attempt {} with {} pending records", attempt, len(working))
                for record in working:
                    try:
                        metadata = resolve(record)
                        async with self.store.open_scope() as scope:
                            collection = scope.get_collection(metadata.entity_type)
                            entity = await self._find_entity(collection, record, metadata.primary_key)
                            if update_action is not None and id(record) not in actioned:
                                update_action(record)
                                actioned.add(id(record))
                            self.mapper.apply_to_entity(record, entity)
                            await scope.commit()
                    except Exception as e:
                        self._record_failure(tracker, working, record, e)
                        continue
                    updated.append(entity)
                    self._record_success(tracker, working, record)

            self._report_permanent(tracker, working)
            logger.info("Updated {} records, {} failed", len(updated), len(tracker))
            return EditResult(updated, tracker.failures)

    async def delete(
        self,
        view_model_type: type[ViewModelT],
        records: Iterable[ViewModelT] | None = None,
        predicate: Predicate | None = None,
        delete_all: bool = False,
    ) -> DeleteResult[ViewModelT]:
        """Delete the stored entities behind records.

        Args:
            view_model_type: View model type of the records
            records: Records identifying the entities by primary key
            predicate: Filter used to fetch records when none are given
            delete_all: Fetch every record when no predicate is given

        Returns:
            Number of deleted entities and failures
        """
        with log_context(operation="delete", view_model=view_model_type.__name__):
            tracker = self._tracker("delete")
            deleted = 0

            if records is None:
                if predicate is None and not delete_all:
                    logger.info("No records, predicate or delete_all given; nothing to delete")
                    return DeleteResult(deleted, tracker.failures)
                try:
                    records = await self._fetch_view_models(view_model_type, predicate)
                except Exception as e:
                    tracker.record(None, e)
                    return DeleteResult(deleted, tracker.failures)

            working = _WorkingSet(records)
            for attempt in self.retry_policy.attempts():
                if not working:
                    break
                logger.debug("Attempt {} with {} pending records", attempt, len(working))
                for record in working:
                    try:
                        metadata = resolve(record)
                        async with self.store.open_scope() as scope:
                            collection = scope.get_collection(metadata.entity_type)
                            entity = await self._find_entity(collection, record, metadata.primary_key)
                            collection.remove(entity)
                            await scope.commit()
                    except Exception as e:
                        self._record_failure(tracker, working, record, e)
                        continue
                    deleted += 1
                    self._record_success(tracker, working, record)

            self._report_permanent(tracker, working)
            logger.info("Deleted {} records, {} failed", deleted, len(tracker))
            return DeleteResult(deleted, tracker.failures)

    async def get(
        self,
        view_model_type: type[ViewModelT],
        id: Any = None,
        predicate: Predicate | None = None,
        return_all: bool = False,
    ) -> GetResult[ViewModelT]:
        """Fetch records, retrying the whole call on storage failures.

        Selection precedence is ``return_all``, then ``id``, then ``predicate``.
        An empty result is not a failure.

        Args:
            view_model_type: View model type to return
            id: Primary key value to look up
            predicate: Filter over ``view_model_type``
            return_all: Return every record

        Returns:
            Records and failures
        """
        with log_context(operation="get", view_model=view_model_type.__name__):
            tracker = self._tracker("get")

            if not return_all and id is None and predicate is None:
                tracker.record(None, NoCriteriaError())
                return GetResult([], tracker.failures)

            for attempt in self.retry_policy.attempts():
                try:
                    entity_type = resolve_entity_type(view_model_type)
                    if return_all:
                        query = None
                    elif id is not None:
                        query = primary_key_predicate(entity_type, resolve_primary_key(view_model_type), id)
                    else:
                        query = translate(predicate, entity_type)
                except Exception as e:
                    tracker.record(None, e)
                    return GetResult([], tracker.failures)

                logger.debug("Attempt {}", attempt)
                try:
                    async with self.store.open_scope() as scope:
                        collection: QueryableCollection = scope.get_collection(entity_type)
                        if query is not None:
                            collection = collection.filter(query)
                        entities = await collection.to_list()
                    records = self.mapper.to_view_models(entities, view_model_type)
                except Exception as e:
                    tracker.record(None, e)
                    if self._is_terminal(e) or self.retry_policy.is_last(attempt):
                        break
                    await self.retry_policy.wait(attempt)
                    continue

                released = tracker.release_from_registry()
                if released:
                    logger.debug("Released {} earlier failures from the registry", released)
                logger.info("Fetched {} records", len(records))
                return GetResult(records, tracker.failures)

            logger.error("Retrieval failed; {} failures recorded", len(tracker))
            return GetResult([], tracker.failures)
