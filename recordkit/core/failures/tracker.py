"""Per-call failure tracking."""

from __future__ import annotations

import sys
from typing import Any

from recordkit.core.exceptions import (
    ErrorHandler,
    describe_exception,
    exception_details,
    exception_type_name,
    get_error_handler,
)
from recordkit.core.failures.registry import FailureRegistry
from recordkit.core.models import FailedRecord


def create_failed_record(
    record: Any,
    error: BaseException,
    operation: str | None = None,
    stacklevel: int = 1,
) -> FailedRecord:
    """Build a :class:`FailedRecord` for ``error``.

    Args:
        record: The originating record, or None
        error: The caught exception
        operation: Name of the engine operation
        stacklevel: Which caller frame to report as the failure location

    Returns:
        The new failure entry
    """
    frame = sys._getframe(stacklevel)
    return FailedRecord(
        record=record,
        error_message=describe_exception(error),
        details=exception_details(error),
        error_kind=get_error_handler().classify(error),
        exception_type=exception_type_name(error),
        source_file=frame.f_code.co_filename,
        operation=operation or frame.f_code.co_name,
        line_number=frame.f_lineno,
    )


class FailureTracker:
    """Failures of one engine call, mirrored into the shared registry.

    Holds at most one entry per record; recording a record again replaces
    its entry in both places. Call-level failures (no record) accumulate.
    """

    def __init__(
        self,
        registry: FailureRegistry,
        operation: str,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.registry = registry
        self.operation = operation
        self.error_handler = error_handler or get_error_handler()
        self._entries: dict[int | str, FailedRecord] = {}

    @property
    def failures(self) -> list[FailedRecord]:
        return list(self._entries.values())

    def find(self, record: Any) -> FailedRecord | None:
        if record is None:
            return None
        return self._entries.get(id(record))

    def has_failed(self, record: Any) -> bool:
        return self.find(record) is not None

    def record(self, record: Any, error: BaseException, stacklevel: int = 1) -> FailedRecord:
        """Record ``error`` for ``record`` (None for call-level failures)."""
        failure = create_failed_record(record, error, self.operation, stacklevel + 1)

        previous = self.find(record)
        if previous is not None:
            self.registry.remove(previous)
        key = id(record) if record is not None else failure.failure_id
        self._entries[key] = failure
        self.registry.add(failure)

        self.error_handler.log_error(
            error,
            {"operation": self.operation, "failure_id": failure.failure_id, "refreshed": previous is not None},
        )
        return failure

    def clear(self, record: Any) -> bool:
        """Forget the failure of ``record`` after it succeeded."""
        failure = self._entries.pop(id(record), None) if record is not None else None
        if failure is None:
            return False
        self.registry.remove(failure)
        return True

    def release_from_registry(self) -> int:
        """Remove this call's failures from the registry, keeping them in the call result."""
        return sum(1 for failure in self._entries.values() if self.registry.remove(failure))

    def __len__(self) -> int:
        return len(self._entries)
