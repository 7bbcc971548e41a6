"""Process-wide failure registry."""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Iterator
from typing import Any

from recordkit.core.models import FailedRecord


class FailureRegistry:
    """Thread-safe collection of failures shared across engine calls.

    Created explicitly and handed to each engine; entries live until they
    are removed by a later success or the registry is cleared.
    """

    def __init__(self) -> None:
        self._entries: dict[str, FailedRecord] = {}
        self._lock = threading.RLock()

    def add(self, failure: FailedRecord) -> bool:
        """Insert ``failure``; returns False when it is already registered."""
        with self._lock:
            if failure.failure_id in self._entries:
                return False
            self._entries[failure.failure_id] = failure
            return True

    def remove(self, failure: FailedRecord) -> bool:
        with self._lock:
            return self._entries.pop(failure.failure_id, None) is not None

    def __contains__(self, failure: object) -> bool:
        if not isinstance(failure, FailedRecord):
            return False
        with self._lock:
            return failure.failure_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[FailedRecord]:
        return iter(self.snapshot())

    def snapshot(self) -> list[FailedRecord]:
        """Copy of the registered failures in insertion order."""
        with self._lock:
            return list(self._entries.values())

    def clear(self) -> int:
        """Drop every entry and return how many were removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def get_stats(self) -> dict[str, Any]:
        """Failure counts by kind and by operation."""
        failures = self.snapshot()
        return {
            "total_failures": len(failures),
            "by_kind": dict(Counter(failure.error_kind.value for failure in failures)),
            "by_operation": dict(Counter(failure.operation for failure in failures)),
        }
