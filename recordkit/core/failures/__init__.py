"""Failure accumulation."""

from recordkit.core.failures.registry import FailureRegistry
from recordkit.core.failures.tracker import FailureTracker, create_failed_record

__all__ = ["FailureRegistry", "FailureTracker", "create_failed_record"]
