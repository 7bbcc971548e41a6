"""Structured failure entries."""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from recordkit.core.exceptions import ErrorKind


class FailedRecord(BaseModel):
    """Immutable description of one failure.

    ``record`` is ``None`` when the failure happened before any record was
    identified, e.g. while fetching the working set.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    failure_id: str = Field(default_factory=lambda: uuid4().hex)
    record: Any = None
    error_message: str
    details: str | None = None
    error_kind: ErrorKind = ErrorKind.UNKNOWN
    exception_type: str | None = None
    source_file: str | None = None
    operation: str | None = None
    line_number: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FailedRecord) and other.failure_id == self.failure_id

    def __hash__(self) -> int:
        return hash(self.failure_id)

    def concerns(self, record: Any) -> bool:
        """Whether this failure belongs to ``record`` (by identity)."""
        return record is not None and self.record is record
