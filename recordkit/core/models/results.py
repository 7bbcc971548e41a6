"""Result containers returned by the CRUD engine."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from recordkit.core.models.failures import FailedRecord

T = TypeVar("T")


@dataclass
class AddResult(Generic[T]):
    saved_records: list[Any] = field(default_factory=list)
    failed_records: list[FailedRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_records


@dataclass
class EditResult(Generic[T]):
    updated_entities: list[Any] = field(default_factory=list)
    failed_records: list[FailedRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_records


@dataclass
class DeleteResult(Generic[T]):
    deleted_count: int = 0
    failed_records: list[FailedRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_records


@dataclass
class GetResult(Generic[T]):
    records: list[T] = field(default_factory=list)
    failed_records: list[FailedRecord] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failed_records
