"""Standardised error kinds used to classify recorded failures."""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification attached to every recorded failure."""

    # Configuration errors, never retried
    ENTITY_TYPE_UNDEFINED = "ENTITY_TYPE_UNDEFINED"
    PRIMARY_KEY_UNDEFINED = "PRIMARY_KEY_UNDEFINED"
    UNMAPPABLE_FIELD = "UNMAPPABLE_FIELD"
    MAPPING_ERROR = "MAPPING_ERROR"
    NO_CRITERIA = "NO_CRITERIA"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Lookup errors
    NOT_FOUND = "NOT_FOUND"

    # Storage errors, treated as transient
    DUPLICATE_KEY = "DUPLICATE_KEY"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    TIMEOUT = "TIMEOUT"
    CONNECTION = "CONNECTION"
    IO = "IO"
    CANCELLED = "CANCELLED"
    STORAGE = "STORAGE"

    # Generic errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_OPERATION = "INVALID_OPERATION"
    DATA_FORMAT = "DATA_FORMAT"
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    UNKNOWN = "UNKNOWN"

    @property
    def is_configuration(self) -> bool:
        """Whether the kind denotes a configuration defect rather than a transient fault."""
        return self in _CONFIGURATION_KINDS


_CONFIGURATION_KINDS = frozenset(
    {
        ErrorKind.ENTITY_TYPE_UNDEFINED,
        ErrorKind.PRIMARY_KEY_UNDEFINED,
        ErrorKind.UNMAPPABLE_FIELD,
        ErrorKind.MAPPING_ERROR,
        ErrorKind.NO_CRITERIA,
        ErrorKind.CONFIGURATION_ERROR,
    }
)
