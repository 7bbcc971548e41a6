"""Exception handling module."""

from recordkit.core.exceptions.base import (
    AmbiguousPrimaryKeyError,
    ConcurrencyConflictError,
    ConfigurationError,
    DuplicateKeyError,
    EntityNotFoundError,
    EntityTypeNotDefinedError,
    FieldMappingError,
    InvalidKeyValueError,
    MappingError,
    MappingNotConfiguredError,
    NoCriteriaError,
    PrimaryKeyNotFoundError,
    RecordKitError,
    StorageError,
    UnmappableFieldError,
)
from recordkit.core.exceptions.codes import ErrorKind
from recordkit.core.exceptions.handler import (
    ErrorHandler,
    classify_exception,
    describe_exception,
    error_handler,
    exception_details,
    exception_type_name,
    get_error_handler,
)
from recordkit.core.exceptions.messages import ErrorMessageTemplate

__all__ = [
    "RecordKitError",
    "ConfigurationError",
    "EntityTypeNotDefinedError",
    "PrimaryKeyNotFoundError",
    "AmbiguousPrimaryKeyError",
    "UnmappableFieldError",
    "MappingError",
    "MappingNotConfiguredError",
    "FieldMappingError",
    "InvalidKeyValueError",
    "NoCriteriaError",
    "EntityNotFoundError",
    "StorageError",
    "DuplicateKeyError",
    "ConcurrencyConflictError",
    "ErrorKind",
    "ErrorMessageTemplate",
    "ErrorHandler",
    "classify_exception",
    "describe_exception",
    "exception_details",
    "exception_type_name",
    "error_handler",
    "get_error_handler",
]
