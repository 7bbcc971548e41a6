"""recordkit core exception classes."""

from typing import Any

from recordkit.core.exceptions.codes import ErrorKind


class RecordKitError(Exception):
    """Base class for every recordkit error."""

    def __init__(
        self,
        message: str,
        error_code: ErrorKind | str = ErrorKind.UNKNOWN,
        details: dict[str, Any] | None = None,
    ):
        """Initialise the error.

        Args:
            message: Human readable error message
            error_code: Error kind (or its string value)
            details: Additional structured details
        """
        super().__init__(message)
        self.message = message
        self.error_code = ErrorKind(error_code).value
        self.details = details or {}

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind(self.error_code)


class ConfigurationError(RecordKitError):
    """Configuration defect; never retried."""

    def __init__(
        self,
        message: str,
        error_code: ErrorKind | str = ErrorKind.CONFIGURATION_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code, details)


class EntityTypeNotDefinedError(ConfigurationError):
    """The view model does not declare a backing entity type."""

    def __init__(self, view_model_type: type, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["view_model"] = view_model_type.__name__
        super().__init__("Entity type is not defined.", ErrorKind.ENTITY_TYPE_UNDEFINED, super_details)
        self.view_model_type = view_model_type


class PrimaryKeyNotFoundError(ConfigurationError):
    """No field of the view model is marked as primary key."""

    def __init__(
        self,
        view_model_type: type,
        message: str = "Primary key property not found in ViewModel.",
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["view_model"] = view_model_type.__name__
        super().__init__(message, ErrorKind.PRIMARY_KEY_UNDEFINED, super_details)
        self.view_model_type = view_model_type


class AmbiguousPrimaryKeyError(PrimaryKeyNotFoundError):
    """More than one field of the view model is marked as primary key."""

    def __init__(self, view_model_type: type, candidates: list[str]):
        super().__init__(
            view_model_type,
            f"ViewModel {view_model_type.__name__} marks several primary keys: {', '.join(candidates)}.",
            {"candidates": candidates},
        )
        self.candidates = candidates


class UnmappableFieldError(ConfigurationError):
    """A predicate references a field the target record type does not define."""

    def __init__(self, field_name: str, target_type: type):
        super().__init__(
            f"Property '{field_name}' is not defined for type '{target_type.__name__}'.",
            ErrorKind.UNMAPPABLE_FIELD,
            {"field": field_name, "target_type": target_type.__name__},
        )
        self.field_name = field_name
        self.target_type = target_type


class MappingError(ConfigurationError):
    """Base class for field mapping errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorKind.MAPPING_ERROR, details)


class MappingNotConfiguredError(MappingError):
    """No map was registered between the two record types."""

    def __init__(self, source_type: type, target_type: type):
        super().__init__(
            f"Missing map configuration: {source_type.__name__} -> {target_type.__name__}.",
            {"source_type": source_type.__name__, "target_type": target_type.__name__},
        )
        self.source_type = source_type
        self.target_type = target_type


class FieldMappingError(MappingError):
    """A field value is not compatible with the target field type."""

    def __init__(self, field_name: str, target_type: type, reason: str):
        super().__init__(
            f"Cannot map field '{field_name}' onto {target_type.__name__}: {reason}",
            {"field": field_name, "target_type": target_type.__name__},
        )
        self.field_name = field_name
        self.target_type = target_type


class InvalidKeyValueError(RecordKitError):
    """A primary key value cannot be converted to the key field type."""

    def __init__(self, key_field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value {value!r} for primary key '{key_field}': {reason}",
            ErrorKind.INVALID_ARGUMENT,
            {"key_field": key_field},
        )
        self.key_field = key_field
        self.value = value


class NoCriteriaError(RecordKitError):
    """A retrieval was requested without any selection criterion."""

    def __init__(self) -> None:
        super().__init__(
            "No criteria provided for retrieval.",
            ErrorKind.NO_CRITERIA,
            {"hint": "Provide either an id, a predicate, or set return_all to True."},
        )


class EntityNotFoundError(RecordKitError):
    """The entity matching a record's primary key does not exist in the store."""

    def __init__(self, message: str, key_field: str | None = None, key_value: Any = None):
        super().__init__(message, ErrorKind.NOT_FOUND, {"key_field": key_field, "key_value": key_value})


class StorageError(RecordKitError):
    """Storage layer failure."""

    def __init__(
        self,
        message: str,
        error_code: ErrorKind | str = ErrorKind.STORAGE,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code, details)


class DuplicateKeyError(StorageError):
    """An insert collides with an existing primary key."""

    def __init__(self, table: str, key_value: Any):
        super().__init__(
            f"Duplicate key {key_value!r} in '{table}'.",
            ErrorKind.DUPLICATE_KEY,
            {"table": table, "key_value": key_value},
        )


class ConcurrencyConflictError(StorageError):
    """The entity changed or vanished between fetch and commit."""

    def __init__(self, table: str, key_value: Any):
        super().__init__(
            f"Entity {key_value!r} in '{table}' was modified by another scope.",
            ErrorKind.CONCURRENCY_CONFLICT,
            {"table": table, "key_value": key_value},
        )
