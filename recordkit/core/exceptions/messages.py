"""Standardised human readable failure messages."""

from typing import Any

from recordkit.core.exceptions.codes import ErrorKind


class ErrorMessageTemplate:
    """Message templates keyed by error kind."""

    _templates: dict[ErrorKind, str] = {
        # Configuration
        ErrorKind.ENTITY_TYPE_UNDEFINED: "Entity type is not defined for {view_model}.",
        ErrorKind.PRIMARY_KEY_UNDEFINED: "Primary key is not defined: {message}",
        ErrorKind.UNMAPPABLE_FIELD: "Filter field cannot be mapped: {message}",
        ErrorKind.MAPPING_ERROR: "Mapping failed: {message}",
        ErrorKind.NO_CRITERIA: "No criteria provided for retrieval.",
        ErrorKind.CONFIGURATION_ERROR: "Configuration error: {message}",
        # Lookup
        ErrorKind.NOT_FOUND: "{message}",
        # Storage
        ErrorKind.DUPLICATE_KEY: "Duplicate key violation (UNIQUE constraint).",
        ErrorKind.CONSTRAINT_VIOLATION: "Foreign key or check constraint violation.",
        ErrorKind.CONCURRENCY_CONFLICT: "Concurrency conflict occurred while updating the database.",
        ErrorKind.TIMEOUT: "The operation timed out. Please try again later.",
        ErrorKind.CONNECTION: "Connection error: {message}.",
        ErrorKind.IO: "I/O error occurred: {message}.",
        ErrorKind.CANCELLED: "The operation was canceled. Please try again.",
        ErrorKind.STORAGE: "Storage error: {message}",
        # Generic
        ErrorKind.INVALID_ARGUMENT: "Invalid argument: {message}.",
        ErrorKind.INVALID_OPERATION: "An invalid operation was attempted.",
        ErrorKind.DATA_FORMAT: "Invalid data format provided.",
        ErrorKind.OUT_OF_MEMORY: "The application ran out of memory.",
        ErrorKind.UNKNOWN: "An unhandled exception occurred: {error_type} - {message}",
    }

    @classmethod
    def get_message(cls, kind: ErrorKind, **kwargs: Any) -> str:
        """Render the message for ``kind``.

        Args:
            kind: Error kind
            **kwargs: Template variables

        Returns:
            Rendered message, or a generic message when a variable is missing
        """
        template = cls._templates.get(kind, cls._templates[ErrorKind.UNKNOWN])
        try:
            return template.format(**kwargs)
        except KeyError:
            return f"An error occurred (kind: {kind.value})."
