"""Exception classification and diagnostics."""

import asyncio
import traceback
from datetime import UTC, datetime
from typing import Any

import duckdb
from loguru import logger
from pydantic import ValidationError

from .base import RecordKitError
from .codes import ErrorKind
from .messages import ErrorMessageTemplate


def classify_exception(error: BaseException) -> ErrorKind:
    """Map an exception onto an :class:`ErrorKind`."""
    if isinstance(error, RecordKitError):
        return error.kind

    # duckdb
    if isinstance(error, duckdb.ConstraintException):
        if "duplicate key" in str(error).lower():
            return ErrorKind.DUPLICATE_KEY
        return ErrorKind.CONSTRAINT_VIOLATION
    if isinstance(error, duckdb.TransactionException):
        return ErrorKind.CONCURRENCY_CONFLICT
    if isinstance(error, duckdb.InterruptException):
        return ErrorKind.CANCELLED
    if isinstance(error, duckdb.IOException):
        return ErrorKind.IO
    if isinstance(error, duckdb.ConnectionException):
        return ErrorKind.CONNECTION
    if isinstance(error, duckdb.OutOfMemoryException):
        return ErrorKind.OUT_OF_MEMORY
    if isinstance(error, duckdb.ConversionException):
        return ErrorKind.DATA_FORMAT
    if isinstance(error, duckdb.Error):
        return ErrorKind.STORAGE

    # builtins; order matters, several of these are OSError subclasses
    if isinstance(error, asyncio.CancelledError):
        return ErrorKind.CANCELLED
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, ConnectionError):
        return ErrorKind.CONNECTION
    if isinstance(error, OSError):
        return ErrorKind.IO
    if isinstance(error, MemoryError):
        return ErrorKind.OUT_OF_MEMORY
    if isinstance(error, ValidationError):
        return ErrorKind.DATA_FORMAT
    if isinstance(error, (ValueError, TypeError, KeyError)):
        return ErrorKind.INVALID_ARGUMENT
    if isinstance(error, (RuntimeError, NotImplementedError)):
        return ErrorKind.INVALID_OPERATION
    return ErrorKind.UNKNOWN


def describe_exception(error: BaseException | None) -> str:
    """Return a human readable summary of ``error``."""
    if error is None:
        return "An unknown error occurred."

    kind = classify_exception(error)
    if isinstance(error, RecordKitError) and kind in (ErrorKind.NOT_FOUND, ErrorKind.NO_CRITERIA):
        return error.message
    context: dict[str, Any] = {
        "message": str(error),
        "error_type": type(error).__name__,
    }
    if isinstance(error, RecordKitError):
        context.update(error.details)
    return ErrorMessageTemplate.get_message(kind, **context)


def exception_type_name(error: BaseException) -> str:
    """Name of the exception type, with the direct cause when there is one."""
    inner = error.__cause__ or error.__context__
    name = type(error).__name__
    if inner is not None:
        return f"{name} (Inner: {type(inner).__name__})"
    return name


def exception_details(error: BaseException) -> str:
    """Detailed diagnostic text: the formatted exception chain."""
    trace = "".join(traceback.format_exception(error)).strip()
    extra = ""
    if isinstance(error, RecordKitError) and error.details:
        extra = f" Context: {error.details}."
    elif isinstance(error, duckdb.Error):
        extra = f" DB Error: {error}."
    return f"Error occurred - Details: {trace}.{extra}"


class ErrorHandler:
    """Classifies errors and logs them with structured context."""

    classify = staticmethod(classify_exception)
    describe = staticmethod(describe_exception)

    def log_error(
        self,
        error: BaseException,
        context: dict[str, Any] | None = None,
        level: str = "WARNING",
    ) -> ErrorKind:
        """Log ``error`` with structured context.

        Args:
            error: Exception object
            context: Additional context
            level: Log level

        Returns:
            The classified error kind
        """
        kind = classify_exception(error)
        error_context = {
            "error_type": type(error).__name__,
            "error_kind": kind.value,
            "timestamp": datetime.now(UTC).isoformat(),
            **(context or {}),
        }
        if isinstance(error, RecordKitError):
            error_context["details"] = error.details

        logger.opt(depth=1).bind(error_code=kind.value).log(
            level,
            "{error_message} | context={context}",
            error_message=describe_exception(error),
            context=error_context,
        )
        return kind


error_handler = ErrorHandler()


def get_error_handler() -> ErrorHandler:
    """Return the shared error handler."""
    return error_handler
