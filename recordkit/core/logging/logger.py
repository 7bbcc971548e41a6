"""JSON logging through loguru, with a trace id and call context per operation.

Every event carries ``trace_id``, ``operation`` and ``view_model`` at the top
level of its payload; other bound or contextual values go under ``context``.
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Iterator
from uuid import uuid4

from loguru import logger

from recordkit.core.logging.config import LogConfig

_TOP_LEVEL_KEYS = ("operation", "view_model", "error_code")


@dataclass(frozen=True)
class _Scope:
    trace_id: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)


_SCOPE: ContextVar[_Scope] = ContextVar("recordkit_log_scope", default=_Scope())


def current_trace_id() -> str:
    """Trace id of the active scope, starting a new one when there is none."""
    scope = _SCOPE.get()
    if scope.trace_id is None:
        scope = _Scope(uuid4().hex, scope.fields)
        _SCOPE.set(scope)
    return scope.trace_id


def _patch_record(record: dict[str, Any]) -> None:
    extra = record["extra"]
    if not extra.get("trace_id"):
        extra["trace_id"] = current_trace_id()
    for key, value in _SCOPE.get().fields.items():
        if extra.get(key) is None:
            extra[key] = value
    for key in _TOP_LEVEL_KEYS:
        extra.setdefault(key, None)


def _payload(record: dict[str, Any]) -> dict[str, Any]:
    extra = record["extra"]
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "trace_id": extra.get("trace_id"),
    }
    for key in _TOP_LEVEL_KEYS:
        payload[key] = extra.get(key)
    context = {k: v for k, v in extra.items() if k != "trace_id" and k not in _TOP_LEVEL_KEYS}
    if context:
        payload["context"] = context
    exception = record["exception"]
    if exception is not None:
        payload["exception"] = None if exception.value is None else str(exception.value)
    return payload


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class _JsonSink:
    """Writes one JSON object per event to a stream, or appends it to a file."""

    def __init__(self, stream: IO[str] | None = None, path: str | None = None) -> None:
        self._stream = stream
        self._path = Path(path) if path else None
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, message: Any) -> None:
        line = json.dumps(_payload(message.record), default=_json_default) + "\n"
        if self._path is not None:
            with self._path.open("a", encoding="utf-8") as file:
                file.write(line)
            return
        stream = self._stream or sys.stderr
        stream.write(line)
        stream.flush()


def configure_logging(level: str = "INFO", **options: Any) -> LogConfig:
    """Replace every loguru handler with JSON sinks built from ``options``.

    Args:
        level: Minimum level
        **options: Remaining :class:`LogConfig` fields

    Returns:
        The applied configuration
    """
    config = LogConfig(level=level, **options)
    handlers: list[dict[str, Any]] = []
    if config.console_output:
        handlers.append({"sink": _JsonSink(stream=config.console_stream), "level": config.level})
    if config.file_output:
        handlers.append({"sink": _JsonSink(path=config.file_path), "level": config.level})
    logger.configure(handlers=handlers, patcher=_patch_record)
    return config


def get_logger(name: str | None = None):
    """Return the logger, bound to ``name`` when given."""
    if name:
        return logger.bind(logger_name=name)
    return logger


@contextmanager
def log_context(*, trace_id: str | None = None, **fields: Any) -> Iterator[str]:
    """Run the block under a new trace id, adding ``fields`` to every event.

    Fields of enclosing contexts are kept unless overridden.

    Yields:
        The trace id of the block
    """
    scope = _Scope(trace_id or uuid4().hex, {**_SCOPE.get().fields, **fields})
    token = _SCOPE.set(scope)
    try:
        yield scope.trace_id
    finally:
        _SCOPE.reset(token)


configure_logging()


__all__ = [
    "configure_logging",
    "current_trace_id",
    "get_logger",
    "log_context",
    "logger",
]
