"""Logging options."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class LogConfig(BaseModel):
    """Where log events go and at which level.

    Events are written as JSON lines. ``console_stream`` defaults to stderr
    at write time, so captured streams (pytest, CliRunner) receive them.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    level: str = "INFO"
    console_output: bool = True
    console_stream: Any = None
    file_output: bool = False
    file_path: str | None = None

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @model_validator(mode="after")
    def _check_file(self) -> LogConfig:
        if self.file_output and not self.file_path:
            raise ValueError("file_path is required when file_output is enabled")
        return self


__all__ = ["LOG_LEVELS", "LogConfig"]
