"""Engine configuration.

Settings come from three layers, lowest precedence first: field defaults,
the ``[engine]`` table of an optional TOML file, and ``RECORDKIT_*``
environment variables.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from recordkit.core.exceptions import ConfigurationError

ENV_PREFIX = "RECORDKIT_"


class EngineSettings(BaseSettings):
    """Main recordkit configuration."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
    )

    max_attempts: int = Field(3, ge=1, description="Retry ceiling for every CRUD operation")
    retry_delay_seconds: float = Field(1.0, ge=0, description="Backoff between whole-call retrieval attempts")
    retry_backoff_multiplier: float = Field(
        1.0, ge=1.0, description="Growth factor of the retrieval backoff; 1.0 keeps it fixed"
    )
    retry_max_delay_seconds: float = Field(60.0, ge=0, description="Upper bound of a single retrieval backoff")
    retry_jitter: bool = Field(False, description="Randomize each retrieval backoff by up to 10%")
    not_found_is_terminal: bool = Field(
        False, description="Drop records whose entity is missing instead of looking them up again"
    )
    database_path: str = Field(":memory:", description="DuckDB database path used by the CLI")
    log_level: str = Field("INFO", description="Log level")


def _read_engine_table(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid configuration file {config_path}: {e}") from e
    engine = data.get("engine", {})
    if not isinstance(engine, dict):
        raise ConfigurationError(f"[engine] in {config_path} must be a table")
    return engine


def _env_overrides() -> set[str]:
    return {name for name in EngineSettings.model_fields if f"{ENV_PREFIX}{name.upper()}" in os.environ}


def load_settings(config_path: Path | str | None = None) -> EngineSettings:
    """Load settings from an optional TOML file, letting the environment override it.

    Args:
        config_path: TOML file path; a missing file is treated as empty

    Returns:
        The effective settings

    Raises:
        ConfigurationError: If the file is not valid TOML
    """
    file_values: dict[str, Any] = {}
    if config_path is not None and Path(config_path).exists():
        file_values = _read_engine_table(Path(config_path))

    from_env = EngineSettings().model_dump(include=_env_overrides())
    return EngineSettings(**{**file_values, **from_env})
