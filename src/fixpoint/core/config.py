# src/fixpoint/core/config.py
"""
Configuration schema and loading for fixpoint datasources.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

Example YAML:
    logging:
      level: DEBUG
    datasources:
      db:
        plugin: sql
        options:
          url: ${FIXPOINT_TEST_DB:-sqlite:///./test.db}
          pool:
            pool_size: 2
      search:
        plugin: search
        options:
          url: http://localhost:9200
"""

import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class LoggingSettings(BaseModel):
    """Logging output configuration."""

    model_config = {"frozen": True}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root log level",
    )
    json_output: bool = Field(
        default=False,
        description="Emit JSON lines instead of console output",
    )


class PoolSettings(BaseModel):
    """Connection pool configuration for pooled SQL datasources."""

    model_config = {"frozen": True, "extra": "forbid"}

    pool_size: int = Field(default=5, gt=0, description="Connections kept open in the pool")
    max_overflow: int = Field(default=10, ge=0, description="Connections allowed beyond pool_size")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Seconds to wait for a free connection")
    recycle_seconds: int | None = Field(
        default=None,
        gt=0,
        description="Recycle connections older than this many seconds",
    )


class DatasourceSettings(BaseModel):
    """One configured datasource: which plugin builds it and with what options."""

    model_config = {"frozen": True}

    plugin: str = Field(description="Datasource plugin name (sql, search, ...)")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Plugin-specific configuration options",
    )


class FixpointSettings(BaseModel):
    """Top-level fixpoint configuration."""

    model_config = {"frozen": True}

    datasources: dict[str, DatasourceSettings] = Field(
        default_factory=dict,
        description="Datasources keyed by the id fixture documents address them with",
    )
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("datasources")
    @classmethod
    def validate_datasource_ids(cls, v: dict[str, DatasourceSettings]) -> dict[str, DatasourceSettings]:
        """Datasource ids must be non-empty and free of surrounding whitespace."""
        for datasource_id in v:
            if not datasource_id or datasource_id != datasource_id.strip():
                raise ValueError(f"invalid datasource id: {datasource_id!r}")
        return v


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """
    import os

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default: keep original so the failure is visible
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> FixpointSettings:
    """Load settings from a YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (FIXPOINT_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: FIXPOINT_LOGGING__LEVEL for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated FixpointSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="FIXPOINT",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase top-level keys and mixes in its own settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _expand_env_vars(raw_config)
    return FixpointSettings(**raw_config)
