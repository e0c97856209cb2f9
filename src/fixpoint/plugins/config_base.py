# src/fixpoint/plugins/config_base.py
"""Base class for typed datasource configurations.

Datasource plugins inherit from DatasourceConfig to get:
- Strict validation (reject unknown fields)
- A factory method with clear error messages

Example usage:
    class SqlDatasourceConfig(DatasourceConfig):
        url: str
        echo: bool = False

    cfg = SqlDatasourceConfig.from_dict(options)
    url = cfg.url  # Direct access, fails fast if missing
"""

from typing import Any, Self

from pydantic import BaseModel, ValidationError

from fixpoint.contracts import FixpointError


class DatasourceConfigError(FixpointError):
    """Raised when datasource configuration is invalid."""


class DatasourceConfig(BaseModel):
    """Base class for typed datasource configurations."""

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> Self:
        """Create config from dict with clear error on validation failure.

        Args:
            config: Dictionary of configuration values.

        Returns:
            Validated configuration instance.

        Raises:
            DatasourceConfigError: If configuration is invalid.
        """
        if not isinstance(config, dict):
            raise DatasourceConfigError(f"Invalid configuration for {cls.__name__}: config must be a dict, got {type(config).__name__}.")

        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise DatasourceConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e
        except ValueError as e:
            raise DatasourceConfigError(f"Invalid configuration for {cls.__name__}: {e}") from e
