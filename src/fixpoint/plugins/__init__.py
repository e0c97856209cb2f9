# src/fixpoint/plugins/__init__.py
"""Plugin system: datasource adapters via pluggy.

- Protocols: the capability contract adapters implement
- Base classes: lifecycle bookkeeping for adapters
- Config: pydantic base for adapter options
- Manager: registration and construction from configuration
- Hookspecs: pluggy hook definitions
"""

from fixpoint.plugins.base import BaseDatasource
from fixpoint.plugins.config_base import DatasourceConfig, DatasourceConfigError
from fixpoint.plugins.hookspecs import hookimpl, hookspec
from fixpoint.plugins.manager import DatasourceManager
from fixpoint.plugins.protocols import DatasourceProtocol

__all__ = [
    "BaseDatasource",
    "DatasourceConfig",
    "DatasourceConfigError",
    "DatasourceManager",
    "DatasourceProtocol",
    "hookimpl",
    "hookspec",
]
