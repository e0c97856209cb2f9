# src/fixpoint/plugins/manager.py
"""Datasource plugin manager for registration and construction.

Uses pluggy for hook-based plugin registration.
"""

from typing import Any

import pluggy
import structlog

from fixpoint.core.config import DatasourceSettings, FixpointSettings
from fixpoint.plugins.config_base import DatasourceConfigError
from fixpoint.plugins.hookspecs import PROJECT_NAME, FixpointDatasourceSpec, hookimpl
from fixpoint.plugins.protocols import DatasourceProtocol

logger = structlog.get_logger(__name__)


class BuiltinDatasources:
    """Registers the datasource adapters shipped with fixpoint."""

    @hookimpl
    def fixpoint_get_datasources(self) -> list[type[Any]]:
        from fixpoint.plugins.datasources.search import SearchIndexDatasource
        from fixpoint.plugins.datasources.sql import SqlDatasource

        return [SqlDatasource, SearchIndexDatasource]


class DatasourceManager:
    """Manages datasource plugin registration and construction.

    Usage:
        manager = DatasourceManager()
        manager.register_builtin_plugins()

        datasources = manager.create_datasources(settings)
        db = manager.create_datasource("db", DatasourceSettings(plugin="sql", options={...}))
    """

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(FixpointDatasourceSpec)

        # Map name to plugin class for duplicate detection
        self._datasources: dict[str, type[Any]] = {}

    def register_builtin_plugins(self) -> None:
        """Register the built-in sql and search datasources."""
        self.register(BuiltinDatasources())

    def register(self, plugin: Any) -> None:
        """Register a plugin.

        Args:
            plugin: Plugin instance implementing fixpoint_get_datasources

        Raises:
            ValueError: If two registered classes share a plugin name
        """
        self._pm.register(plugin)
        try:
            self._refresh_cache()
        except ValueError:
            self._pm.unregister(plugin)
            raise

    def _refresh_cache(self) -> None:
        new_datasources: dict[str, type[Any]] = {}
        for datasources in self._pm.hook.fixpoint_get_datasources():
            for cls in datasources:
                name = cls.name
                if name in new_datasources:
                    raise ValueError(f"Duplicate datasource plugin name: '{name}'. Already registered by {new_datasources[name].__name__}")
                new_datasources[name] = cls

        # All validated, update cache
        self._datasources = new_datasources

    # === Lookup ===

    def get_datasources(self) -> list[type[Any]]:
        """Get all registered datasource plugin classes."""
        return list(self._datasources.values())

    def get_datasource_by_name(self, name: str) -> type[Any] | None:
        """Get datasource plugin class by name."""
        return self._datasources.get(name)

    # === Construction ===

    def create_datasource(self, datasource_id: str, settings: DatasourceSettings) -> DatasourceProtocol:
        """Build an unstarted datasource from its configuration.

        Plugin classes may define a ``from_options(datasource_id, options)``
        classmethod to choose what to build (e.g. a pooled wrapper); otherwise
        the class is called with (datasource_id, options).

        Raises:
            DatasourceConfigError: If the plugin is unknown or rejects its options.
        """
        cls = self.get_datasource_by_name(settings.plugin)
        if cls is None:
            available = ", ".join(sorted(self._datasources)) or "none"
            raise DatasourceConfigError(f"Unknown datasource plugin {settings.plugin!r} for {datasource_id!r} (available: {available})")

        factory = getattr(cls, "from_options", cls)
        datasource: DatasourceProtocol = factory(datasource_id, dict(settings.options))
        logger.debug("datasource_created", datasource_id=datasource_id, plugin=settings.plugin)
        return datasource

    def create_datasources(self, settings: FixpointSettings) -> list[DatasourceProtocol]:
        """Build every configured datasource, in configuration order."""
        return [self.create_datasource(datasource_id, ds_settings) for datasource_id, ds_settings in settings.datasources.items()]
