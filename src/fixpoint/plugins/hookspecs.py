# src/fixpoint/plugins/hookspecs.py
"""pluggy hook specifications for fixpoint datasource plugins.

Plugins implement these hooks to register datasource classes with the
DatasourceManager.

Usage (implementing a plugin):
    from fixpoint.plugins.hookspecs import hookimpl

    class RedisPlugin:
        @hookimpl  # NOT @hookspec - that's for defining specs
        def fixpoint_get_datasources(self):
            return [RedisDatasource]

Note: @hookspec defines the hook interface (done here).
      @hookimpl marks plugin implementations of those hooks.
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from fixpoint.plugins.base import BaseDatasource

# Project name for pluggy
PROJECT_NAME = "fixpoint"

# Hook specification marker
hookspec = pluggy.HookspecMarker(PROJECT_NAME)

# Hook implementation marker (for plugins to use)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class FixpointDatasourceSpec:
    """Hook specifications for datasource plugins."""

    @hookspec
    def fixpoint_get_datasources(self) -> list[type["BaseDatasource"]]:  # type: ignore[empty-body]
        """Return datasource plugin classes.

        Returns:
            List of datasource classes (not instances). Each class carries a
            unique ``name`` that configuration refers to.
        """
