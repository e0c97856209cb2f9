# src/fixpoint/engine/__init__.py
"""Fixture engine: insertion pipeline and scoped registry.

Example:
    from fixpoint.engine import with_data, with_rollback_datasource, id, property
    from fixpoint.plugins.datasources.sql import SqlDatasource

    with with_rollback_datasource(SqlDatasource("db", {"url": "sqlite:///test.db"})):
        with with_data(fixtures):
            assert property("post/happy", "author") == id("person/me")
"""

from fixpoint.engine.insertion import insert_fixtures
from fixpoint.engine.scope import (
    ScopeState,
    active_datasources,
    by_namespace,
    current_scope,
    datasource,
    entities,
    id,
    ids,
    match,
    maybe_datasource,
    properties,
    property,
    raw_datasource,
    with_data,
    with_datasource,
    with_rollback,
    with_rollback_datasource,
)

__all__ = [
    "ScopeState",
    "active_datasources",
    "by_namespace",
    "current_scope",
    "datasource",
    "entities",
    "id",
    "ids",
    "insert_fixtures",
    "match",
    "maybe_datasource",
    "properties",
    "property",
    "raw_datasource",
    "with_data",
    "with_datasource",
    "with_rollback",
    "with_rollback_datasource",
]
