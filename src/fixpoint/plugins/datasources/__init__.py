# src/fixpoint/plugins/datasources/__init__.py
"""Built-in datasource adapters: SQL (SQLAlchemy), pooled SQL, search index (httpx)."""

from fixpoint.plugins.datasources.pooled import PooledDatasource
from fixpoint.plugins.datasources.search import SearchIndexDatasource, index_name
from fixpoint.plugins.datasources.sql import SqlDatasource

__all__ = [
    "PooledDatasource",
    "SearchIndexDatasource",
    "SqlDatasource",
    "index_name",
]
