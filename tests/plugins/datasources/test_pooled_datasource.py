# tests/plugins/datasources/test_pooled_datasource.py
"""Tests for the connection-pool decorator around SQL datasources."""

from pathlib import Path

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine
from sqlalchemy.pool import QueuePool

import fixpoint
from fixpoint import NotStartedError, StartupError, as_ref, on_datasource
from fixpoint.core.config import PoolSettings
from fixpoint.plugins.datasources.pooled import PooledDatasource
from fixpoint.plugins.datasources.sql import SqlDatasource
from fixpoint.plugins.protocols import DatasourceProtocol


@pytest.fixture
def people_url(sqlite_url: str) -> str:
    metadata = MetaData()
    Table(
        "people",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(64), nullable=False),
    )
    engine = create_engine(sqlite_url)
    metadata.create_all(engine)
    engine.dispose()
    return sqlite_url


class TestPooledDatasource:
    """Tests for pool construction and delegation."""

    def test_satisfies_protocol(self, people_url: str) -> None:
        pooled = PooledDatasource(SqlDatasource("db", {"url": people_url}))
        assert isinstance(pooled, DatasourceProtocol)
        assert pooled.datasource_id == "db"

    def test_start_builds_queue_pool(self, people_url: str) -> None:
        inner = SqlDatasource("db", {"url": people_url})
        pooled = PooledDatasource(inner, PoolSettings(pool_size=2, max_overflow=1, recycle_seconds=60))

        pooled.start()
        try:
            assert isinstance(pooled.engine.pool, QueuePool)
            assert pooled.engine.pool.size() == 2
            assert inner.started
            assert inner.engine is pooled.engine
        finally:
            pooled.stop()

        assert not inner.started
        with pytest.raises(NotStartedError):
            _ = pooled.engine

    def test_starts_are_counted(self, people_url: str) -> None:
        inner = SqlDatasource("db", {"url": people_url})
        pooled = PooledDatasource(inner)

        engine = pooled.start().engine
        assert pooled.start().engine is engine

        pooled.stop()
        assert pooled.engine is engine
        assert inner.started

        pooled.stop()
        assert not inner.started
        with pytest.raises(NotStartedError):
            _ = pooled.engine
        # Stopping more often than started is a no-op
        pooled.stop()

    def test_nested_rollback_scope_keeps_pool(self, people_url: str) -> None:
        pooled = PooledDatasource(SqlDatasource("db", {"url": people_url}))

        with fixpoint.with_datasource(pooled):
            with fixpoint.with_rollback_datasource(pooled):
                pass
            assert fixpoint.datasource("db") is pooled
            assert pooled.datasource.started

        assert not pooled.datasource.started

    def test_failed_start_releases_pool(self, tmp_path: Path) -> None:
        inner = SqlDatasource("db", {"url": f"sqlite:///{tmp_path / 'missing' / 'x.db'}"})
        pooled = PooledDatasource(inner)

        with pytest.raises(StartupError):
            pooled.start()

        assert not inner.started
        with pytest.raises(NotStartedError):
            _ = inner.engine

    def test_fixtures_through_pool_are_rolled_back(self, people_url: str) -> None:
        pooled = PooledDatasource(SqlDatasource("db", {"url": people_url}), PoolSettings(pool_size=1, max_overflow=0))
        document = as_ref(on_datasource({"db/table": "people", "name": "me"}, "db"), "person/me")

        with fixpoint.with_rollback_datasource(pooled):
            with fixpoint.with_data(document):
                assert fixpoint.id("person/me") == 1
            # Sibling data scopes share the transaction, so the row is still there
            with fixpoint.with_data(document):
                assert fixpoint.id("person/me") == 2

        with fixpoint.with_rollback_datasource(pooled), fixpoint.with_data(document):
            assert fixpoint.id("person/me") == 1


class TestPoolFromConfiguration:
    """Tests for building pooled datasources from options."""

    def test_pool_option_wraps_datasource(self, people_url: str) -> None:
        built = SqlDatasource.from_options("db", {"url": people_url, "pool": {"pool_size": 3}})

        assert isinstance(built, PooledDatasource)
        assert built.pool_settings.pool_size == 3
        assert built.datasource.url == people_url

    def test_no_pool_option_builds_plain_datasource(self, people_url: str) -> None:
        assert isinstance(SqlDatasource.from_options("db", {"url": people_url}), SqlDatasource)

    def test_invalid_pool_option(self, people_url: str) -> None:
        from fixpoint.plugins.config_base import DatasourceConfigError

        with pytest.raises(DatasourceConfigError):
            SqlDatasource.from_options("db", {"url": people_url, "pool": {"pool_size": 0}})
