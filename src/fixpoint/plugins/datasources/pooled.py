# src/fixpoint/plugins/datasources/pooled.py
"""Connection pool decorator for SQL datasources.

Wraps a SqlDatasource by composition: start() builds a QueuePool engine from
the wrapped datasource's URL, binds it into the wrapped datasource and starts
it. Starts are counted: the stop() balancing the first start() stops the
wrapped datasource and disposes the pool. Everything else forwards, so the
pool is transparent to fixtures and lookups.

Usage:
    db = PooledDatasource(
        SqlDatasource("db", {"url": "postgresql://localhost/test"}),
        PoolSettings(pool_size=2, max_overflow=0),
    )
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Self

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from fixpoint.contracts import InsertResult, NotStartedError, StartupError
from fixpoint.core.config import PoolSettings
from fixpoint.plugins.datasources.sql import SqlDatasource, configure_sqlite

logger = structlog.get_logger(__name__)


class PooledDatasource:
    """Run a SqlDatasource on a pooled engine."""

    def __init__(self, datasource: SqlDatasource, pool: PoolSettings | None = None) -> None:
        self.datasource = datasource
        self.pool_settings = pool or PoolSettings()
        self._engine: Engine | None = None
        self._start_count = 0

    def __repr__(self) -> str:
        return f"<PooledDatasource {self.datasource!r} pool_size={self.pool_settings.pool_size}>"

    @property
    def datasource_id(self) -> str:
        return self.datasource.datasource_id

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise NotStartedError(self.datasource_id)
        return self._engine

    def start(self) -> Self:
        """Create the pool and start the wrapped datasource on it.

        Raises:
            StartupError: If the pool cannot be created or the wrapped
                datasource fails to start. The pool is disposed again.
        """
        if self._engine is not None:
            self._start_count += 1
            return self

        settings = self.pool_settings
        try:
            engine = create_engine(
                self.datasource.url,
                poolclass=QueuePool,
                pool_size=settings.pool_size,
                max_overflow=settings.max_overflow,
                pool_timeout=settings.timeout_seconds,
                pool_recycle=settings.recycle_seconds if settings.recycle_seconds is not None else -1,
                pool_pre_ping=True,
            )
        except Exception as e:
            raise StartupError(self.datasource_id, f"{type(e).__name__}: {e}") from e
        if self.datasource.url.startswith("sqlite"):
            configure_sqlite(engine)

        self.datasource.bind_engine(engine)
        try:
            self.datasource.start()
        except BaseException:
            self.datasource.bind_engine(None)
            engine.dispose()
            raise

        self._engine = engine
        self._start_count = 1
        logger.debug(
            "connection_pool_started",
            datasource_id=self.datasource_id,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
        )
        return self

    def stop(self) -> None:
        """Balance one start(); after the last one stop the wrapped datasource and dispose the pool."""
        engine = self._engine
        if engine is None:
            return
        self._start_count -= 1
        if self._start_count > 0:
            return
        self._engine = None
        try:
            self.datasource.stop()
        finally:
            self.datasource.bind_engine(None)
            engine.dispose()
            logger.debug("connection_pool_disposed", datasource_id=self.datasource_id)

    @contextmanager
    def run_with_rollback(self) -> Iterator[SqlDatasource]:
        """Yield the wrapped datasource's transactional view on a pooled connection."""
        with self.datasource.run_with_rollback() as view:
            yield view

    def insert_document(self, document: dict[str, Any]) -> InsertResult | None:
        return self.datasource.insert_document(document)

    def raw_handle(self) -> Any:
        return self.datasource.raw_handle()
