# tests/plugins/datasources/test_sql_datasource.py
"""Tests for the SQLAlchemy-backed datasource, against file-backed SQLite."""

from typing import Any

import pytest
from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, create_engine, func, select, text

import fixpoint
from fixpoint import InsertionError, InsertionFailure, NotStartedError, RefId, StartupError, as_ref, on_datasource
from fixpoint.plugins.config_base import DatasourceConfigError
from fixpoint.plugins.datasources.sql import SqlDatasource

ME = RefId("person", "me")


@pytest.fixture
def schema_url(sqlite_url: str) -> str:
    """SQLite URL with "people" and "posts" tables created and committed."""
    metadata = MetaData()
    Table(
        "people",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(64), nullable=False),
        Column("status", String(16), nullable=False, server_default=text("'new'")),
    )
    Table(
        "posts",
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("author", Integer, ForeignKey("people.id"), nullable=False),
        Column("text", String(256)),
    )
    Table(
        "labels",
        metadata,
        Column("code", String(16), primary_key=True),
        Column("title", String(64)),
    )
    engine = create_engine(sqlite_url)
    metadata.create_all(engine)
    engine.dispose()
    return sqlite_url


def _count(url: str, table: str) -> int:
    engine = create_engine(url)
    try:
        with engine.connect() as connection:
            return connection.execute(select(func.count()).select_from(text(table))).scalar_one()
    finally:
        engine.dispose()


def _row(table: str, ref_id: str, **columns: Any) -> dict[str, Any]:
    return as_ref(on_datasource({"db/table": table, **columns}, "db"), ref_id)


class TestSqlDatasourceConfig:
    """Tests for configuration validation."""

    def test_url_required(self) -> None:
        with pytest.raises(DatasourceConfigError):
            SqlDatasource("db", {})

    def test_unknown_option_rejected(self) -> None:
        with pytest.raises(DatasourceConfigError):
            SqlDatasource("db", {"url": "sqlite://", "hosts": "x"})


class TestSqlLifecycle:
    """Tests for start/stop and raw handles."""

    def test_start_and_stop(self, schema_url: str) -> None:
        ds = SqlDatasource("db", {"url": schema_url})
        with pytest.raises(NotStartedError):
            ds.raw_handle()

        ds.start()
        assert ds.raw_handle() is ds.engine
        ds.stop()

        with pytest.raises(NotStartedError):
            ds.raw_handle()

    def test_unreachable_database(self, tmp_path: Any) -> None:
        ds = SqlDatasource("db", {"url": f"sqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}"})
        with pytest.raises(StartupError) as exc_info:
            ds.start()
        assert exc_info.value.datasource_id == "db"
        assert not ds.started

    def test_foreign_keys_enforced(self, schema_url: str) -> None:
        ds = SqlDatasource("db", {"url": schema_url})
        with fixpoint.with_rollback_datasource(ds):
            with pytest.raises(InsertionFailure) as exc_info, fixpoint.with_data(_row("posts", "post/orphan", author=999)):
                pass
        assert isinstance(exc_info.value.__cause__, InsertionError)


class TestSqlInsertion:
    """Tests for inserting rows and reading them back."""

    def test_generated_values_read_back(self, schema_url: str) -> None:
        with fixpoint.with_rollback_datasource(SqlDatasource("db", {"url": schema_url})):
            with fixpoint.with_data(_row("people", "person/me", name="me")):
                assert fixpoint.property("person/me") == {"id": 1, "name": "me", "status": "new"}

    def test_references_between_tables(self, schema_url: str) -> None:
        fixtures = [
            _row("people", "person/me", name="me"),
            _row("people", "person/you", name="you"),
            _row("posts", "post/happy", author=RefId("person", "you"), text="hi"),
        ]
        with fixpoint.with_rollback_datasource(SqlDatasource("db", {"url": schema_url})), fixpoint.with_data(fixtures):
            assert fixpoint.property("post/happy", "author") == fixpoint.id("person/you") == 2

    def test_rollback_leaves_tables_empty(self, schema_url: str) -> None:
        with fixpoint.with_rollback_datasource(SqlDatasource("db", {"url": schema_url})):
            with fixpoint.with_data(_row("people", "person/me", name="me")):
                connection = fixpoint.raw_datasource("db")
                assert connection.execute(text("SELECT count(*) FROM people")).scalar_one() == 1

        assert _count(schema_url, "people") == 0

    def test_rollback_after_failure(self, schema_url: str) -> None:
        fixtures = [_row("people", "person/me", name="me"), _row("nope", "thing/x", name="x")]
        with pytest.raises(InsertionFailure), fixpoint.with_rollback_datasource(SqlDatasource("db", {"url": schema_url})):
            with fixpoint.with_data(fixtures):
                pass

        assert _count(schema_url, "people") == 0

    def test_missing_table_key(self, schema_url: str) -> None:
        ds = SqlDatasource("db", {"url": schema_url}).start()
        try:
            with pytest.raises(InsertionError, match="db/table"):
                ds.insert_document({"name": "me"})
        finally:
            ds.stop()

    def test_unknown_table(self, schema_url: str) -> None:
        ds = SqlDatasource("db", {"url": schema_url}).start()
        try:
            with ds.run_with_rollback() as view, pytest.raises(InsertionError) as exc_info:
                view.insert_document({"db/table": "nope", "name": "x"})
            assert exc_info.value.details["table"] == "nope"
        finally:
            ds.stop()

    def test_empty_payload_creates_nothing(self, schema_url: str) -> None:
        ds = SqlDatasource("db", {"url": schema_url}).start()
        try:
            assert ds.insert_document({"db/table": "people"}) is None
        finally:
            ds.stop()

    def test_explicit_primary_key_column(self, schema_url: str) -> None:
        with fixpoint.with_rollback_datasource(SqlDatasource("db", {"url": schema_url})):
            with fixpoint.with_data(_row("labels", "label/bug", code="bug", title="Bug") | {"db/primary_key": "code"}):
                assert fixpoint.property("label/bug") == {"code": "bug", "title": "Bug"}

    def test_tags(self, schema_url: str) -> None:
        fixtures = [
            _row("people", "person/me", name="me") | {"db/tags": ["admin", "active"]},
            _row("people", "person/you", name="you") | {"db/tags": "active"},
        ]
        with fixpoint.with_rollback_datasource(SqlDatasource("db", {"url": schema_url})), fixpoint.with_data(fixtures):
            assert fixpoint.match(["active"], "name") == ["me", "you"]
            assert fixpoint.match(["admin"], "name") == ["me"]

    def test_hooks(self, schema_url: str) -> None:
        seen: list[dict[str, Any]] = []

        def upper_name(payload: dict[str, Any]) -> dict[str, Any]:
            return {**payload, "name": payload["name"].upper()}

        def add_greeting(connection: Any, document: dict[str, Any], row: dict[str, Any]) -> dict[str, Any]:
            seen.append(document)
            return {**row, "greeting": f"hello {row['name']}"}

        ds = SqlDatasource("db", {"url": schema_url}, pre_insert=upper_name, post_insert=add_greeting)
        with fixpoint.with_rollback_datasource(ds), fixpoint.with_data(_row("people", "person/me", name="me")):
            assert fixpoint.property(ME, "name") == "ME"
            assert fixpoint.property(ME, "greeting") == "hello ME"

        assert seen[0]["db/table"] == "people"

    def test_insert_outside_rollback_commits(self, schema_url: str) -> None:
        ds = SqlDatasource("db", {"url": schema_url})
        with fixpoint.with_datasource(ds), fixpoint.with_data(_row("people", "person/me", name="me")):
            pass

        assert _count(schema_url, "people") == 1
