# src/fixpoint/engine/scope.py
"""Scoped registry and rollback coordination.

Two pieces of state are scoped rather than global: the active datasources
(id -> started handle) and the entity store. Both live in one immutable
ScopeState held by a ContextVar. Every scope sets a new ScopeState on entry
and resets the ContextVar token on exit, so scopes nest lexically and each
thread (or asyncio task) sees its own stack.

Standard pattern:

    with with_rollback_datasource(SqlDatasource("db", {"url": url})):
        with with_data(fixtures):
            assert property("post/happy", "author") == id("person/me")

start -> open rollback transaction -> insert -> assert -> rollback -> stop.
"""

from collections.abc import Hashable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

import structlog

from fixpoint.contracts import PathSegment, RefId, UnknownDatastoreError
from fixpoint.core.entities import EntityStore
from fixpoint.core.references import lookup_reference
from fixpoint.engine.insertion import insert_fixtures
from fixpoint.plugins.protocols import DatasourceProtocol

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ScopeState:
    """Active datasources and known entities of the innermost scope."""

    datasources: Mapping[str, DatasourceProtocol] = field(default_factory=lambda: MappingProxyType({}))
    entities: EntityStore = field(default_factory=EntityStore)


_scope: ContextVar[ScopeState] = ContextVar("fixpoint_scope")


def current_scope() -> ScopeState:
    """Return the innermost scope state, creating the empty root on first use."""
    state = _scope.get(None)
    if state is None:
        state = ScopeState()
        _scope.set(state)
    return state


@contextmanager
def _push(state: ScopeState) -> Iterator[ScopeState]:
    token = _scope.set(state)
    try:
        yield state
    finally:
        _scope.reset(token)


def _register(state: ScopeState, handles: Iterable[DatasourceProtocol]) -> ScopeState:
    datasources = dict(state.datasources)
    for handle in handles:
        datasources[handle.datasource_id] = handle
    return replace(state, datasources=MappingProxyType(datasources))


def _stop_all(handles: list[DatasourceProtocol]) -> None:
    """Stop handles in reverse start order. Failures are logged, never raised."""
    for handle in reversed(handles):
        try:
            handle.stop()
        except Exception:
            logger.warning("datasource_stop_failed", datasource_id=handle.datasource_id, exc_info=True)


# === Datasource and rollback scopes ===


@contextmanager
def with_datasource(*datasources: DatasourceProtocol) -> Iterator[Any]:
    """Start datasources, register them for the body, stop them afterwards.

    Yields the started handle, or a tuple of handles when given several.
    Datasources are stopped in reverse order even if the body raises; a
    failing stop is logged and neither masks the body's exception nor keeps
    the remaining datasources from stopping.

    Raises:
        StartupError: If a datasource cannot start. Datasources started
            before it are stopped again.
        ValueError: If two datasources share an id.
    """
    seen: set[str] = set()
    for ds in datasources:
        if ds.datasource_id in seen:
            raise ValueError(f"datasource id given twice: {ds.datasource_id!r}")
        seen.add(ds.datasource_id)

    started: list[DatasourceProtocol] = []
    try:
        for ds in datasources:
            started.append(ds.start())
            logger.debug("datasource_started", datasource_id=ds.datasource_id)
    except BaseException:
        _stop_all(started)
        raise

    try:
        with _push(_register(current_scope(), started)):
            yield started[0] if len(started) == 1 else tuple(started)
    finally:
        _stop_all(started)
        logger.debug("datasources_stopped", datasource_ids=[h.datasource_id for h in started])


@contextmanager
def with_rollback(datasource_or_id: DatasourceProtocol | str) -> Iterator[DatasourceProtocol]:
    """Run the body against a transactional view of a registered datasource.

    The view replaces the datasource under the same id for the body, so
    fixtures inserted inside go through it. Everything is undone on exit.

    Raises:
        UnknownDatastoreError: If the datasource is not registered.
    """
    if isinstance(datasource_or_id, str):
        datasource_id = datasource_or_id
    else:
        datasource_id = datasource_or_id.datasource_id
    handle = datasource(datasource_id)

    with handle.run_with_rollback() as view:
        logger.debug("rollback_scope_entered", datasource_id=datasource_id)
        with _push(_register(current_scope(), [view])):
            yield view
    logger.debug("rollback_scope_exited", datasource_id=datasource_id)


@contextmanager
def with_rollback_datasource(ds: DatasourceProtocol) -> Iterator[DatasourceProtocol]:
    """Start ``ds`` and run the body inside a rollback scope on it."""
    with with_datasource(ds) as handle, with_rollback(handle) as view:
        yield view


# === Fixture-data scope ===


@contextmanager
def with_data(*fixtures: Any) -> Iterator[EntityStore]:
    """Insert fixtures and make the resulting entities current for the body.

    The new store starts from the current one, so outer entities stay
    resolvable. On exit the previous store becomes current again.

    Raises:
        InsertionFailure: If a document cannot be inserted.
    """
    state = current_scope()
    store = insert_fixtures(state.entities.derive(), state.datasources, list(fixtures))
    with _push(replace(state, entities=store)):
        yield store


# === Lookups against the current scope ===


def datasource(datasource_id: str) -> DatasourceProtocol:
    """Return the active handle registered under ``datasource_id``.

    Raises:
        UnknownDatastoreError: If no such datasource is active.
    """
    handle = current_scope().datasources.get(datasource_id)
    if handle is None:
        raise UnknownDatastoreError(datasource_id)
    return handle


def maybe_datasource(datasource_id: str) -> DatasourceProtocol | None:
    return current_scope().datasources.get(datasource_id)


def raw_datasource(datasource_id: str) -> Any:
    """Return the native client of an active datasource (engine, connection, http client)."""
    return datasource(datasource_id).raw_handle()


def active_datasources() -> Mapping[str, DatasourceProtocol]:
    return current_scope().datasources


def entities() -> EntityStore:
    """Return the entity store of the current fixture-data scope."""
    return current_scope().entities


def property(ref_id: RefId | str, *path: PathSegment) -> Any:
    """Look up a value of one inserted entity.

    Without a path the entity's whole stored data is returned.

    Raises:
        UnknownReferenceError: If ``ref_id`` was not inserted in this scope.
        MissingPropertyError: If a path segment does not exist.
    """
    return lookup_reference(entities(), RefId.coerce(ref_id), path)


def properties(ref_ids: Iterable[RefId | str], *path: PathSegment) -> list[Any]:
    """Look up the same value in several entities."""
    return [property(ref_id, *path) for ref_id in ref_ids]


def id(ref_id: RefId | str) -> Any:
    """Return the "id" field of an inserted entity."""
    return property(ref_id, "id")


def ids(ref_ids: Iterable[RefId | str]) -> list[Any]:
    return properties(ref_ids, "id")


def match(tags: Iterable[Hashable], *path: PathSegment) -> list[Any]:
    """Look up a value for every entity tagged with all of ``tags``.

    Results follow insertion order. An empty list means no entity carries
    every tag.
    """
    store = entities()
    return [lookup_reference(store, ref_id, path) for ref_id in store.tagged(tags)]


def by_namespace(namespace: str, *path: PathSegment) -> dict[RefId, Any]:
    """Look up a value for every entity whose reference id is in ``namespace``."""
    store = entities()
    return {ref_id: lookup_reference(store, ref_id, path) for ref_id in store.in_namespace(namespace)}
