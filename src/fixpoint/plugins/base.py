# src/fixpoint/plugins/base.py
"""Base class for datasource adapters.

Adapters SHOULD subclass BaseDatasource. It keeps the lifecycle bookkeeping
in one place so concrete adapters only implement the datastore-specific
parts:

    _open()  -> acquire the client/engine/connection
    _close() -> release it
    _handle() -> the native client exposed through raw_handle()
    run_with_rollback(), insert_document()

Lifecycle Contract:
    start() -> [run_with_rollback() / insert_document()]* -> stop()

- start: counted. Only the first start() calls _open(); later calls on a
  started adapter return it unchanged. Any exception raised by _open() that
  is not already a FixpointError is wrapped in StartupError so callers see
  one error type.
- stop: balances one start(). _close() runs when the last start() is
  balanced, so nested scopes sharing one adapter never close it under the
  outer scope. Exceptions propagate; the scope that owns the datasource
  logs and swallows them.
- raw_handle: raises NotStartedError before start().
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import AbstractContextManager
from typing import Any, Self

from fixpoint.contracts import FixpointError, InsertResult, NotStartedError, StartupError


class BaseDatasource(ABC):
    """Base class for datasource adapters.

    Subclass and implement _open(), _close(), _handle(), run_with_rollback()
    and insert_document().

    Example:
        class ListDatasource(BaseDatasource):
            name = "list"

            def _open(self) -> None:
                self._rows = []

            def _close(self) -> None:
                self._rows = []

            def _handle(self) -> list:
                return self._rows

            @contextmanager
            def run_with_rollback(self):
                mark = len(self._rows)
                try:
                    yield self
                finally:
                    del self._rows[mark:]

            def insert_document(self, document):
                self._rows.append(document)
                return InsertResult(data=document)
    """

    name: str
    plugin_version: str = "1.0.0"

    def __init__(self, datasource_id: str, config: dict[str, Any] | None = None) -> None:
        """Initialize with the id fixture documents use to address this datasource.

        Args:
            datasource_id: Registry key; the value of "fixpoint/datasource".
            config: Plugin-specific options. Subclasses validate them.
        """
        if not datasource_id:
            raise ValueError("datasource_id must be a non-empty string")
        self.datasource_id = datasource_id
        self.config = dict(config or {})
        self._started = False
        self._start_count = 0

    def __repr__(self) -> str:
        state = "started" if self._started else "stopped"
        return f"<{type(self).__name__} {self.datasource_id!r} ({state})>"

    @property
    def started(self) -> bool:
        return self._started

    # === Lifecycle ===

    def start(self) -> Self:
        """Acquire the underlying resource and return self.

        Raises:
            StartupError: If _open() fails.
        """
        if self._started:
            self._start_count += 1
            return self
        try:
            self._open()
        except FixpointError:
            raise
        except Exception as e:
            raise StartupError(self.datasource_id, f"{type(e).__name__}: {e}") from e
        self._started = True
        self._start_count = 1
        return self

    def stop(self) -> None:
        """Balance one start(); release the resource after the last one.

        A no-op when not started.
        """
        if not self._started:
            return
        self._start_count -= 1
        if self._start_count > 0:
            return
        self._started = False
        self._close()

    def raw_handle(self) -> Any:
        """Return the native client.

        Raises:
            NotStartedError: If start() has not been called.
        """
        if not self._started:
            raise NotStartedError(self.datasource_id)
        return self._handle()

    # === Adapter hooks ===

    @abstractmethod
    def _open(self) -> None:
        """Acquire the underlying resource."""

    @abstractmethod
    def _close(self) -> None:
        """Release the underlying resource."""

    @abstractmethod
    def _handle(self) -> Any:
        """Return the native client for raw_handle()."""

    @abstractmethod
    def run_with_rollback(self) -> AbstractContextManager[Any]:
        """Yield a transactional view that is rolled back on exit."""

    @abstractmethod
    def insert_document(self, document: dict[str, Any]) -> InsertResult | Mapping[str, Any] | None:
        """Persist one resolved document."""


def strip_keys(document: Mapping[str, Any], prefix: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a document into (payload, adapter options) by key prefix.

    Adapters use a "<prefix>/" namespace for their own document keys, e.g.
    "db/table". Those are options, never columns or fields.

    Returns:
        (payload without prefixed keys, {short_name: value} of prefixed keys)
    """
    marker = f"{prefix}/"
    payload: dict[str, Any] = {}
    options: dict[str, Any] = {}
    for key, value in document.items():
        if isinstance(key, str) and key.startswith(marker):
            options[key[len(marker) :]] = value
        else:
            payload[key] = value
    return payload, options


def iter_tags(value: Any) -> Iterator[Any]:
    """Yield tags from a single tag or an iterable of tags."""
    if value is None:
        return
    if isinstance(value, str | bytes) or not hasattr(value, "__iter__"):
        yield value
        return
    yield from value
