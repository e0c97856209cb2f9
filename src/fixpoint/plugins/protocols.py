# src/fixpoint/plugins/protocols.py
"""Datasource protocol: the capability contract every adapter implements.

This protocol is used for type checking, not runtime enforcement. The
insertion pipeline and the scope functions only ever talk to datasources
through these members.

Lifecycle:
1. __init__(datasource_id, config) - adapter instantiation, no I/O
2. start() - acquire the underlying resource, return the usable handle
3. run_with_rollback() / insert_document() - any number of times
4. stop() - release the resource, best effort
"""

from collections.abc import Mapping
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from fixpoint.contracts import InsertResult


@runtime_checkable
class DatasourceProtocol(Protocol):
    """Protocol for datasource adapters.

    Example:
        class DictDatasource:
            name = "dict"

            def insert_document(self, document):
                row = {**document, "id": next(self._ids)}
                self._rows.append(row)
                return InsertResult(data=row)
    """

    datasource_id: str

    def start(self) -> "DatasourceProtocol":
        """Acquire the underlying resource.

        Returns:
            The handle to register, usually self.

        Raises:
            StartupError: If the resource cannot be acquired.
        """
        ...

    def stop(self) -> None:
        """Release the underlying resource.

        Best effort: failures may be raised, the scope logs them and moves on.
        """
        ...

    def run_with_rollback(self) -> AbstractContextManager["DatasourceProtocol"]:
        """Open a transactional view that is rolled back on exit.

        The yielded view has the same datasource_id. Everything inserted
        through it is undone when the context exits, normally or not.
        """
        ...

    def insert_document(self, document: dict[str, Any]) -> "InsertResult | Mapping[str, Any] | None":
        """Persist one resolved document.

        Args:
            document: Document with references resolved and the
                fixpoint/* keys removed. Adapter-specific keys remain.

        Returns:
            The stored entity as InsertResult (or a mapping with "data" and
            optional "tags"), or None if nothing referenceable was created.

        Raises:
            InsertionError: If the datastore rejects the write.
        """
        ...

    def raw_handle(self) -> Any:
        """Return the underlying native client.

        Raises:
            NotStartedError: If start() has not been called.
        """
        ...
