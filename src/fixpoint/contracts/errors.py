# src/fixpoint/contracts/errors.py
"""Exception taxonomy for fixture insertion.

All exceptions raised by fixpoint derive from FixpointError. The pipeline
never swallows any of them: the first failure aborts the current batch and
surfaces to the caller of the fixture-data scope as an InsertionFailure
wrapping the root cause.

Hierarchy:
    FixpointError
    ├── FixtureError              - malformed or inconsistent fixture documents
    │   ├── MissingDatastoreError
    │   ├── UnknownDatastoreError
    │   ├── DuplicateReferenceError
    │   ├── UnknownReferenceError
    │   ├── MissingPropertyError
    │   ├── InvalidReferenceError
    │   └── InvalidInsertResultError
    ├── InsertionError            - raised by datasource adapters
    ├── InsertionFailure          - pipeline wrapper with document context
    ├── StartupError              - adapter could not acquire its resource
    └── NotStartedError           - raw handle requested before start()
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fixpoint.contracts.references import RefId
    from fixpoint.core.entities import EntityStore


class FixpointError(Exception):
    """Base class for every error raised by fixpoint."""


class FixtureError(FixpointError):
    """A fixture document is malformed or inconsistent with the current scope."""


class MissingDatastoreError(FixtureError):
    """Document does not name the datasource it belongs to."""

    def __init__(self, document: dict[str, Any]) -> None:
        self.document = document
        super().__init__(f"document is missing 'fixpoint/datasource': {document!r}")


class UnknownDatastoreError(FixtureError, LookupError):
    """No datasource is registered under the given id in the current scope."""

    def __init__(self, datasource_id: str) -> None:
        self.datasource_id = datasource_id
        super().__init__(f"no datasource registered as: {datasource_id!r}")


class DuplicateReferenceError(FixtureError):
    """A reference identifier was reused within one entity-store scope."""

    def __init__(self, ref_id: "RefId", document: dict[str, Any]) -> None:
        self.ref_id = ref_id
        self.document = document
        super().__init__(f"duplicate document 'fixpoint/id': {ref_id}\ndocument: {document!r}")


class UnknownReferenceError(FixtureError, LookupError):
    """A reference points at an identifier not present in the entity store.

    Referents must appear earlier in the flattened fixture list than the
    documents referring to them. There is no automatic reordering.
    """

    def __init__(self, ref_id: "RefId") -> None:
        self.ref_id = ref_id
        super().__init__(f"no such document available within the current fixture scope: {ref_id}")


class MissingPropertyError(FixtureError, LookupError):
    """A field-path segment does not exist on the referenced entity."""

    def __init__(self, ref_id: "RefId", path: tuple[Any, ...], data: Any) -> None:
        self.ref_id = ref_id
        self.path = path
        self.data = data
        super().__init__(f"document '{ref_id}' does not contain property {list(path)!r}: {data!r}")


class InvalidReferenceError(FixtureError, ValueError):
    """A reference identifier or reference value is malformed.

    Raised for non namespace-qualified identifiers, for access paths that
    mix field names with callables and for paths holding another reference.
    """


class InvalidInsertResultError(FixtureError):
    """An adapter returned a non-None insert result without stored data."""

    def __init__(self, document: dict[str, Any], result: Any) -> None:
        self.document = document
        self.result = result
        super().__init__(f"insertion result needs a 'data' entry.\ndocument: {document!r}\nresult:   {result!r}")


class InsertionError(FixpointError):
    """Raised by a datasource adapter when a write fails.

    Attributes:
        details: Datastore-specific diagnostics (status codes, response
            bodies, SQL errors). Always a dict so it can be logged as-is.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InsertionFailure(FixpointError):
    """A fixture document could not be inserted.

    Wraps the root cause (available as __cause__) together with enough
    context to locate the faulty fixture without re-running the test.

    Attributes:
        document: The document as written by the test author.
        resolved_document: The document with references resolved, or None
            if resolution itself failed.
        index: Position of the document in the flattened fixture list.
        entities: Entity store holding every document inserted before this
            one. Those inserts are not undone; wrap the scope in a rollback
            scope to discard them.
    """

    def __init__(
        self,
        document: dict[str, Any],
        *,
        resolved_document: dict[str, Any] | None,
        index: int,
        entities: "EntityStore",
        cause: BaseException,
    ) -> None:
        self.document = document
        self.resolved_document = resolved_document
        self.index = index
        self.entities = entities
        super().__init__(f"insertion failed for document #{index}: {document!r}\n({type(cause).__name__}: {cause})")


class StartupError(FixpointError):
    """A datasource failed to acquire its underlying resource."""

    def __init__(self, datasource_id: str, reason: str) -> None:
        self.datasource_id = datasource_id
        super().__init__(f"datasource {datasource_id!r} could not be started: {reason}")


class NotStartedError(FixpointError):
    """The datasource's raw handle was requested before start()."""

    def __init__(self, datasource_id: str) -> None:
        self.datasource_id = datasource_id
        super().__init__(f"datasource {datasource_id!r} has not been started")
