"""
fixpoint: Declarative, rollback-safe test fixtures across datastores.

Fixture documents describe records to create; fixpoint inserts them in
order, resolves references between them and lets tests read back generated
values:

    import fixpoint
    from fixpoint import RefId, as_ref, on_datasource, ref

    PEOPLE = [
        as_ref(on_datasource({"db/table": "people", "name": "me", "age": 27}, "db"), "person/me"),
        as_ref(on_datasource({"db/table": "posts", "author": RefId.parse("person/me"), "text": "hi"}, "db"), "post/happy"),
    ]

    with fixpoint.with_rollback_datasource(SqlDatasource("db", {"url": url})):
        with fixpoint.with_data(PEOPLE):
            assert fixpoint.property("post/happy", "author") == fixpoint.id("person/me")
"""

from fixpoint.contracts import (
    DATASOURCE_KEY,
    ID_KEY,
    DuplicateReferenceError,
    FixpointError,
    FixtureError,
    InsertionError,
    InsertionFailure,
    InsertResult,
    InvalidInsertResultError,
    InvalidReferenceError,
    MissingDatastoreError,
    MissingPropertyError,
    NotStartedError,
    Reference,
    RefId,
    StartupError,
    UnknownDatastoreError,
    UnknownReferenceError,
    ref,
)
from fixpoint.core.documents import as_ref, fixture_documents, on_datasource
from fixpoint.core.entities import EntityStore
from fixpoint.engine import (
    by_namespace,
    datasource,
    entities,
    id,
    ids,
    insert_fixtures,
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

__version__ = "0.1.0"

__all__ = [
    "DATASOURCE_KEY",
    "ID_KEY",
    "DuplicateReferenceError",
    "EntityStore",
    "FixpointError",
    "FixtureError",
    "InsertResult",
    "InsertionError",
    "InsertionFailure",
    "InvalidInsertResultError",
    "InvalidReferenceError",
    "MissingDatastoreError",
    "MissingPropertyError",
    "NotStartedError",
    "RefId",
    "Reference",
    "StartupError",
    "UnknownDatastoreError",
    "UnknownReferenceError",
    "__version__",
    "as_ref",
    "by_namespace",
    "datasource",
    "entities",
    "fixture_documents",
    "id",
    "ids",
    "insert_fixtures",
    "match",
    "maybe_datasource",
    "on_datasource",
    "properties",
    "property",
    "raw_datasource",
    "ref",
    "with_data",
    "with_datasource",
    "with_rollback",
    "with_rollback_datasource",
]
