"""Shared contracts: value types and the error taxonomy.

Leaf module: imports nothing from fixpoint.core or fixpoint.engine.
"""

from fixpoint.contracts.errors import (
    DuplicateReferenceError,
    FixpointError,
    FixtureError,
    InsertionError,
    InsertionFailure,
    InvalidInsertResultError,
    InvalidReferenceError,
    MissingDatastoreError,
    MissingPropertyError,
    NotStartedError,
    StartupError,
    UnknownDatastoreError,
    UnknownReferenceError,
)
from fixpoint.contracts.references import PathSegment, Reference, RefId, ref, validate_path
from fixpoint.contracts.results import InsertResult

# Reserved fixture document keys.
DATASOURCE_KEY = "fixpoint/datasource"
ID_KEY = "fixpoint/id"
RESERVED_KEYS = frozenset({DATASOURCE_KEY, ID_KEY})

__all__ = [
    "DATASOURCE_KEY",
    "ID_KEY",
    "RESERVED_KEYS",
    "DuplicateReferenceError",
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
    "PathSegment",
    "RefId",
    "Reference",
    "StartupError",
    "UnknownDatastoreError",
    "UnknownReferenceError",
    "ref",
    "validate_path",
]
