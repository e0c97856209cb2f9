# src/fixpoint/core/__init__.py
"""Core infrastructure: Documents, References, Entity store, Configuration, Logging."""

from fixpoint.core.config import (
    DatasourceSettings,
    FixpointSettings,
    LoggingSettings,
    PoolSettings,
    load_settings,
)
from fixpoint.core.documents import as_ref, fixture_documents, on_datasource
from fixpoint.core.entities import EntityStore
from fixpoint.core.logging import configure_logging, get_logger
from fixpoint.core.references import (
    is_reference,
    lookup_reference,
    parse_reference,
    resolve_references,
)

__all__ = [
    "DatasourceSettings",
    "EntityStore",
    "FixpointSettings",
    "LoggingSettings",
    "PoolSettings",
    "as_ref",
    "configure_logging",
    "fixture_documents",
    "get_logger",
    "is_reference",
    "load_settings",
    "lookup_reference",
    "on_datasource",
    "parse_reference",
    "resolve_references",
]
