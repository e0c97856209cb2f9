# src/fixpoint/engine/insertion.py
"""Insertion pipeline: fixture documents in, populated entity store out.

For each document, in flattened order:

1. Read "fixpoint/datasource" (MissingDatastoreError if absent).
2. Read "fixpoint/id", if any, and reject it when the entity store already
   holds it (DuplicateReferenceError). Nothing is written in that case.
3. Strip the fixpoint/* keys and resolve references against the store.
4. Look up the addressed datasource (UnknownDatastoreError).
5. Insert. None means "no entity"; anything else must carry stored data
   (InvalidInsertResultError).
6. Record the stored data and its tags under the reference id.

Any failure in steps 1-6 aborts the batch. It is re-raised as an
InsertionFailure carrying the document, its resolved form and the store as
it stood before the failing document. Documents inserted before the failure
stay inserted: only an enclosing rollback scope undoes them.
"""

from collections.abc import Mapping
from typing import Any

import structlog

from fixpoint.contracts import (
    DATASOURCE_KEY,
    ID_KEY,
    RESERVED_KEYS,
    DuplicateReferenceError,
    InsertionFailure,
    InsertResult,
    MissingDatastoreError,
    RefId,
    UnknownDatastoreError,
)
from fixpoint.core.documents import fixture_documents
from fixpoint.core.entities import EntityStore
from fixpoint.core.references import resolve_references
from fixpoint.plugins.protocols import DatasourceProtocol

logger = structlog.get_logger(__name__)


def insert_fixtures(
    entities: EntityStore,
    registry: Mapping[str, DatasourceProtocol],
    fixtures: Any,
) -> EntityStore:
    """Insert fixtures in order, recording each entity in ``entities``.

    Args:
        entities: Store to add to. Mutated in place.
        registry: Active datasources keyed by datasource id.
        fixtures: A document, a nested sequence of documents, or None.

    Returns:
        ``entities``, for chaining.

    Raises:
        InsertionFailure: On the first document that cannot be inserted.
        TypeError: If ``fixtures`` contains something that is not a document.
    """
    documents = fixture_documents(fixtures)
    for index, document in enumerate(documents):
        try:
            _insert_document(entities, registry, document, index)
        except Exception as e:
            failure = InsertionFailure(
                document,
                resolved_document=_try_resolve(entities, document),
                index=index,
                entities=entities,
                cause=e,
            )
            logger.warning(
                "fixture_insertion_failed",
                index=index,
                datasource_id=document.get(DATASOURCE_KEY),
                ref_id=_format_ref_id(document.get(ID_KEY)),
                error_type=type(e).__name__,
                error=str(e),
            )
            raise failure from e
    return entities


def _insert_document(
    entities: EntityStore,
    registry: Mapping[str, DatasourceProtocol],
    document: dict[str, Any],
    index: int,
) -> None:
    datasource_id = document.get(DATASOURCE_KEY)
    if datasource_id is None:
        raise MissingDatastoreError(document)

    ref_id: RefId | None = None
    if document.get(ID_KEY) is not None:
        ref_id = RefId.coerce(document[ID_KEY])
        if ref_id in entities:
            raise DuplicateReferenceError(ref_id, document)

    resolved = _resolve_payload(entities, document)

    datasource = registry.get(datasource_id)
    if datasource is None:
        raise UnknownDatastoreError(datasource_id)

    result = InsertResult.from_adapter(document, datasource.insert_document(resolved))
    if result is None:
        logger.debug("fixture_skipped", index=index, datasource_id=datasource_id, ref_id=_format_ref_id(ref_id))
        return

    if ref_id is not None:
        entities.add(ref_id, result, document=document)
    logger.debug(
        "fixture_inserted",
        index=index,
        datasource_id=datasource_id,
        ref_id=_format_ref_id(ref_id),
        tags=sorted(map(repr, result.tags)),
    )


def _resolve_payload(entities: EntityStore, document: Mapping[str, Any]) -> dict[str, Any]:
    payload = {key: value for key, value in document.items() if key not in RESERVED_KEYS}
    resolved: dict[str, Any] = resolve_references(entities, payload)
    return resolved


def _try_resolve(entities: EntityStore, document: Mapping[str, Any]) -> dict[str, Any] | None:
    """Resolve ``document`` for diagnostics, or None if resolution itself fails."""
    try:
        return _resolve_payload(entities, document)
    except Exception:
        return None


def _format_ref_id(value: Any) -> str | None:
    return None if value is None else str(value)
