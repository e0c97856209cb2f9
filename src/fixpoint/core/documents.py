# src/fixpoint/core/documents.py
"""Fixture documents: flattening and authoring helpers.

Fixtures are written as arbitrarily nested lists of documents so related
documents can be grouped by helper functions. fixture_documents() flattens
them depth-first, left to right. That order is the insertion order and
therefore the order in which references become resolvable.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from fixpoint.contracts import DATASOURCE_KEY, ID_KEY, RefId


def fixture_documents(fixtures: Any) -> list[dict[str, Any]]:
    """Flatten fixtures into an ordered list of documents.

    Args:
        fixtures: A document (mapping), a possibly nested sequence of
            documents, or None.

    Returns:
        The documents in depth-first, left-to-right order, with None and
        empty sequences dropped.

    Raises:
        TypeError: If a leaf is neither a mapping nor None.
    """
    documents: list[dict[str, Any]] = []
    _collect(fixtures, documents)
    return documents


def _collect(value: Any, out: list[dict[str, Any]]) -> None:
    if value is None:
        return
    if isinstance(value, Mapping):
        out.append(dict(value))
        return
    # Strings are iterable but never fixtures
    if isinstance(value, str | bytes) or not isinstance(value, Iterable):
        raise TypeError(f"fixture must be a document (mapping), a sequence of documents or None, got {type(value).__name__}: {value!r}")
    for item in value:
        _collect(item, out)


def on_datasource(document: Mapping[str, Any], datasource_id: str) -> dict[str, Any]:
    """Return a copy of ``document`` addressed to ``datasource_id``."""
    if not isinstance(document, Mapping):
        raise TypeError(f"document must be a mapping, got {type(document).__name__}")
    return {**document, DATASOURCE_KEY: datasource_id}


def as_ref(document: Mapping[str, Any], ref_id: RefId | str) -> dict[str, Any]:
    """Return a copy of ``document`` labelled with ``ref_id``.

    Raises:
        InvalidReferenceError: If ``ref_id`` is not namespace-qualified.
    """
    if not isinstance(document, Mapping):
        raise TypeError(f"document must be a mapping, got {type(document).__name__}")
    return {**document, ID_KEY: RefId.coerce(ref_id)}
