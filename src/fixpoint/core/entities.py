# src/fixpoint/core/entities.py
"""Entity store: what the current fixture scope has inserted.

Maps reference identifiers to the stored data of their entities, in
insertion order, plus a tag index for group lookups. The store is
append-only; entries disappear only when the fixture-data scope that
created them is left (see fixpoint.engine.scope).

Nested scopes use derive(): the child starts with every entry of its
parent, so outer entities stay resolvable and their identifiers stay taken,
while additions made in the child never reach the parent.
"""

from collections.abc import Hashable, Iterable, Iterator, Mapping
from typing import Any

from fixpoint.contracts import DuplicateReferenceError, InsertResult, RefId, UnknownReferenceError


class EntityStore:
    """Ordered RefId -> stored data mapping with a tag index.

    Only the insertion pipeline adds entries. Readers use get(), tagged()
    and in_namespace().
    """

    def __init__(self) -> None:
        self._entities: dict[RefId, Mapping[str, Any]] = {}
        self._tags: dict[Hashable, set[RefId]] = {}

    def __contains__(self, ref_id: object) -> bool:
        return ref_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[RefId]:
        return iter(self._entities)

    def __repr__(self) -> str:
        return f"EntityStore({[str(ref_id) for ref_id in self._entities]})"

    def derive(self) -> "EntityStore":
        """Create a child store seeded with this store's entries."""
        child = EntityStore()
        child._entities = dict(self._entities)
        child._tags = {tag: set(ref_ids) for tag, ref_ids in self._tags.items()}
        return child

    def add(
        self,
        ref_id: RefId,
        result: InsertResult,
        *,
        document: dict[str, Any] | None = None,
    ) -> None:
        """Record an inserted entity and index its tags.

        Raises:
            DuplicateReferenceError: If ``ref_id`` is already present.
        """
        if ref_id in self._entities:
            raise DuplicateReferenceError(ref_id, document or {})
        self._entities[ref_id] = result.data
        for tag in result.tags:
            self._tags.setdefault(tag, set()).add(ref_id)

    def get(self, ref_id: RefId) -> Mapping[str, Any]:
        """Return the stored data for ``ref_id``.

        Raises:
            UnknownReferenceError: If nothing was inserted under ``ref_id``.
        """
        try:
            return self._entities[ref_id]
        except KeyError:
            raise UnknownReferenceError(ref_id) from None

    def items(self) -> Iterator[tuple[RefId, Mapping[str, Any]]]:
        return iter(self._entities.items())

    def tagged(self, tags: Iterable[Hashable]) -> list[RefId]:
        """Return identifiers carrying every one of ``tags``, in insertion order.

        An empty tag collection, or a tag no entity declared, yields [].
        """
        tag_sets = [self._tags.get(tag, set()) for tag in tags]
        if not tag_sets:
            return []
        matching = set.intersection(*tag_sets)
        return [ref_id for ref_id in self._entities if ref_id in matching]

    def in_namespace(self, namespace: str) -> list[RefId]:
        """Return identifiers whose namespace is ``namespace``, in insertion order."""
        return [ref_id for ref_id in self._entities if ref_id.namespace == namespace]
