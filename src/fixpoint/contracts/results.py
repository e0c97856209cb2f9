# src/fixpoint/contracts/results.py
"""Insert results returned by datasource adapters."""

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from fixpoint.contracts.errors import InvalidInsertResultError


@dataclass(frozen=True)
class InsertResult:
    """What an adapter stored for one fixture document.

    Attributes:
        data: The entity's stored data, as the datastore returned or echoed it.
            This is what reference lookups read from.
        tags: Tags declared for the entity, used for group lookups via match().
    """

    data: Mapping[str, Any]
    tags: frozenset[Hashable] = field(default_factory=frozenset)

    @classmethod
    def from_adapter(cls, document: dict[str, Any], result: Any) -> "InsertResult | None":
        """Normalize an adapter's return value.

        Adapters may return None (no entity created), an InsertResult, or a
        mapping with a "data" entry and optional "tags". Anything that
        carries no stored data violates the capability contract.

        Raises:
            InvalidInsertResultError: If a non-None result has no data.
        """
        if result is None:
            return None
        if isinstance(result, InsertResult):
            data: Any = result.data
            tags: Iterable[Hashable] = result.tags
        elif isinstance(result, Mapping):
            data = result.get("data")
            tags = result.get("tags") or ()
        else:
            raise InvalidInsertResultError(document, result)

        if data is None:
            raise InvalidInsertResultError(document, result)
        if not isinstance(data, Mapping):
            raise InvalidInsertResultError(document, result)
        # Copy so later mutation by the adapter cannot leak into the entity store
        return cls(data=MappingProxyType(dict(data)), tags=frozenset(tags))
