# src/fixpoint/contracts/references.py
"""Reference identifiers and reference values.

A fixture document is labelled with a RefId so other documents can point at
the entity it produces. RefIds are namespace-qualified by construction, which
is what keeps them apart from literal payload: a plain string such as
"person/me" inside a document is always a literal, only RefId and Reference
values are ever resolved.

Usage:
    me = RefId.parse("person/me")
    post = {"author_id": me, "author_name": ref("person/me", "name")}
"""

from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any, Self, TypeAlias

from fixpoint.contracts.errors import InvalidReferenceError

# Field names and callables cannot be mixed in one access path.
PathSegment: TypeAlias = "Hashable | Callable[[Any], Any]"


@dataclass(frozen=True, order=True)
class RefId:
    """Namespace-qualified label for one fixture document."""

    namespace: str
    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.namespace, str) or not self.namespace:
            raise InvalidReferenceError(f"reference id needs a non-empty namespace: {self.namespace!r}/{self.name!r}")
        if not isinstance(self.name, str) or not self.name:
            raise InvalidReferenceError(f"reference id needs a non-empty name: {self.namespace!r}/{self.name!r}")

    @classmethod
    def parse(cls, value: str) -> Self:
        """Parse "namespace/name". The name part may itself contain slashes."""
        if not isinstance(value, str):
            raise InvalidReferenceError(f"reference id must be a string or RefId, got {type(value).__name__}")
        namespace, sep, name = value.partition("/")
        if not sep:
            raise InvalidReferenceError(f"reference id needs to be namespace-qualified ('ns/name'): {value!r}")
        return cls(namespace, name)

    @classmethod
    def coerce(cls, value: "RefId | str") -> "RefId":
        if isinstance(value, RefId):
            return value
        return cls.parse(value)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


def validate_path(path: tuple[PathSegment, ...]) -> None:
    """Reject access paths that mix field names and callables."""
    callables = [callable(segment) for segment in path]
    if any(callables) and not all(callables):
        raise InvalidReferenceError(f"access path mixes field names and functions: {path!r}")


@dataclass(frozen=True)
class Reference:
    """A field value naming another document, optionally with an access path.

    An empty path resolves to the referenced entity's "id" field. A path of
    field names is looked up structurally; a path of callables is applied
    left to right to the referenced entity's whole stored data.
    """

    ref_id: RefId
    path: tuple[PathSegment, ...] = field(default=())

    def __post_init__(self) -> None:
        if not isinstance(self.ref_id, RefId):
            raise InvalidReferenceError(f"reference target must be a RefId, got {self.ref_id!r}")
        validate_path(self.path)

    @property
    def is_function_path(self) -> bool:
        return bool(self.path) and callable(self.path[0])

    def then(self, *segments: PathSegment) -> "Reference":
        """Return a reference whose path continues with ``segments``."""
        return Reference(self.ref_id, self.path + segments)


def ref(ref_id: RefId | str, *path: PathSegment) -> Reference:
    """Build a Reference value for use inside a fixture document."""
    return Reference(RefId.coerce(ref_id), tuple(path))
