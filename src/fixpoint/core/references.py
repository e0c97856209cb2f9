# src/fixpoint/core/references.py
"""Reference parsing and resolution.

A document field is a reference when its value is:

- a Reference built with ref(),
- a bare RefId, meaning "the id field of that entity",
- a list or tuple whose first element is itself a reference and whose
  remaining elements are not; those remaining elements extend the access
  path. Nesting unwraps recursively, so [[me, "address"], "city"] is me with
  path ("address", "city"): the inner path comes first, the outer segments
  are appended after it.

A sequence whose elements are all references, such as [me, you], is a plain
sequence of references. A path that mixes in another reference, such as
[me, "name", you], is rejected with InvalidReferenceError: stored field names
are never RefIds.

Everything else is a literal. Only RefId and Reference values can start a
reference, so plain strings never get mistaken for one.
"""

from collections.abc import Callable, Mapping, Sequence
from functools import reduce
from typing import Any

from fixpoint.contracts import (
    InvalidReferenceError,
    MissingPropertyError,
    PathSegment,
    Reference,
    RefId,
    validate_path,
)
from fixpoint.core.entities import EntityStore

# Sentinel for absent path segments (None is a legitimate stored value)
_MISSING = object()


def is_reference(value: Any) -> bool:
    """Whether ``value`` is itself a reference rather than a literal or container.

    Raises:
        InvalidReferenceError: If ``value`` is a positional path that
            contains another reference after its first element.
    """
    if isinstance(value, RefId | Reference):
        return True
    return _is_positional(value)


def _is_positional(value: Any) -> bool:
    if not isinstance(value, list | tuple) or not value or not is_reference(value[0]):
        return False
    trailing = [is_reference(item) for item in value[1:]]
    if not any(trailing):
        return True
    if all(trailing):
        return False
    raise InvalidReferenceError(f"reference path contains another reference: {value!r}")


def parse_reference(value: Any) -> tuple[RefId, tuple[PathSegment, ...]] | None:
    """Split a reference value into its identifier and access path.

    Returns:
        (ref_id, path), or None if ``value`` is a literal.

    Raises:
        InvalidReferenceError: If the combined path mixes field names and
            callables, or contains another reference.
    """
    if isinstance(value, Reference):
        return value.ref_id, value.path
    if isinstance(value, RefId):
        return value, ()
    if _is_positional(value):
        inner = parse_reference(value[0])
        if inner is None:
            raise InvalidReferenceError(f"not a reference: {value[0]!r}")
        ref_id, path = inner
        combined = path + tuple(value[1:])
        validate_path(combined)
        return ref_id, combined
    return None


def _get_segment(data: Any, segment: PathSegment) -> Any:
    if isinstance(data, Mapping):
        try:
            return data.get(segment, _MISSING)
        except TypeError:
            # Unhashable segment
            return _MISSING
    if isinstance(data, Sequence) and not isinstance(data, str | bytes) and isinstance(segment, int):
        try:
            return data[segment]
        except IndexError:
            return _MISSING
    return _MISSING


def lookup_reference(entities: EntityStore, ref_id: RefId, path: Sequence[PathSegment] = ()) -> Any:
    """Read a value out of the entity stored under ``ref_id``.

    An empty path returns the whole stored data. A path of field names is
    followed key by key (integer segments index into sequences). A path of
    callables is applied left to right to the whole stored data.

    Raises:
        UnknownReferenceError: If ``ref_id`` is not in ``entities``.
        MissingPropertyError: If a field-path segment is absent.
        InvalidReferenceError: If the path mixes field names and callables.
    """
    path = tuple(path)
    validate_path(path)
    data = entities.get(ref_id)
    if path and callable(path[0]):
        functions: tuple[Callable[[Any], Any], ...] = path  # type: ignore[assignment]
        return reduce(lambda acc, fn: fn(acc), functions, data)

    current: Any = data
    for segment in path:
        current = _get_segment(current, segment)
        if current is _MISSING:
            raise MissingPropertyError(ref_id, path, data)
    return current


def resolve_references(entities: EntityStore, value: Any) -> Any:
    """Replace every reference inside ``value`` with the data it points at.

    Mappings keep their keys, lists stay lists and tuples stay tuples. A
    reference without an access path resolves to the entity's "id" field.
    """
    parsed = parse_reference(value)
    if parsed is not None:
        ref_id, path = parsed
        return lookup_reference(entities, ref_id, path or ("id",))
    if isinstance(value, Mapping):
        return {key: resolve_references(entities, item) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_references(entities, item) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve_references(entities, item) for item in value)
    return value
