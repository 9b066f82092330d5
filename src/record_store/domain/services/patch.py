"""Patch engine: path-addressed structural edits of a single record.

A Patch is an ordered sequence of operations (add, remove, replace, test)
in the style of JSON Patch. Applying a patch never mutates its input: the
operations run against a deep copy, and the copy is returned only if every
operation succeeds. Patches are value objects and can be applied to any
number of records.

References:
    - RFC 6902 (JavaScript Object Notation (JSON) Patch)
"""

from __future__ import annotations

import copy
import json
from collections.abc import Hashable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, TypeVar

from record_store.domain.services.equality import deep_equal
from record_store.domain.value_objects import (
    MISSING,
    JsonPointer,
    OperationType,
    PathLike,
    list_index,
    resolve_segment,
    to_pointer,
)

T = TypeVar("T")

APPEND_SEGMENT = "-"


class PatchApplicationError(Exception):
    """Raised when a patch operation cannot be applied to a record.

    Attributes:
        path: The pointer that failed to resolve or compare
        operation: The kind of operation that failed
    """

    def __init__(self, message: str, path: JsonPointer, operation: OperationType) -> None:
        super().__init__(message)
        self.path = path
        self.operation = operation


def _undefined(operation: OperationType, path: JsonPointer) -> PatchApplicationError:
    return PatchApplicationError(
        f"Cannot {operation.value} undefined path: {path} on object", path, operation
    )


@dataclass(frozen=True)
class Operation:
    """A single edit at ``path``.

    ``value`` is required for add, replace and test, and ignored for remove.
    """

    op: OperationType
    path: JsonPointer
    value: Any = MISSING

    def __post_init__(self) -> None:
        if self.op is not OperationType.REMOVE and self.value is MISSING:
            raise ValueError(f"{self.op.value} operation requires a value")

    def apply(self, document: Any) -> Any:
        """Apply the edit in place and return the (possibly new) document root."""
        if self.path.is_root:
            return self._apply_to_root(document)

        if self.op is OperationType.TEST:
            actual = self.path.resolve(document)
            if actual is MISSING:
                raise _undefined(self.op, self.path)
            self._check(actual)
            return document

        if self.op is OperationType.ADD:
            container = _materialize(document, self.path.parent, self.op, self.path)
            _insert(container, self.path, copy.deepcopy(self.value))
            return document

        container = self.path.parent.resolve(document)
        if container is MISSING or resolve_segment(container, self.path.last) is MISSING:
            raise _undefined(self.op, self.path)
        if self.op is OperationType.REMOVE:
            _delete(container, self.path)
        else:
            _assign(container, self.path, copy.deepcopy(self.value))
        return document

    def _apply_to_root(self, document: Any) -> Any:
        if self.op is OperationType.REMOVE:
            raise PatchApplicationError("Cannot remove the document root", self.path, self.op)
        if self.op is OperationType.TEST:
            self._check(document)
            return document
        return copy.deepcopy(self.value)

    def _check(self, actual: Any) -> None:
        if not deep_equal(actual, self.value):
            raise PatchApplicationError(
                f"Test failed at path: {str(self.path) or '/'}: expected {self.value!r}, got {actual!r}",
                self.path,
                self.op,
            )

    def to_dict(self) -> dict[str, Any]:
        """Render as an RFC 6902 operation object."""
        rendered: dict[str, Any] = {"op": self.op.value, "path": str(self.path)}
        if self.value is not MISSING:
            rendered["value"] = self.value
        return rendered


def _materialize(
    document: Any, pointer: JsonPointer, op: OperationType, target: JsonPointer
) -> Any:
    """Walk to ``pointer``, creating missing mappings along the way."""
    current = document
    for segment in pointer.segments:
        child = resolve_segment(current, segment)
        if child is MISSING:
            if not isinstance(current, MutableMapping):
                raise _undefined(op, target)
            child = {}
            current[segment] = child
        current = child
    return current


def _insert(container: Any, path: JsonPointer, value: Any) -> None:
    segment = path.last
    if isinstance(container, MutableMapping):
        container[segment] = value
    elif isinstance(container, list):
        if segment == APPEND_SEGMENT:
            container.append(value)
            return
        index = list_index(segment)
        if index is None or index > len(container):
            raise _undefined(OperationType.ADD, path)
        container.insert(index, value)
    else:
        raise _undefined(OperationType.ADD, path)


def _assign(container: Any, path: JsonPointer, value: Any) -> None:
    segment = path.last
    if isinstance(container, MutableMapping):
        container[_mapping_key(container, segment)] = value
    elif isinstance(container, list):
        container[list_index(segment)] = value
    else:
        raise _undefined(OperationType.REPLACE, path)


def _delete(container: Any, path: JsonPointer) -> None:
    segment = path.last
    if isinstance(container, MutableMapping):
        del container[_mapping_key(container, segment)]
    elif isinstance(container, list):
        del container[list_index(segment)]
    else:
        raise _undefined(OperationType.REMOVE, path)


def _mapping_key(container: Mapping[Any, Any], segment: Any) -> Any:
    if segment not in container and isinstance(segment, str) and segment.isdigit():
        return int(segment)
    return segment


class Patch:
    """Ordered, reusable sequence of operations applied atomically.

    Example:
        >>> patch = create_patch([create_operation(OperationType.REPLACE, "value", 2)])
        >>> patch.apply({"id": "1", "value": 1})
        {'id': '1', 'value': 2}
    """

    __slots__ = ("_operations",)

    def __init__(self, operations: Iterable[Operation] = ()) -> None:
        self._operations: tuple[Operation, ...] = tuple(operations)

    @property
    def operations(self) -> tuple[Operation, ...]:
        return self._operations

    def apply(self, record: T) -> T:
        """Return a patched copy of ``record``.

        Raises:
            PatchApplicationError: If any operation fails; ``record`` is
                left untouched.
        """
        working = copy.deepcopy(record)
        for operation in self._operations:
            working = operation.apply(working)
        return working

    def to_list(self) -> list[dict[str, Any]]:
        """Render as an RFC 6902 document."""
        return [operation.to_dict() for operation in self._operations]

    @classmethod
    def from_list(cls, operations: Iterable[Mapping[str, Any]]) -> Patch:
        """Build a patch from RFC 6902 operation objects."""
        return cls(
            create_operation(
                OperationType(item["op"]),
                JsonPointer.parse(item["path"]),
                item.get("value", MISSING),
            )
            for item in operations
        )

    def __add__(self, other: Patch) -> Patch:
        return Patch((*self._operations, *other.operations))

    def __len__(self) -> int:
        return len(self._operations)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Patch):
            return NotImplemented
        return self._operations == other._operations

    def __str__(self) -> str:
        return json.dumps(self.to_list(), default=str)

    def __repr__(self) -> str:
        return f"Patch({self.to_list()!r})"


@dataclass(frozen=True)
class PatchUpdate:
    """A patch addressed to the record with identifier ``id``."""

    id: Hashable
    patch: Patch


def create_operation(op: OperationType, path: PathLike, value: Any = MISSING) -> Operation:
    """Create a patch operation; ``path`` may be a property name or pointer."""
    return Operation(op, to_pointer(path), value)


def create_patch(operations: Iterable[Operation]) -> Patch:
    """Create a patch from operations."""
    return Patch(operations)


def diff(source: Any, target: Any) -> Patch:
    """Compute a patch that turns ``source`` into ``target``.

    Mappings are compared key by key; any other differing value (lists
    included) is replaced as a whole.
    """
    return Patch(_diff(source, target, JsonPointer()))


def _diff(source: Any, target: Any, path: JsonPointer) -> list[Operation]:
    if deep_equal(source, target):
        return []
    if not (isinstance(source, Mapping) and isinstance(target, Mapping)):
        return [Operation(OperationType.REPLACE, path, copy.deepcopy(target))]

    operations: list[Operation] = []
    for key in source:
        if key not in target:
            operations.append(Operation(OperationType.REMOVE, path.child(key)))
    for key, value in target.items():
        if key not in source:
            operations.append(Operation(OperationType.ADD, path.child(key), copy.deepcopy(value)))
        elif isinstance(source[key], Mapping) and isinstance(value, Mapping):
            operations.extend(_diff(source[key], value, path.child(key)))
        elif not deep_equal(source[key], value):
            operations.append(Operation(OperationType.REPLACE, path.child(key), copy.deepcopy(value)))
    return operations
