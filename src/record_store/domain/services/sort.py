"""Sort queries ordering records by one or more paths."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Any, Callable, TypeVar

from record_store.domain.services.query import Query
from record_store.domain.value_objects import (
    MISSING,
    JsonPointer,
    PathLike,
    QueryType,
    to_pointer,
)

T = TypeVar("T")

Comparator = Callable[[Any, Any], int]


def default_comparator(left: Any, right: Any) -> int:
    """Natural ordering; None and missing values order first."""
    left_empty = left is None or left is MISSING
    right_empty = right is None or right is MISSING
    if left_empty or right_empty:
        return int(right_empty) - int(left_empty) if left_empty != right_empty else 0
    try:
        return (left > right) - (left < right)
    except TypeError:
        # Mixed types: group by type name so ordering stays total
        return _fallback(left, right)


def _fallback(left: Any, right: Any) -> int:
    left_key = (type(left).__name__, str(left))
    right_key = (type(right).__name__, str(right))
    return (left_key > right_key) - (left_key < right_key)


@dataclass(frozen=True)
class SortKey:
    """One sort criterion.

    Attributes:
        path: Where to read the sort value in each record
        descending: Reverse the order for this key
        comparator: Optional ``cmp(a, b) -> int`` over the extracted values
    """

    path: JsonPointer
    descending: bool = False
    comparator: Comparator | None = None

    def compare(self, left: Any, right: Any) -> int:
        compare = self.comparator or default_comparator
        result = compare(self.path.resolve(left), self.path.resolve(right))
        return -result if self.descending else result

    def __str__(self) -> str:
        sign = "-" if self.descending else "+"
        segments = self.path.segments
        if len(segments) == 1 and isinstance(segments[0], str):
            return f"{sign}{segments[0]}"
        return f"{sign}{self.path}"


class Sort(Query[T]):
    """Orders records by keys in priority order.

    Sorting is stable: records equal on every key keep their input order,
    including under descending keys.
    """

    query_type = QueryType.SORT

    __slots__ = ("_keys",)

    def __init__(self, keys: tuple[SortKey, ...]) -> None:
        if not keys:
            raise ValueError("a sort needs at least one key")
        self._keys = keys

    @property
    def keys(self) -> tuple[SortKey, ...]:
        return self._keys

    def then_by(
        self,
        path: PathLike,
        descending: bool = False,
        comparator: Comparator | None = None,
    ) -> Sort[T]:
        """Return a new sort with a lower-priority key appended."""
        return Sort((*self._keys, SortKey(to_pointer(path), descending, comparator)))

    def apply(self, data: Iterable[T]) -> list[T]:
        return sorted(data, key=cmp_to_key(self._compare))

    def _compare(self, left: T, right: T) -> int:
        for key in self._keys:
            result = key.compare(left, right)
            if result:
                return result
        return 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sort):
            return NotImplemented
        return self._keys == other._keys

    def __hash__(self) -> int:
        return hash((Sort, self._keys))

    def __str__(self) -> str:
        return "sort(" + ",".join(str(key) for key in self._keys) + ")"

    def __repr__(self) -> str:
        return f"Sort({str(self)!r})"


def create_sort(
    path: PathLike,
    descending: bool = False,
    comparator: Comparator | None = None,
) -> Sort[Any]:
    """Create a single-key sort; chain ``then_by`` for more keys."""
    return Sort((SortKey(to_pointer(path), descending, comparator),))
