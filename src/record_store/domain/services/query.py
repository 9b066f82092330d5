"""Query value objects: base class, ranges and compound queries.

A query is an immutable description of a transformation over an ordered
sequence of records. Evaluation is a pure function of (query, input);
queries never hold or mutate store state, so they are safely shared
between calls and between stores.

Queries render to an RQL-like string through ``str()``, e.g.
``eq(parent,null)|in(parent,("1"))&sort(+name)&limit(10,0)``.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from record_store.domain.value_objects import QueryType

T = TypeVar("T")


def serialize_value(value: Any) -> str:
    """Render a comparison value for query strings."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return "(" + ",".join(serialize_value(v) for v in value) + ")"
    try:
        return json.dumps(value, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return repr(value)


class Query(ABC, Generic[T]):
    """Base class for all queries."""

    query_type: QueryType

    @abstractmethod
    def apply(self, data: Iterable[T]) -> list[T]:
        """Return a new list produced from ``data``."""
        ...

    @abstractmethod
    def __str__(self) -> str:
        ...


class Range(Query[T]):
    """Slice of ``count`` records starting at ``start``.

    Out-of-bounds ranges clamp rather than error:

        >>> Range(100, 5).apply([1, 2, 3])
        []
    """

    query_type = QueryType.RANGE

    __slots__ = ("_start", "_count")

    def __init__(self, start: int, count: int) -> None:
        if start < 0:
            raise ValueError(f"range start must be non-negative, got {start}")
        if count < 0:
            raise ValueError(f"range count must be non-negative, got {count}")
        self._start = start
        self._count = count

    @property
    def start(self) -> int:
        return self._start

    @property
    def count(self) -> int:
        return self._count

    def apply(self, data: Iterable[T]) -> list[T]:
        return list(data)[self._start : self._start + self._count]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return (self._start, self._count) == (other._start, other._count)

    def __hash__(self) -> int:
        return hash((Range, self._start, self._count))

    def __str__(self) -> str:
        return f"limit({self._count},{self._start})"

    def __repr__(self) -> str:
        return f"Range(start={self._start}, count={self._count})"


class CompoundQuery(Query[T]):
    """Ordered list of queries applied left to right.

    Each member consumes the output of the previous one. ``with_query``
    returns a new CompoundQuery; the receiver is never modified.
    """

    query_type = QueryType.COMPOUND

    __slots__ = ("_queries",)

    def __init__(self, queries: Sequence[Query[T]] = ()) -> None:
        flattened: list[Query[T]] = []
        for query in queries:
            # Nested compounds are equivalent to their members in sequence
            if isinstance(query, CompoundQuery):
                flattened.extend(query.queries)
            else:
                flattened.append(query)
        self._queries: tuple[Query[T], ...] = tuple(flattened)

    @property
    def queries(self) -> tuple[Query[T], ...]:
        return self._queries

    def with_query(self, query: Query[T]) -> CompoundQuery[T]:
        """Return a new compound query with ``query`` appended."""
        return CompoundQuery((*self._queries, query))

    def apply(self, data: Iterable[T]) -> list[T]:
        result = list(data)
        for query in self._queries:
            result = query.apply(result)
        return result

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompoundQuery):
            return NotImplemented
        return self._queries == other._queries

    def __hash__(self) -> int:
        return hash((CompoundQuery, self._queries))

    def __str__(self) -> str:
        return "&".join(
            f"({query})" if _needs_grouping(query) else str(query)
            for query in self._queries
        )

    def __repr__(self) -> str:
        return f"CompoundQuery({list(self._queries)!r})"


def _needs_grouping(query: Query[Any]) -> bool:
    return query.query_type is QueryType.FILTER and "|" in str(query)


def create_range(start: int, count: int) -> Range[Any]:
    """Create a range query."""
    return Range(start, count)


def create_compound_query(*queries: Query[Any]) -> CompoundQuery[Any]:
    """Create a compound query applying ``queries`` in order."""
    return CompoundQuery(queries)
