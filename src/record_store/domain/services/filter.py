"""Filter queries: predicate trees over path comparisons.

A Filter is built by chaining comparison builders. Every builder returns a
new Filter; the receiver is never modified, so partially built filters can
be shared and extended independently.

Precedence:
    Adjacent terms are joined by an implicit AND. ``or_()`` splits the chain
    into alternatives, so AND binds tighter than OR::

        Filter().equal_to("a", 1).or_().equal_to("b", 2).and_().equal_to("c", 3)

    matches ``a == 1 OR (b == 2 AND c == 3)``. To group differently, pass a
    Filter to ``and_``/``or_``; it is evaluated as a parenthesised term::

        Filter().equal_to("c", 3).and_(Filter().equal_to("a", 1).or_().equal_to("b", 2))

    ``not_()`` negates the next term only.

Evaluation is left to right and short-circuits. A comparison whose path does
not resolve is false; so is an ordering comparison between incomparable
types.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeVar, Union

from record_store.domain.services.equality import deep_equal
from record_store.domain.services.query import Query, serialize_value
from record_store.domain.value_objects import (
    MISSING,
    JsonPointer,
    PathLike,
    QueryType,
    to_pointer,
)

T = TypeVar("T")


class FilterType(Enum):
    """Leaf comparison kinds, valued by their query-string operator."""

    EQUAL_TO = "eq"
    NOT_EQUAL_TO = "ne"
    LESS_THAN = "lt"
    LESS_THAN_OR_EQUAL_TO = "le"
    GREATER_THAN = "gt"
    GREATER_THAN_OR_EQUAL_TO = "ge"
    IN = "in"
    CONTAINS = "contains"
    MATCHES = "match"
    DEEP_EQUAL_TO = "deepEq"
    EXISTS = "exists"
    CUSTOM = "custom"


def _ordered(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def evaluate(actual: Any, expected: Any) -> bool:
        try:
            return bool(compare(actual, expected))
        except TypeError:
            return False

    return evaluate


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return isinstance(expected, str) and expected in actual
    if isinstance(actual, (Sequence, set, frozenset)) and not isinstance(actual, bytes):
        return any(deep_equal(item, expected) for item in actual)
    return False


def _in(actual: Any, expected: tuple[Any, ...]) -> bool:
    return any(deep_equal(actual, candidate) for candidate in expected)


def _matches(actual: Any, expected: re.Pattern[str]) -> bool:
    return isinstance(actual, str) and expected.search(actual) is not None


_EVALUATORS: dict[FilterType, Callable[[Any, Any], bool]] = {
    FilterType.EQUAL_TO: deep_equal,
    FilterType.NOT_EQUAL_TO: lambda actual, expected: not deep_equal(actual, expected),
    FilterType.LESS_THAN: _ordered(lambda a, b: a < b),
    FilterType.LESS_THAN_OR_EQUAL_TO: _ordered(lambda a, b: a <= b),
    FilterType.GREATER_THAN: _ordered(lambda a, b: a > b),
    FilterType.GREATER_THAN_OR_EQUAL_TO: _ordered(lambda a, b: a >= b),
    FilterType.IN: _in,
    FilterType.CONTAINS: _contains,
    FilterType.MATCHES: _matches,
    FilterType.DEEP_EQUAL_TO: deep_equal,
}


@dataclass(frozen=True)
class Comparison:
    """A leaf predicate: compare the value at ``path`` with ``value``."""

    filter_type: FilterType
    path: JsonPointer
    value: Any = None
    predicate: Callable[[Any], bool] | None = None

    def test(self, record: Any) -> bool:
        if self.filter_type is FilterType.CUSTOM:
            return bool(self.predicate(record))
        actual = self.path.resolve(record)
        if self.filter_type is FilterType.EXISTS:
            return actual is not MISSING
        if actual is MISSING:
            return False
        return _EVALUATORS[self.filter_type](actual, self.value)

    def __str__(self) -> str:
        operator = self.filter_type.value
        if self.filter_type is FilterType.CUSTOM:
            name = getattr(self.predicate, "__name__", "predicate")
            return f"{operator}({name})"
        path = _render_path(self.path)
        if self.filter_type is FilterType.EXISTS:
            return f"{operator}({path})"
        if self.filter_type is FilterType.MATCHES:
            return f"{operator}({path},{serialize_value(self.value.pattern)})"
        return f"{operator}({path},{serialize_value(self.value)})"


def _render_path(path: JsonPointer) -> str:
    if len(path.segments) == 1 and isinstance(path.segments[0], str):
        return path.segments[0]
    return str(path)


class _Or:
    """Chain marker separating alternatives."""

    def __repr__(self) -> str:
        return "OR"


_OR = _Or()


@dataclass(frozen=True)
class _Term:
    condition: Union[Comparison, "Filter[Any]"]
    negated: bool = False

    def test(self, record: Any) -> bool:
        return self.condition.test(record) is not self.negated

    def __str__(self) -> str:
        if isinstance(self.condition, Filter):
            text = f"({self.condition})"
        else:
            text = str(self.condition)
        return f"not({text})" if self.negated else text


class Filter(Query[T]):
    """Immutable, composable record predicate.

    An empty filter matches every record.

    Example:
        >>> f = Filter().less_than("value", 2).or_().equal_to("id", "3")
        >>> str(f)
        'lt(value,2)|eq(id,"3")'
    """

    query_type = QueryType.FILTER

    __slots__ = ("_chain", "_negate_next")

    def __init__(self, chain: tuple[Any, ...] = (), negate_next: bool = False) -> None:
        self._chain = chain
        self._negate_next = negate_next

    # Comparison builders

    def equal_to(self, path: PathLike, value: Any) -> Filter[T]:
        return self._compare(FilterType.EQUAL_TO, path, value)

    def not_equal_to(self, path: PathLike, value: Any) -> Filter[T]:
        return self._compare(FilterType.NOT_EQUAL_TO, path, value)

    def less_than(self, path: PathLike, value: Any) -> Filter[T]:
        return self._compare(FilterType.LESS_THAN, path, value)

    def less_than_or_equal_to(self, path: PathLike, value: Any) -> Filter[T]:
        return self._compare(FilterType.LESS_THAN_OR_EQUAL_TO, path, value)

    def greater_than(self, path: PathLike, value: Any) -> Filter[T]:
        return self._compare(FilterType.GREATER_THAN, path, value)

    def greater_than_or_equal_to(self, path: PathLike, value: Any) -> Filter[T]:
        return self._compare(FilterType.GREATER_THAN_OR_EQUAL_TO, path, value)

    def in_(self, path: PathLike, values: Iterable[Any]) -> Filter[T]:
        """Match when the value at ``path`` is one of ``values``."""
        return self._compare(FilterType.IN, path, tuple(values))

    def contains(self, path: PathLike, value: Any) -> Filter[T]:
        """Match when the list or string at ``path`` contains ``value``."""
        return self._compare(FilterType.CONTAINS, path, value)

    def matches(self, path: PathLike, pattern: str | re.Pattern[str]) -> Filter[T]:
        """Match when the string at ``path`` matches the regular expression."""
        return self._compare(FilterType.MATCHES, path, re.compile(pattern))

    def deep_equal_to(self, path: PathLike, value: Any) -> Filter[T]:
        """Match on structural equality of the (possibly nested) value at ``path``."""
        return self._compare(FilterType.DEEP_EQUAL_TO, path, value)

    def exists(self, path: PathLike) -> Filter[T]:
        """Match when ``path`` resolves, even to None."""
        return self._compare(FilterType.EXISTS, path, None)

    def custom(self, predicate: Callable[[T], bool]) -> Filter[T]:
        """Match records for which ``predicate`` returns true."""
        return self._extend(Comparison(FilterType.CUSTOM, JsonPointer(), predicate=predicate))

    # Boolean combinators

    def and_(self, other: Filter[T] | None = None) -> Filter[T]:
        """Conjoin the next term, or ``other`` as a parenthesised group."""
        if other is None:
            return Filter(self._chain, self._negate_next)
        return self._extend(other)

    def or_(self, other: Filter[T] | None = None) -> Filter[T]:
        """Start a new alternative, optionally seeded with ``other`` as a group."""
        alternative = Filter((*self._chain, _OR), self._negate_next)
        return alternative if other is None else alternative._extend(other)

    def not_(self) -> Filter[T]:
        """Negate the next term."""
        return Filter(self._chain, not self._negate_next)

    # Evaluation

    def test(self, record: T) -> bool:
        """Return True if ``record`` satisfies the filter."""
        alternatives = [group for group in self._alternatives() if group]
        if not alternatives:
            return True
        return any(all(term.test(record) for term in group) for group in alternatives)

    def apply(self, data: Iterable[T]) -> list[T]:
        return [record for record in data if self.test(record)]

    def _compare(self, filter_type: FilterType, path: PathLike, value: Any) -> Filter[T]:
        return self._extend(Comparison(filter_type, to_pointer(path), value))

    def _extend(self, condition: Comparison | Filter[Any]) -> Filter[T]:
        return Filter((*self._chain, _Term(condition, self._negate_next)))

    def _alternatives(self) -> list[list[_Term]]:
        groups: list[list[_Term]] = [[]]
        for item in self._chain:
            if item is _OR:
                groups.append([])
            else:
                groups[-1].append(item)
        return groups

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Filter):
            return NotImplemented
        return (self._chain, self._negate_next) == (other._chain, other._negate_next)

    def __hash__(self) -> int:
        return hash((Filter, self._chain, self._negate_next))

    def __str__(self) -> str:
        return "|".join(
            "&".join(str(term) for term in group)
            for group in self._alternatives()
            if group
        )

    def __repr__(self) -> str:
        return f"Filter({str(self)!r})"


def create_filter() -> Filter[Any]:
    """Create an empty filter to chain builders on."""
    return Filter()
