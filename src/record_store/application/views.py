"""Derived stores.

A QueryView is a store that forwards every call to its source, applying a
fixed source query to each fetch. Views compose: a view of a view applies
both queries, outermost last. Writes through a view land in the underlying
store and take their place in its operation order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from record_store.domain.services import (
    CompoundQuery,
    Filter,
    Query,
    create_range,
    create_sort,
)
from record_store.domain.value_objects import PathLike

if TYPE_CHECKING:
    from record_store.application.observable import StoreFuture, UpdateStream
    from record_store.application.store import Store
    from record_store.domain.entities import UpdateResult
    from record_store.domain.services.sort import Comparator
    from record_store.infrastructure.metrics import MetricsRegistry

T = TypeVar("T")


class Queryable(ABC, Generic[T]):
    """Query builders shared by stores and views.

    Each builder returns a new derived store; the receiver is unchanged.
    """

    @abstractmethod
    def _derive(self, query: Query[T]) -> Any:
        ...

    def filter(self, filter: Filter[T]) -> Any:
        return self._derive(filter)

    def sort(
        self,
        path: PathLike,
        descending: bool = False,
        comparator: Comparator | None = None,
    ) -> Any:
        return self._derive(create_sort(path, descending, comparator))

    def range(self, start: int, count: int) -> Any:
        return self._derive(create_range(start, count))

    def query(self, query: Query[T]) -> Any:
        return self._derive(query)


class DelegatingStore(Queryable[T]):
    """Forwards the store API to ``source``."""

    def __init__(self, source: Store[T] | DelegatingStore[T]) -> None:
        self._source = source

    @property
    def source(self) -> Store[T] | DelegatingStore[T]:
        return self._source

    @property
    def root(self) -> Store[T]:
        """The store at the bottom of the delegation chain."""
        return self._source.root

    @property
    def updates(self) -> UpdateStream[UpdateResult[T]]:
        return self._source.updates

    @property
    def metrics(self) -> MetricsRegistry:
        return self._source.metrics

    def add(self, records: Any, *, reject_overwrite: bool = True) -> StoreFuture[UpdateResult[T]]:
        return self._source.add(records, reject_overwrite=reject_overwrite)

    def put(self, records: Any, *, reject_overwrite: bool = False) -> StoreFuture[UpdateResult[T]]:
        return self._source.put(records, reject_overwrite=reject_overwrite)

    def patch(self, updates: Any) -> StoreFuture[UpdateResult[T]]:
        return self._source.patch(updates)

    def delete(self, ids: Any) -> StoreFuture[UpdateResult[T]]:
        return self._source.delete(ids)

    def get(self, ids: Any) -> StoreFuture[list[T]]:
        return self._source.get(ids)

    def fetch(self, query: Query[T] | None = None) -> StoreFuture[list[T]]:
        return self._source.fetch(query)

    def identify(self, records: Any) -> list[Hashable]:
        return self._source.identify(records)

    def create_id(self) -> StoreFuture[str]:
        return self._source.create_id()


class QueryView(DelegatingStore[T]):
    """A store whose fetches see ``source`` through a fixed query.

    Example:
        >>> cheap = store.filter(Filter().less_than("price", 10)).sort("price")
        >>> await cheap.fetch(create_range(0, 5))
    """

    def __init__(self, source: Store[T] | DelegatingStore[T], query: Query[T]) -> None:
        super().__init__(source)
        self._query = query

    @property
    def source_query(self) -> Query[T]:
        return self._query

    def fetch(self, query: Query[T] | None = None) -> StoreFuture[list[T]]:
        combined = CompoundQuery((self._query,))
        if query is not None:
            combined = combined.with_query(query)
        return self._source.fetch(combined)

    def _derive(self, query: Query[T]) -> QueryView[T]:
        return QueryView(self, query)

    def __repr__(self) -> str:
        return f"QueryView({self._query})"
