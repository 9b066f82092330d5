"""Storage port: the backend contract the store depends on.

The store never owns record data; it drives a Storage implementation.
Every data method may either return its result directly or return an
awaitable resolving to it. The store treats both uniformly by chaining
each call through its operation queue.

References:
    - record_store.adapters.outbound.memory_storage (reference backend)
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Awaitable, Hashable, Sequence
from typing import Any, Protocol, TypeVar, Union, runtime_checkable

from record_store.domain.services import Query
from record_store.domain.value_objects import CrudOptions

T = TypeVar("T")

MaybeAwaitable = Union[T, Awaitable[T]]


@runtime_checkable
class Storage(Protocol):
    """Protocol for record storage backends.

    Ordering:
        ``fetch`` returns records in storage order; for the in-memory
        backend that is insertion order, with overwrites keeping their
        original position.

    Errors:
        ``add`` and ``put`` raise ConflictError when
        ``options.reject_overwrite`` is set and an identifier already exists
        or repeats within the call; nothing is written in that case. Any
        other exception is treated by the store as a backend failure.
    """

    @abstractmethod
    def identify(self, records: Sequence[Any]) -> list[Hashable]:
        """Return the identifier of each record (synchronous)."""
        ...

    @abstractmethod
    def create_id(self) -> MaybeAwaitable[str]:
        """Generate a new unique identifier."""
        ...

    @abstractmethod
    def get(self, ids: Sequence[Hashable]) -> MaybeAwaitable[list[Any]]:
        """Return records for ``ids`` in the requested order, omitting missing ones."""
        ...

    @abstractmethod
    def fetch(self, query: Query[Any] | None = None) -> MaybeAwaitable[list[Any]]:
        """Return all records in storage order with ``query`` applied."""
        ...

    @abstractmethod
    def add(self, records: Sequence[Any], options: CrudOptions) -> MaybeAwaitable[list[Any]]:
        """Insert records, returning the stored records."""
        ...

    @abstractmethod
    def put(self, records: Sequence[Any], options: CrudOptions) -> MaybeAwaitable[list[Any]]:
        """Insert or overwrite records, returning the stored records."""
        ...

    @abstractmethod
    def delete(self, ids: Sequence[Hashable]) -> MaybeAwaitable[list[Hashable]]:
        """Remove records, returning the identifiers actually deleted."""
        ...
