"""Record store port: the API offered to callers, and its error taxonomy.

Every call returns immediately with a future-like handle that can be
awaited and subscribed to. Calls on one store instance take effect in the
order they were made, regardless of backend latency.

Error propagation:
    - Whole-call failures (ConflictError, BackendError) reject the call's
      future and push an error to its observable.
    - Per-item failures (NotFoundError on delete or patch,
      PatchApplicationError on patch) are reported in the UpdateResult's
      ``failed_data`` and the call itself succeeds.
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Hashable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

from record_store.domain.services import PatchApplicationError

if TYPE_CHECKING:
    from record_store.application.observable import StoreFuture
    from record_store.domain.entities import UpdateResult
    from record_store.domain.services import Query


class StoreError(Exception):
    """Base class for store failures."""

    pass


class ConflictError(StoreError):
    """Raised when a write would overwrite an existing identifier.

    No record of the rejected call is committed.
    """

    def __init__(self, ids: Sequence[Hashable], message: str = "Objects already exist in store"):
        super().__init__(message)
        self.ids = list(ids)


class NotFoundError(StoreError):
    """An identifier did not match any stored record."""

    def __init__(self, id: Hashable):
        super().__init__(f"Object with id {id!r} not found in store")
        self.id = id


class BackendError(StoreError):
    """A failure surfaced by the storage backend.

    The backend's exception is chained as ``__cause__`` and its message is
    preserved.
    """

    pass


class RecordStore(Protocol):
    """Protocol for the ordered operation engine."""

    @abstractmethod
    def add(self, records: Any, *, reject_overwrite: bool = True) -> StoreFuture[UpdateResult[Any]]:
        """Insert one or more records."""
        ...

    @abstractmethod
    def put(self, records: Any, *, reject_overwrite: bool = False) -> StoreFuture[UpdateResult[Any]]:
        """Insert or overwrite one or more records."""
        ...

    @abstractmethod
    def patch(self, updates: Any) -> StoreFuture[UpdateResult[Any]]:
        """Apply patches to stored records, each item independently."""
        ...

    @abstractmethod
    def delete(self, ids: Any) -> StoreFuture[UpdateResult[Any]]:
        """Remove records by identifier."""
        ...

    @abstractmethod
    def get(self, ids: Any) -> StoreFuture[list[Any]]:
        """Return records for identifiers in the requested order."""
        ...

    @abstractmethod
    def fetch(self, query: Query[Any] | None = None) -> StoreFuture[list[Any]]:
        """Return all records with an optional query applied."""
        ...

    @abstractmethod
    def identify(self, records: Any) -> list[Hashable]:
        """Return identifiers of records without consulting storage."""
        ...

    @abstractmethod
    def create_id(self) -> StoreFuture[str]:
        """Generate a new unique identifier."""
        ...


__all__ = [
    "BackendError",
    "ConflictError",
    "NotFoundError",
    "PatchApplicationError",
    "RecordStore",
    "StoreError",
]
