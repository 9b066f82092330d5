"""In-memory storage adapter.

A synchronous implementation of the Storage port keeping records in an
insertion-ordered dictionary. Data is not persisted across restarts.

Usage:
    storage = InMemoryStorage()
    storage.add([{"id": "1", "value": 1}], CrudOptions(reject_overwrite=True))
    records = storage.get(["1"])
"""

from __future__ import annotations

import copy
from collections.abc import Hashable, Sequence
from typing import Any, Generic, TypeVar

from record_store.domain.services import Query
from record_store.domain.value_objects import (
    CrudOptions,
    IdentityResolver,
    generate_id,
)
from record_store.ports.inbound import ConflictError

T = TypeVar("T")


class InMemoryStorage(Generic[T]):
    """In-memory implementation of the Storage port.

    Records are copied on the way in and on the way out, so callers never
    share mutable state with the stored data. Records without an
    identifier are assigned a generated one when identity is property-based.
    Any other record without an identifier is rejected.
    """

    def __init__(self, identity: IdentityResolver | None = None) -> None:
        """Initialize empty storage.

        Args:
            identity: How to derive identifiers (defaults to the ``id`` property)
        """
        self._identity = identity or IdentityResolver()
        self._records: dict[Hashable, T] = {}

    @property
    def identity(self) -> IdentityResolver:
        return self._identity

    def identify(self, records: Sequence[T]) -> list[Hashable]:
        return [self._identity.identify(record) for record in records]

    def create_id(self) -> str:
        return generate_id()

    def get(self, ids: Sequence[Hashable]) -> list[T]:
        return [copy.deepcopy(self._records[id]) for id in ids if id in self._records]

    def fetch(self, query: Query[T] | None = None) -> list[T]:
        records = [copy.deepcopy(record) for record in self._records.values()]
        return query.apply(records) if query is not None else records

    def add(self, records: Sequence[T], options: CrudOptions) -> list[T]:
        """Insert records.

        Raises:
            ConflictError: If ``options.reject_overwrite`` is set and any
                identifier exists or repeats; nothing is written.
            ValueError: If a record has no identifier and none can be
                assigned; nothing is written.
        """
        return self._write(records, options)

    def put(self, records: Sequence[T], options: CrudOptions) -> list[T]:
        """Insert or overwrite records; overwrites keep their position.

        Raises the same errors as ``add``.
        """
        return self._write(records, options)

    def delete(self, ids: Sequence[Hashable]) -> list[Hashable]:
        deleted = []
        for id in ids:
            if id in self._records:
                del self._records[id]
                deleted.append(id)
        return deleted

    def _write(self, records: Sequence[T], options: CrudOptions) -> list[T]:
        prepared = [self._with_identity(record) for record in records]
        ids = self.identify(prepared)

        for id, record in zip(ids, prepared):
            if id is None:
                raise ValueError(f"Record has no identifier: {record!r}")

        if options.reject_overwrite:
            seen: set[Hashable] = set()
            conflicts = []
            for id in ids:
                if id in self._records or id in seen:
                    conflicts.append(id)
                seen.add(id)
            if conflicts:
                raise ConflictError(conflicts)

        for id, record in zip(ids, prepared):
            self._records[id] = copy.deepcopy(record)
        return prepared

    def _with_identity(self, record: T) -> T:
        if self._identity.identify(record) is None and self._identity.can_assign(record):
            return self._identity.assign(record, generate_id())
        return record

    def clear(self) -> None:
        """Remove all records."""
        self._records.clear()

    def __len__(self) -> int:
        """Number of stored records."""
        return len(self._records)
