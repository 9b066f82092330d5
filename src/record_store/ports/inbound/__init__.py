"""Inbound ports - API contracts for the record store.

Inbound ports define the interface callers use, together with the
errors that interface raises or reports.
"""

from record_store.ports.inbound.store import (
    BackendError,
    ConflictError,
    NotFoundError,
    PatchApplicationError,
    RecordStore,
    StoreError,
)

__all__ = [
    "BackendError",
    "ConflictError",
    "NotFoundError",
    "PatchApplicationError",
    "RecordStore",
    "StoreError",
]
