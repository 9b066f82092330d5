"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: the API offered to callers (RecordStore) and its errors
- Outbound ports: dependencies on external systems (Storage)

Adapters implement these ports with concrete functionality.
"""

from record_store.ports.inbound import (
    BackendError,
    ConflictError,
    NotFoundError,
    PatchApplicationError,
    RecordStore,
    StoreError,
)
from record_store.ports.outbound import MaybeAwaitable, Storage

__all__ = [
    # Inbound ports
    "BackendError",
    "ConflictError",
    "NotFoundError",
    "PatchApplicationError",
    "RecordStore",
    "StoreError",
    # Outbound ports
    "MaybeAwaitable",
    "Storage",
]
