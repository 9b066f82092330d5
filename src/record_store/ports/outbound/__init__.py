"""Outbound ports - interfaces for external dependencies.

The store depends on a storage backend that it does not own.
"""

from record_store.ports.outbound.storage import MaybeAwaitable, Storage

__all__ = [
    "MaybeAwaitable",
    "Storage",
]
