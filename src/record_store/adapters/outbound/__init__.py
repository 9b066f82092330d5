"""Outbound adapters - storage backends."""

from record_store.adapters.outbound.memory_storage import InMemoryStorage

__all__ = ["InMemoryStorage"]
