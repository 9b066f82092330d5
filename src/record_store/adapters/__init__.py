"""Adapters layer - concrete implementations of ports.

Outbound adapters:
    - InMemoryStorage: dictionary-backed Storage implementation
"""

from record_store.adapters.outbound import InMemoryStorage

__all__ = ["InMemoryStorage"]
