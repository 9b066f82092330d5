"""Application layer - the operation engine and its derived views.

Exports:
    - Store: ordered, observable operation engine over a Storage backend
    - QueryView: store view with a fixed source query
    - TreeStore, TreeState: expand/collapse-aware hierarchical views
    - StoreFuture, Subscription, UpdateStream: observable call results
"""

from record_store.application.observable import StoreFuture, Subscription, UpdateStream
from record_store.application.store import Store
from record_store.application.tree import TreeState, TreeStore
from record_store.application.views import DelegatingStore, Queryable, QueryView

__all__ = [
    "DelegatingStore",
    "Queryable",
    "QueryView",
    "Store",
    "StoreFuture",
    "Subscription",
    "TreeState",
    "TreeStore",
    "UpdateStream",
]
