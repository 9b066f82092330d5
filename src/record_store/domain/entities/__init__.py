"""Domain entities for the record store.

Exports:
    - UpdateResult: Outcome of one add/put/patch/delete call
    - ItemFailure: A failed item with its reason
"""

from record_store.domain.entities.update_result import ItemFailure, UpdateResult

__all__ = [
    "ItemFailure",
    "UpdateResult",
]
