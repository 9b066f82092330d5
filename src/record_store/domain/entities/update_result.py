"""UpdateResult entity describing the outcome of one CRUD call.

Each add/put/patch/delete call produces exactly one UpdateResult. Per-item
failures (a patch that does not apply, a delete of an absent identifier)
are collected in ``failed_data`` and do not fail the call as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from record_store.domain.value_objects import StoreOperation

T = TypeVar("T")


@dataclass(frozen=True)
class ItemFailure:
    """A single item that could not be applied.

    Attributes:
        item: The identifier (patch, delete) or record that failed
        error: The reason, e.g. NotFoundError or PatchApplicationError
    """

    item: Any
    error: Exception

    @property
    def reason(self) -> str:
        """Human readable failure reason."""
        return str(self.error)


@dataclass(frozen=True)
class UpdateResult(Generic[T]):
    """Outcome of a single mutating store call.

    Example:
        >>> result = UpdateResult(StoreOperation.DELETE, successful_data=["1"])
        >>> result.succeeded
        True
    """

    type: StoreOperation
    successful_data: list[Any] = field(default_factory=list)
    failed_data: list[ItemFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True when no item failed."""
        return not self.failed_data

    @property
    def failed_items(self) -> list[Any]:
        """Identifiers or records of the failed items."""
        return [failure.item for failure in self.failed_data]
