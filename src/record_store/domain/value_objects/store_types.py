"""Enumerations and option types shared by the store and its backends."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StoreOperation(Enum):
    """Kinds of mutating store calls reported in an UpdateResult."""

    ADD = "add"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"


class OperationType(Enum):
    """Patch operation kinds (RFC 6902 subset)."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    TEST = "test"


class QueryType(Enum):
    """Kinds of query value objects."""

    FILTER = "filter"
    SORT = "sort"
    RANGE = "range"
    COMPOUND = "compound"


@dataclass(frozen=True, slots=True)
class CrudOptions:
    """Options passed from the store to the storage backend on writes.

    Attributes:
        reject_overwrite: Fail the whole call with a conflict if any
            identifier already exists (or repeats within the call).
    """

    reject_overwrite: bool = False
