"""Domain services for the record store.

Pure, stateless engines evaluated by the application layer:

    Query Engine:
        - Filter, Sort, Range, CompoundQuery and their factories
    Patch Engine:
        - Operation, Patch, PatchUpdate, diff, PatchApplicationError
"""

from record_store.domain.services.equality import deep_equal
from record_store.domain.services.filter import (
    Comparison,
    Filter,
    FilterType,
    create_filter,
)
from record_store.domain.services.patch import (
    Operation,
    Patch,
    PatchApplicationError,
    PatchUpdate,
    create_operation,
    create_patch,
    diff,
)
from record_store.domain.services.query import (
    CompoundQuery,
    Query,
    Range,
    create_compound_query,
    create_range,
)
from record_store.domain.services.sort import Sort, SortKey, create_sort

__all__ = [
    "deep_equal",
    # Query engine
    "Query",
    "Filter",
    "FilterType",
    "Comparison",
    "Sort",
    "SortKey",
    "Range",
    "CompoundQuery",
    "create_filter",
    "create_sort",
    "create_range",
    "create_compound_query",
    # Patch engine
    "Operation",
    "Patch",
    "PatchUpdate",
    "PatchApplicationError",
    "create_operation",
    "create_patch",
    "diff",
]
