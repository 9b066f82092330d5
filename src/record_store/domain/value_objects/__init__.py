"""Value objects for the record store domain.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal.

Exports:
    Identifiers:
        - Identifier: Key of a record within a store
        - IdentityResolver: Derives identifiers by property or function
        - generate_id: Collision-resistant identifier factory

    Paths:
        - JsonPointer: Immutable path of property/index segments
        - MISSING: Sentinel for a path that does not resolve
        - to_pointer: Normalizes property names and segment sequences

    Store Types:
        - StoreOperation: ADD, PUT, PATCH, DELETE
        - OperationType: Patch operation kinds
        - QueryType: Query kinds
        - CrudOptions: Write options forwarded to storage
"""

from record_store.domain.value_objects.identifiers import (
    DEFAULT_ID_PROPERTY,
    Identifier,
    IdentityResolver,
    generate_id,
)
from record_store.domain.value_objects.json_pointer import (
    MISSING,
    JsonPointer,
    PathLike,
    Segment,
    list_index,
    resolve_segment,
    to_pointer,
)
from record_store.domain.value_objects.store_types import (
    CrudOptions,
    OperationType,
    QueryType,
    StoreOperation,
)

__all__ = [
    # Identifiers
    "DEFAULT_ID_PROPERTY",
    "Identifier",
    "IdentityResolver",
    "generate_id",
    # Paths
    "MISSING",
    "JsonPointer",
    "PathLike",
    "Segment",
    "list_index",
    "resolve_segment",
    "to_pointer",
    # Store types
    "CrudOptions",
    "OperationType",
    "QueryType",
    "StoreOperation",
]
