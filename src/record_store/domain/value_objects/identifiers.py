"""Identifiers and identity resolution for stored records.

A record's identity is derived, not stored separately: either a declared
property name or a user-supplied function maps a record to its identifier.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Hashable, NewType

Identifier = NewType("Identifier", str)
"""Unique key of a record within one store. Usually a string, but any
hashable scalar returned by an identity function is accepted."""

DEFAULT_ID_PROPERTY = "id"


def generate_id() -> Identifier:
    """Generate a collision-resistant identifier (UUID4)."""
    return Identifier(str(uuid.uuid4()))


@dataclass(frozen=True, slots=True)
class IdentityResolver:
    """Maps records to identifiers.

    Exactly one of ``id_property`` and ``id_function`` is set. Records are
    read as mappings first and fall back to attribute access, so both plain
    dicts and dataclass instances can be identified by property.

    Example:
        >>> resolver = IdentityResolver(id_property="key")
        >>> resolver.identify({"key": "a"})
        'a'
    """

    id_property: str | None = DEFAULT_ID_PROPERTY
    id_function: Callable[[Any], Hashable] | None = None

    def __post_init__(self) -> None:
        """Validate that exactly one identity source is configured."""
        if self.id_property is not None and self.id_function is not None:
            raise ValueError("id_property and id_function are mutually exclusive")
        if self.id_property is None and self.id_function is None:
            raise ValueError("one of id_property or id_function is required")

    @classmethod
    def create(
        cls,
        id_property: str | None = None,
        id_function: Callable[[Any], Hashable] | None = None,
        default_property: str = DEFAULT_ID_PROPERTY,
    ) -> IdentityResolver:
        """Build a resolver, falling back to ``default_property``."""
        if id_property is not None and id_function is not None:
            raise ValueError("id_property and id_function are mutually exclusive")
        if id_function is not None:
            return cls(id_property=None, id_function=id_function)
        return cls(id_property=id_property or default_property)

    def identify(self, record: Any) -> Hashable | None:
        """Return the identifier of a record, or None if it has none."""
        if self.id_function is not None:
            return self.id_function(record)
        if isinstance(record, Mapping):
            return record.get(self.id_property)
        return getattr(record, self.id_property, None)

    def can_assign(self, record: Any) -> bool:
        """Return True if an identifier can be written into the record."""
        return self.id_property is not None and isinstance(record, dict)

    def assign(self, record: dict[str, Any], identifier: Hashable) -> dict[str, Any]:
        """Return a copy of the record carrying the given identifier."""
        if not self.can_assign(record):
            raise TypeError("identifiers can only be assigned to dict records by property")
        return {**record, self.id_property: identifier}
