"""JSON Pointer paths for addressing values inside records.

A pointer is an immutable sequence of segments (property names or list
indices). It is used by both the query engine (to read nested values) and
the patch engine (to locate the target of an edit).

References:
    - RFC 6901 (JavaScript Object Notation (JSON) Pointer)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union


class _Missing:
    """Sentinel type for a path that does not resolve."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()
"""Returned by :meth:`JsonPointer.resolve` when a segment is absent."""

Segment = Union[str, int]


def _escape(segment: Segment) -> str:
    return str(segment).replace("~", "~0").replace("/", "~1")


def _unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


@dataclass(frozen=True, slots=True)
class JsonPointer:
    """Path of segments into a nested structure.

    Example:
        >>> pointer = JsonPointer.of("nested", "value")
        >>> str(pointer)
        '/nested/value'
        >>> pointer.resolve({"nested": {"value": 3}})
        3
    """

    segments: tuple[Segment, ...] = ()

    @classmethod
    def of(cls, *segments: Segment) -> JsonPointer:
        """Create a pointer from individual segments."""
        return cls(tuple(segments))

    @classmethod
    def parse(cls, path: str) -> JsonPointer:
        """Parse an RFC 6901 string such as ``/a/b~1c``."""
        if path == "":
            return cls()
        if not path.startswith("/"):
            raise ValueError(f"JSON pointer must start with '/': {path!r}")
        return cls(tuple(_unescape(part) for part in path[1:].split("/")))

    @property
    def is_root(self) -> bool:
        """True for the empty pointer, which addresses the whole document."""
        return not self.segments

    @property
    def parent(self) -> JsonPointer:
        """Pointer to the container of the addressed value."""
        return JsonPointer(self.segments[:-1])

    @property
    def last(self) -> Segment:
        """Final segment of the pointer."""
        if not self.segments:
            raise ValueError("root pointer has no last segment")
        return self.segments[-1]

    def child(self, segment: Segment) -> JsonPointer:
        """Return a new pointer extended by one segment."""
        return JsonPointer((*self.segments, segment))

    def resolve(self, target: Any) -> Any:
        """Return the value at this path, or ``MISSING`` if it does not resolve."""
        current = target
        for segment in self.segments:
            current = resolve_segment(current, segment)
            if current is MISSING:
                return MISSING
        return current

    def __str__(self) -> str:
        return "".join("/" + _escape(segment) for segment in self.segments)

    def __repr__(self) -> str:
        return f"JsonPointer({str(self)!r})"


def resolve_segment(container: Any, segment: Segment) -> Any:
    """Read one segment from a mapping, a list or an attribute object."""
    if isinstance(container, Mapping):
        if segment in container:
            return container[segment]
        # Segments parsed from strings may address integer keys
        if isinstance(segment, str) and segment.isdigit() and int(segment) in container:
            return container[int(segment)]
        return MISSING
    if isinstance(container, Sequence) and not isinstance(container, (str, bytes)):
        index = list_index(segment)
        if index is None or index >= len(container):
            return MISSING
        return container[index]
    if container is None or isinstance(container, (str, bytes, int, float, bool)):
        return MISSING
    if isinstance(segment, str):
        return getattr(container, segment, MISSING)
    return MISSING


def list_index(segment: Segment) -> int | None:
    """Convert a segment to a non-negative list index, or None."""
    if isinstance(segment, bool):
        return None
    if isinstance(segment, int):
        return segment if segment >= 0 else None
    if segment.isdigit():
        return int(segment)
    return None


PathLike = Union[str, JsonPointer, Sequence[Segment]]
"""A property name, a pointer, or a sequence of segments."""


def to_pointer(path: PathLike) -> JsonPointer:
    """Normalize any accepted path form to a :class:`JsonPointer`.

    A plain string is a single property name, not an RFC 6901 string; use
    :meth:`JsonPointer.parse` for the latter.
    """
    if isinstance(path, JsonPointer):
        return path
    if isinstance(path, str):
        return JsonPointer((path,))
    return JsonPointer(tuple(path))
