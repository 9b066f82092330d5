"""Structural equality shared by filters and patch tests."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def is_sequence(value: Any) -> bool:
    """True for list-like values, excluding strings and bytes."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def deep_equal(left: Any, right: Any) -> bool:
    """Structural equality that distinguishes booleans from numbers.

    Mappings compare by key set and values, sequences element-wise, so a
    tuple equals a list holding the same items.
    """
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        if left.keys() != right.keys():
            return False
        return all(deep_equal(left[key], right[key]) for key in left)
    if is_sequence(left) and is_sequence(right):
        if len(left) != len(right):
            return False
        return all(deep_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right
