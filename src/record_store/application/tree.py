"""Hierarchical views over a flat store.

Records reference their parent by identifier through a parent property. A
TreeStore shows the records whose parent is expanded, plus the roots
(parent None or absent). Expansion state lives in a TreeState that derived
tree views share; ``tree()`` starts a fresh one over the same records.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from record_store.application.observable import StoreFuture
from record_store.application.views import DelegatingStore, QueryView
from record_store.domain.services import CompoundQuery, Filter, Query
from record_store.infrastructure.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class TreeState:
    """Set of expanded identifiers."""

    expanded: set[Hashable] = field(default_factory=set)

    def expand(self, ids: Iterable[Hashable]) -> int:
        """Mark ids expanded; returns how many were newly added."""
        before = len(self.expanded)
        self.expanded.update(ids)
        return len(self.expanded) - before

    def collapse(self, ids: Iterable[Hashable]) -> int:
        """Mark ids collapsed; returns how many were removed."""
        before = len(self.expanded)
        self.expanded.difference_update(ids)
        return before - len(self.expanded)


def _as_ids(ids: Any) -> list[Hashable]:
    if isinstance(ids, (list, tuple, set, frozenset)):
        return list(ids)
    return [ids]


class TreeStore(DelegatingStore[T], Generic[T]):
    """Expand/collapse-aware view of records linked by a parent property.

    ``fetch`` sees roots and the children of expanded records only;
    ``get_children`` sees every child of a record that this view's own
    queries admit. Writes go to the underlying store.

    Example:
        >>> tree = TreeStore(store)
        >>> tree.expand("1")
        >>> await tree.fetch()  # roots and the children of "1"
    """

    def __init__(
        self,
        source: Any,
        parent_property: str | None = None,
        state: TreeState | None = None,
    ) -> None:
        super().__init__(source)
        self._parent_property = parent_property or source.root.settings.parent_property
        self._state = state if state is not None else TreeState()

    @property
    def parent_property(self) -> str:
        return self._parent_property

    @property
    def state(self) -> TreeState:
        return self._state

    @property
    def expanded(self) -> frozenset[Hashable]:
        return frozenset(self._state.expanded)

    def is_expanded(self, id: Hashable) -> bool:
        return id in self._state.expanded

    def expand(self, ids: Any) -> None:
        """Expand records so their children become visible. Idempotent."""
        added = self._state.expand(_as_ids(ids))
        if added:
            self.metrics.tree_expansions_total.inc(added)
        logger.debug("tree_expanded", added=added, expanded=len(self._state.expanded))

    def collapse(self, ids: Any) -> None:
        """Hide the children of records. Idempotent."""
        removed = self._state.collapse(_as_ids(ids))
        logger.debug("tree_collapsed", removed=removed, expanded=len(self._state.expanded))

    def tree(self) -> TreeStore[T]:
        """A tree over the same records with nothing expanded."""
        return TreeStore(self._source, self._parent_property, TreeState())

    def get_root_collection(self) -> TreeStore[T]:
        """Tree view restricted to records without a parent."""
        return self._derive(self._root_filter())

    def get_children(self, record: T) -> StoreFuture[list[T]]:
        """Direct children of ``record``, whether or not it is expanded.

        The queries of this view still apply, so a root collection yields no
        children.
        """
        id = self.identify(record)[0]
        return self._source.fetch(Filter().equal_to(self._parent_property, id))

    def fetch(self, query: Query[T] | None = None) -> StoreFuture[list[T]]:
        visible = CompoundQuery((self._visibility_filter(),))
        if query is not None:
            visible = visible.with_query(query)
        return self._source.fetch(visible)

    def _root_filter(self) -> Filter[T]:
        parent = self._parent_property
        return Filter().equal_to(parent, None).or_().not_().exists(parent)

    def _visibility_filter(self) -> Filter[T]:
        parent = self._parent_property
        return (
            Filter()
            .in_(parent, tuple(self._state.expanded))
            .or_()
            .equal_to(parent, None)
            .or_()
            .not_()
            .exists(parent)
        )

    def _derive(self, query: Query[T]) -> TreeStore[T]:
        return TreeStore(QueryView(self._source, query), self._parent_property, self._state)

    def __repr__(self) -> str:
        return f"TreeStore(parent_property={self._parent_property!r}, expanded={len(self._state.expanded)})"
