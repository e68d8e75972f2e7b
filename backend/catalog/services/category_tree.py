"""Category tree building, descendant resolution and filter composition."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from catalog.core.logging_config import log_audit_event
from catalog.schemas.category import Category, CategoryTree as CategoryTreeSchema
from catalog.schemas.category import CategoryTreeNode

logger = logging.getLogger(__name__)


def sibling_sort_key(position: Dict[str, int]) -> Callable[[Category], Tuple[int, int]]:
    """Sort by ``order`` with ties broken by position in the input list."""

    def key(category: Category) -> Tuple[int, int]:
        return (category.order, position[category.id])

    return key


@dataclass
class CategoryTree:
    """Roots plus children grouped by parent id, each list sibling-ordered."""

    roots: List[Category] = field(default_factory=list)
    children_of: Dict[str, List[Category]] = field(default_factory=dict)
    invalid_ids: List[str] = field(default_factory=list)

    def children(self, parent_id: str) -> List[Category]:
        return self.children_of.get(parent_id, [])

    def siblings(self, parent_id: Optional[str]) -> List[Category]:
        if parent_id is None:
            return self.roots
        return self.children(parent_id)

    def to_schema(self) -> CategoryTreeSchema:
        """Nested root -> children view. Only two levels are rendered."""
        roots = []
        for root in self.roots:
            children = [
                CategoryTreeNode(**child.model_dump()) for child in self.children(root.id)
            ]
            roots.append(CategoryTreeNode(**root.model_dump(), children=children))
        return CategoryTreeSchema(roots=roots, invalid_ids=list(self.invalid_ids))


def build_tree(categories: Sequence[Category]) -> CategoryTree:
    """
    Build a two-level tree from a flat category list.

    Categories whose parent is missing or is itself a child are still filed
    under ``children_of[parent_id]`` and reported in ``invalid_ids``.

    Args:
        categories: Flat list in any order

    Returns:
        CategoryTree with sorted roots and children
    """
    position = {category.id: index for index, category in enumerate(categories)}
    by_id = {category.id: category for category in categories}
    key = sibling_sort_key(position)

    roots: List[Category] = []
    children_of: Dict[str, List[Category]] = {}
    invalid_ids: List[str] = []

    for category in categories:
        if category.is_root:
            roots.append(category)
            continue

        children_of.setdefault(category.parent_id, []).append(category)
        parent = by_id.get(category.parent_id)
        if parent is None or not parent.is_root:
            invalid_ids.append(category.id)

    roots.sort(key=key)
    for siblings in children_of.values():
        siblings.sort(key=key)

    return CategoryTree(roots=roots, children_of=children_of, invalid_ids=invalid_ids)


def descendant_closure(
    category_id: str, categories: Iterable[Category]
) -> Tuple[Set[str], bool]:
    """
    Collect ``category_id`` and every id reachable below it.

    Walks parent -> child edges breadth first with a visited set, so corrupted
    data containing a cycle still terminates with a partial closure.

    Returns:
        (ids, cycle_detected)
    """
    children_by_parent: Dict[str, List[str]] = {}
    for category in categories:
        if category.parent_id is not None:
            children_by_parent.setdefault(category.parent_id, []).append(category.id)

    visited: Set[str] = {category_id}
    frontier = [category_id]
    cycle_detected = False

    while frontier:
        current = frontier.pop()
        for child_id in children_by_parent.get(current, []):
            if child_id in visited:
                cycle_detected = True
                continue
            visited.add(child_id)
            frontier.append(child_id)

    return visited, cycle_detected


def report_cycle(category_id: str, partial_closure: Set[str]) -> None:
    log_audit_event(
        event_type="category.cycle_detected",
        message=f"Cycle in category hierarchy reachable from {category_id}",
        level=logging.WARNING,
        event_category="data_integrity",
        category_id=category_id,
        partial_closure=sorted(partial_closure),
    )


def resolve_descendants(category_id: str, categories: Iterable[Category]) -> Set[str]:
    """Return the descendant closure of ``category_id``, logging any cycle found."""
    ids, cycle_detected = descendant_closure(category_id, categories)
    if cycle_detected:
        report_cycle(category_id, ids)
    return ids


def compose_filter(selected_ids: Iterable[str], categories: Sequence[Category]) -> Set[str]:
    """
    Union of the descendant closures of every selected category.

    An empty selection yields an empty set, which product queries treat as
    "no category restriction".
    """
    result: Set[str] = set()
    for category_id in selected_ids:
        result |= resolve_descendants(category_id, categories)
    return result


Listener = Callable[[List[Category]], None]


class CategoryTreeModel:
    """
    In-memory owner of the flat category list.

    Mutations return the new snapshot and notify subscribers, so renderers
    react to state changes instead of holding the state themselves.
    """

    def __init__(self, categories: Iterable[Category] = ()):
        self._categories: List[Category] = list(categories)
        self._listeners: List[Listener] = []

    @property
    def categories(self) -> List[Category]:
        return list(self._categories)

    def get(self, category_id: str) -> Optional[Category]:
        for category in self._categories:
            if category.id == category_id:
                return category
        return None

    def tree(self) -> CategoryTree:
        return build_tree(self._categories)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, categories: Iterable[Category]) -> List[Category]:
        self._categories = list(categories)
        return self._notify()

    def apply_orders(self, updated: Iterable[Category]) -> List[Category]:
        """Swap in updated copies of existing categories, matched by id."""
        updates = {category.id: category for category in updated}
        self._categories = [updates.get(c.id, c) for c in self._categories]
        return self._notify()

    async def refresh(self, store) -> List[Category]:
        """Discard local state and reload the authoritative list from ``store``."""
        categories = await store.list_categories()
        logger.info(f"Category model refreshed from store ({len(categories)} rows)")
        return self.replace(categories)

    def _notify(self) -> List[Category]:
        snapshot = self.categories
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot
