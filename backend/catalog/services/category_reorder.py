"""Drag-and-drop reordering of sibling categories."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from catalog.core.exceptions import (
    CategoryNotFoundError,
    PersistencePartialFailure,
    ReorderInProgressError,
    ReorderPreconditionError,
)
from catalog.core.logging_config import log_audit_event
from catalog.schemas.category import Category
from catalog.services.category_store import CategoryStore
from catalog.services.category_tree import CategoryTreeModel, build_tree

logger = logging.getLogger(__name__)


@dataclass
class ReorderPlan:
    """New sibling sequence for one group, with renormalized orders."""

    parent_id: Optional[str]
    items: List[Category]

    @property
    def orders(self) -> Dict[str, int]:
        return {item.id: item.order for item in self.items}


def move_item(items: Sequence[Category], moved_id: str, target_id: str) -> List[Category]:
    """
    Remove the moved item and reinsert it at the target's index.

    Items between the two positions shift by one slot towards the moved
    item's old position.
    """
    ids = [item.id for item in items]
    old_index = ids.index(moved_id)
    new_index = ids.index(target_id)

    result = list(items)
    moved = result.pop(old_index)
    result.insert(new_index, moved)
    return result


def renormalize(items: Sequence[Category]) -> List[Category]:
    """Assign orders 1..n in sequence, discarding previous gaps and ties."""
    return [item.model_copy(update={"order": index}) for index, item in enumerate(items, 1)]


def plan_reorder(categories: Sequence[Category], moved_id: str, target_id: str) -> ReorderPlan:
    """
    Compute the reordered sibling group for a drop of ``moved_id`` onto ``target_id``.

    Raises:
        CategoryNotFoundError: either id is unknown
        ReorderPreconditionError: the two categories have different parents
    """
    by_id = {category.id: category for category in categories}
    moved = by_id.get(moved_id)
    if moved is None:
        raise CategoryNotFoundError(moved_id)
    target = by_id.get(target_id)
    if target is None:
        raise CategoryNotFoundError(target_id)

    if moved.parent_id != target.parent_id:
        raise ReorderPreconditionError(moved_id, target_id)

    siblings = build_tree(categories).siblings(moved.parent_id)
    return ReorderPlan(
        parent_id=moved.parent_id,
        items=renormalize(move_item(siblings, moved_id, target_id)),
    )


class ReorderEngine:
    """
    Applies reorder plans optimistically and persists every affected row.

    Only one batch may be in flight per lock; a second request while the
    first is still writing is rejected with ``ReorderInProgressError``.
    """

    def __init__(self, store: CategoryStore, lock: Optional[asyncio.Lock] = None):
        self.store = store
        self.lock = lock or asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self.lock.locked()

    async def reorder(
        self, model: CategoryTreeModel, moved_id: str, target_id: str
    ) -> ReorderPlan:
        """
        Move ``moved_id`` to ``target_id``'s position and save the new orders.

        Args:
            model: Local category state, updated optimistically
            moved_id: Category being dragged
            target_id: Sibling it was dropped on

        Returns:
            The applied ReorderPlan

        Raises:
            ReorderInProgressError: another batch is still being written
            PersistencePartialFailure: some writes failed; ``model`` was refreshed
        """
        if self.lock.locked():
            raise ReorderInProgressError()

        async with self.lock:
            plan = plan_reorder(model.categories, moved_id, target_id)
            model.apply_orders(plan.items)
            logger.info(
                f"Persisting order for {len(plan.items)} categories "
                f"(parent={plan.parent_id})"
            )

            results = await asyncio.gather(
                *(self.store.update_order(item.id, item.order) for item in plan.items),
                return_exceptions=True,
            )

            succeeded: List[str] = []
            failed: Dict[str, str] = {}
            for item, result in zip(plan.items, results):
                if isinstance(result, BaseException):
                    failed[item.id] = str(result) or type(result).__name__
                else:
                    succeeded.append(item.id)

            if failed:
                log_audit_event(
                    event_type="category.reorder.partial_failure",
                    message=f"{len(failed)} of {len(plan.items)} order writes failed",
                    level=logging.ERROR,
                    moved_id=moved_id,
                    target_id=target_id,
                    succeeded=succeeded,
                    failed=failed,
                )
                await model.refresh(self.store)
                raise PersistencePartialFailure(succeeded=succeeded, failed=failed)

        log_audit_event(
            event_type="category.reordered",
            message=f"Moved category {moved_id} to position of {target_id}",
            moved_id=moved_id,
            target_id=target_id,
            parent_id=plan.parent_id,
            orders=plan.orders,
        )
        return plan
