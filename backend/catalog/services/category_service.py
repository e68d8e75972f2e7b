"""Admin operations on categories: validation, CRUD and tree queries."""

import logging
import re
import uuid
from typing import List, Optional

from slugify import slugify

from catalog.core.exceptions import (
    CategoryNotFoundError,
    CategoryValidationError,
    HasChildrenError,
)
from catalog.core.logging_config import log_audit_event
from catalog.schemas.category import Category, CategoryCreate, CategoryUpdate
from catalog.services.category_reorder import ReorderEngine, ReorderPlan
from catalog.services.category_store import CategoryStore
from catalog.services.category_tree import (
    CategoryTree,
    CategoryTreeModel,
    build_tree,
    descendant_closure,
    report_cycle,
)

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*$")

# Fields that cannot be cleared by sending null in an update
NON_NULLABLE_FIELDS = {"name", "order", "is_active"}


def generate_slug(name: str) -> str:
    """URL slug from a display name: accents stripped, lower-case, hyphenated."""
    return slugify(name)


class CategoryService:
    """Category CRUD over an injected CategoryStore."""

    def __init__(self, store: CategoryStore):
        self.store = store

    async def list_categories(
        self, search: Optional[str] = None, active_only: bool = False
    ) -> List[Category]:
        categories = await self.store.list_categories()
        if active_only:
            categories = [c for c in categories if c.is_active]
        if search:
            term = search.lower()
            categories = [
                c
                for c in categories
                if term in c.name.lower() or term in (c.description or "").lower()
            ]
        return categories

    async def get(self, category_id: str) -> Category:
        category = await self.store.get(category_id)
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    async def tree(self, active_only: bool = False) -> CategoryTree:
        """
        Build the category tree.

        With ``active_only`` inactive categories are dropped, and so are the
        children of inactive roots.
        """
        categories = await self.store.list_categories()
        if active_only:
            active_ids = {c.id for c in categories if c.is_active}
            categories = [
                c
                for c in categories
                if c.id in active_ids and (c.parent_id is None or c.parent_id in active_ids)
            ]
        return build_tree(categories)

    async def descendants(self, category_id: str):
        """Return (ids, cycle_detected) for ``category_id``."""
        categories = await self.store.list_categories()
        if not any(c.id == category_id for c in categories):
            raise CategoryNotFoundError(category_id)

        ids, cycle_detected = descendant_closure(category_id, categories)
        if cycle_detected:
            report_cycle(category_id, ids)
        return ids, cycle_detected

    async def create(self, data: CategoryCreate) -> Category:
        category_id = str(uuid.uuid4())
        name = self._clean_name(data.name)
        slug = self._clean_slug(data.slug, name)
        await self._check_parent(category_id, data.parent_id, is_new=True)

        category = Category(
            id=category_id,
            name=name,
            slug=slug,
            parent_id=data.parent_id,
            description=data.description,
            image_url=data.image_url,
            icon=data.icon,
            order=data.order,
            is_active=data.is_active,
        )
        saved = await self.store.upsert(category)

        log_audit_event(
            event_type="category.created",
            message=f"Category created: {saved.name}",
            category_id=saved.id,
            slug=saved.slug,
            parent_id=saved.parent_id,
        )
        return saved

    async def update(self, category_id: str, data: CategoryUpdate) -> Category:
        existing = await self.get(category_id)

        update_data = data.model_dump(exclude_unset=True)
        for key in NON_NULLABLE_FIELDS:
            if key in update_data and update_data[key] is None:
                del update_data[key]

        if "name" in update_data:
            update_data["name"] = self._clean_name(update_data["name"])
        if "slug" in update_data:
            update_data["slug"] = self._clean_slug(
                update_data["slug"], update_data.get("name", existing.name)
            )
        if "parent_id" in update_data and update_data["parent_id"] != existing.parent_id:
            await self._check_parent(category_id, update_data["parent_id"])

        saved = await self.store.upsert(
            existing.model_copy(update=update_data), must_exist=True
        )

        log_audit_event(
            event_type="category.updated",
            message=f"Category updated: {saved.name}",
            category_id=saved.id,
            fields=sorted(update_data.keys()),
        )
        return saved

    async def delete(self, category_id: str) -> None:
        category = await self.get(category_id)

        child_count = await self.store.has_children(category_id)
        if child_count:
            raise HasChildrenError(category_id, child_count)

        await self.store.delete(category_id)

        log_audit_event(
            event_type="category.deleted",
            message=f"Category deleted: {category.name}",
            category_id=category_id,
        )

    async def reorder(
        self, engine: ReorderEngine, moved_id: str, target_id: str
    ) -> ReorderPlan:
        """Reorder against a fresh snapshot of the store."""
        model = CategoryTreeModel(await self.store.list_categories())
        return await engine.reorder(model, moved_id, target_id)

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise CategoryValidationError("Name is required", field="name")
        return name

    @staticmethod
    def _clean_slug(slug: Optional[str], name: str) -> str:
        slug = (slug or "").strip() or generate_slug(name)
        if not slug:
            raise CategoryValidationError("Slug is required", field="slug")
        if not SLUG_PATTERN.match(slug):
            raise CategoryValidationError(
                "Slug may only contain letters, digits, hyphens and underscores",
                field="slug",
            )
        return slug

    async def _check_parent(
        self, category_id: str, parent_id: Optional[str], is_new: bool = False
    ) -> None:
        """Enforce that ``parent_id`` names an existing root category."""
        if parent_id is None:
            return

        if parent_id == category_id:
            raise CategoryValidationError(
                "Category cannot be its own parent", field="parent_id"
            )

        parent = await self.store.get(parent_id)
        if parent is None:
            raise CategoryValidationError("Parent category not found", field="parent_id")
        if not parent.is_root:
            raise CategoryValidationError(
                "Subcategories cannot have their own subcategories", field="parent_id"
            )

        if not is_new and await self.store.has_children(category_id):
            raise CategoryValidationError(
                "A category with subcategories cannot be moved under another category",
                field="parent_id",
            )
