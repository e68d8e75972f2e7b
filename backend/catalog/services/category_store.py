"""Taxonomy store: persistence contract for categories and its implementations."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from catalog.core.exceptions import (
    CategoryConflictError,
    CategoryNotFoundError,
    CategoryValidationError,
    HasChildrenError,
)
from catalog.models.category import Category as CategoryModel
from catalog.schemas.category import Category

logger = logging.getLogger(__name__)

T = TypeVar("T")


def check_required_fields(category: Category) -> None:
    """Reject blank names and slugs before anything is written."""
    if not category.name or not category.name.strip():
        raise CategoryValidationError("Name is required", field="name")
    if not category.slug or not category.slug.strip():
        raise CategoryValidationError("Slug is required", field="slug")


class CategoryStore(ABC):
    """
    Row-oriented persistence for the ``categories`` table.

    All methods are coroutines; callers await them and must not assume any
    ordering between concurrently issued writes.
    """

    @abstractmethod
    async def list_categories(self) -> List[Category]:
        """All categories ordered by ``order`` then creation."""

    @abstractmethod
    async def get(self, category_id: str) -> Optional[Category]:
        ...

    @abstractmethod
    async def upsert(self, category: Category, must_exist: bool = False) -> Category:
        """
        Insert or update ``category`` by id.

        Raises:
            CategoryValidationError: blank name or slug
            CategoryConflictError: slug already used by another category
            CategoryNotFoundError: ``must_exist`` and the id is unknown
        """

    @abstractmethod
    async def update_order(self, category_id: str, order: int) -> Category:
        ...

    @abstractmethod
    async def has_children(self, category_id: str) -> int:
        """Number of other categories whose parent is ``category_id``."""

    @abstractmethod
    async def delete(self, category_id: str) -> None:
        """
        Raises:
            CategoryNotFoundError: unknown id
            HasChildrenError: the category still has subcategories
        """


class SqlAlchemyCategoryStore(CategoryStore):
    """
    Category store backed by a SQLAlchemy session.

    The session is synchronous, so each call runs in the threadpool. Calls
    are serialized because a session must not be used by two threads at once.
    A failed statement rolls the session back, leaving it usable for the
    next call.
    """

    def __init__(self, db: Session):
        self.db = db
        self._session_lock = asyncio.Lock()

    async def _run(self, func: Callable[..., T], *args) -> T:
        async with self._session_lock:
            return await run_in_threadpool(self._guarded, func, *args)

    def _guarded(self, func: Callable[..., T], *args) -> T:
        try:
            return func(*args)
        except SQLAlchemyError:
            self.db.rollback()
            raise

    async def list_categories(self) -> List[Category]:
        return await self._run(self._list_categories)

    def _list_categories(self) -> List[Category]:
        rows = (
            self.db.query(CategoryModel)
            .order_by(CategoryModel.order, CategoryModel.created_at)
            .all()
        )
        return [Category.model_validate(row) for row in rows]

    async def get(self, category_id: str) -> Optional[Category]:
        return await self._run(self._get, category_id)

    def _get(self, category_id: str) -> Optional[Category]:
        row = self.db.get(CategoryModel, category_id)
        return Category.model_validate(row) if row else None

    def _slug_taken(self, slug: str, exclude_id: str) -> bool:
        existing = (
            self.db.query(CategoryModel.id)
            .filter(
                func.lower(CategoryModel.slug) == slug.lower(),
                CategoryModel.id != exclude_id,
            )
            .first()
        )
        return existing is not None

    async def upsert(self, category: Category, must_exist: bool = False) -> Category:
        check_required_fields(category)
        return await self._run(self._upsert, category, must_exist)

    def _upsert(self, category: Category, must_exist: bool) -> Category:
        row = self.db.get(CategoryModel, category.id)
        if row is None and must_exist:
            raise CategoryNotFoundError(category.id)

        if self._slug_taken(category.slug, category.id):
            raise CategoryConflictError(f"Slug already exists: {category.slug}")

        data = category.model_dump(exclude={"created_at", "updated_at"})
        if row is None:
            row = CategoryModel(**data)
            self.db.add(row)
        else:
            for key, value in data.items():
                setattr(row, key, value)
            row.updated_at = datetime.utcnow()

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error saving category {category.id}: {e}")
            raise CategoryConflictError(f"Slug already exists: {category.slug}")

        self.db.refresh(row)
        return Category.model_validate(row)

    async def update_order(self, category_id: str, order: int) -> Category:
        return await self._run(self._update_order, category_id, order)

    def _update_order(self, category_id: str, order: int) -> Category:
        row = self.db.get(CategoryModel, category_id)
        if row is None:
            raise CategoryNotFoundError(category_id)
        row.order = order
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save order for category {category_id}: {e}")
            raise
        self.db.refresh(row)
        return Category.model_validate(row)

    async def has_children(self, category_id: str) -> int:
        return await self._run(self._has_children, category_id)

    def _has_children(self, category_id: str) -> int:
        return (
            self.db.query(func.count(CategoryModel.id))
            .filter(
                CategoryModel.parent_id == category_id,
                CategoryModel.id != category_id,
            )
            .scalar()
        ) or 0

    async def delete(self, category_id: str) -> None:
        await self._run(self._delete, category_id)

    def _delete(self, category_id: str) -> None:
        row = self.db.get(CategoryModel, category_id)
        if row is None:
            raise CategoryNotFoundError(category_id)

        child_count = self._has_children(category_id)
        if child_count:
            raise HasChildrenError(category_id, child_count)

        self.db.delete(row)
        self.db.commit()


class InMemoryCategoryStore(CategoryStore):
    """Dict-backed store preserving insertion order; used for embedding and tests."""

    def __init__(self, categories: Optional[List[Category]] = None):
        self._rows: Dict[str, Category] = {}
        for category in categories or []:
            self._rows[category.id] = category

    async def list_categories(self) -> List[Category]:
        rows = list(self._rows.values())
        # sorted() is stable, so equal orders keep insertion order
        return sorted(rows, key=lambda c: c.order)

    async def get(self, category_id: str) -> Optional[Category]:
        return self._rows.get(category_id)

    async def upsert(self, category: Category, must_exist: bool = False) -> Category:
        check_required_fields(category)

        existing = self._rows.get(category.id)
        if existing is None and must_exist:
            raise CategoryNotFoundError(category.id)

        for other in self._rows.values():
            if other.id != category.id and other.slug.lower() == category.slug.lower():
                raise CategoryConflictError(f"Slug already exists: {category.slug}")

        now = datetime.utcnow()
        saved = category.model_copy(
            update={
                "created_at": existing.created_at if existing else now,
                "updated_at": now,
            }
        )
        self._rows[category.id] = saved
        return saved

    async def update_order(self, category_id: str, order: int) -> Category:
        existing = self._rows.get(category_id)
        if existing is None:
            raise CategoryNotFoundError(category_id)
        saved = existing.model_copy(update={"order": order, "updated_at": datetime.utcnow()})
        self._rows[category_id] = saved
        return saved

    async def has_children(self, category_id: str) -> int:
        return sum(
            1
            for c in self._rows.values()
            if c.parent_id == category_id and c.id != category_id
        )

    async def delete(self, category_id: str) -> None:
        if category_id not in self._rows:
            raise CategoryNotFoundError(category_id)

        child_count = await self.has_children(category_id)
        if child_count:
            raise HasChildrenError(category_id, child_count)

        del self._rows[category_id]
