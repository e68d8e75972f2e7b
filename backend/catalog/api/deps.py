import asyncio
from fastapi import Depends
from sqlalchemy.orm import Session
from catalog.core.database import get_db
from catalog.services.category_reorder import ReorderEngine
from catalog.services.category_service import CategoryService
from catalog.services.category_store import CategoryStore, SqlAlchemyCategoryStore
from catalog.services.product_catalog import ProductCatalog

# One reorder batch in flight per process
reorder_lock = asyncio.Lock()


def get_category_store(db: Session = Depends(get_db)) -> CategoryStore:
    return SqlAlchemyCategoryStore(db)


def get_category_service(
    store: CategoryStore = Depends(get_category_store),
) -> CategoryService:
    return CategoryService(store)


def get_reorder_engine(
    store: CategoryStore = Depends(get_category_store),
) -> ReorderEngine:
    return ReorderEngine(store, lock=reorder_lock)


def get_product_catalog(db: Session = Depends(get_db)) -> ProductCatalog:
    return ProductCatalog(db)
