"""
Pytest configuration and fixtures for catalog tests.
"""

import os

# Keep the module-level engine off PostgreSQL while the app modules import
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite:///:memory:")

import pytest
from datetime import datetime, timedelta
from typing import Dict, Generator, List
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from catalog.core.database import Base, get_db
from catalog.models.category import Category as CategoryModel
from catalog.models.product import Product
from catalog.schemas.category import Category
from catalog.services.category_store import InMemoryCategoryStore


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)

SCENARIO = [
    {"id": "r1", "parent_id": None, "order": 1, "name": "Redes", "slug": "redes"},
    {"id": "c1", "parent_id": "r1", "order": 1, "name": "Switches", "slug": "switches"},
    {"id": "c2", "parent_id": "r1", "order": 2, "name": "Routers", "slug": "routers"},
    {"id": "r2", "parent_id": None, "order": 2, "name": "Cámaras", "slug": "camaras"},
]


def make_category(id: str, parent_id=None, order: int = 0, **kwargs) -> Category:
    """Build a category record with sensible defaults for tests."""
    return Category(
        id=id,
        parent_id=parent_id,
        order=order,
        name=kwargs.pop("name", id.upper()),
        slug=kwargs.pop("slug", id),
        **kwargs,
    )


class FlakyCategoryStore(InMemoryCategoryStore):
    """In-memory store whose order writes fail for selected ids."""

    def __init__(self, categories=None, fail_ids=()):
        super().__init__(categories)
        self.fail_ids = set(fail_ids)
        self.order_writes: List[str] = []

    async def update_order(self, category_id: str, order: int) -> Category:
        self.order_writes.append(category_id)
        if category_id in self.fail_ids:
            raise ConnectionError(f"write failed for {category_id}")
        return await super().update_order(category_id, order)


def block_updates(db_session: Session, category_id: str) -> None:
    """Install a SQLite trigger that aborts every UPDATE of one category row."""
    db_session.execute(
        text(
            f"CREATE TRIGGER block_{category_id} BEFORE UPDATE ON categories "
            f"WHEN OLD.id = '{category_id}' "
            f"BEGIN SELECT RAISE(ABORT, '{category_id} locked'); END"
        )
    )
    db_session.commit()


@pytest.fixture
def scenario_categories() -> List[Category]:
    """Redes (Switches, Routers) and Cámaras."""
    return [make_category(**row) for row in SCENARIO]


@pytest.fixture
def memory_store(scenario_categories) -> InMemoryCategoryStore:
    return InMemoryCategoryStore(scenario_categories)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def test_app(db_session):
    """Create a FastAPI test app without lifespan events."""
    from fastapi import FastAPI
    from catalog.api.endpoints import admin_categories, categories, products
    from catalog.core.logging_config import CorrelationIdMiddleware
    from catalog.main import register_exception_handlers

    # Create app without lifespan to avoid event loop issues
    test_app = FastAPI(title="Catalog - Test", version="1.0.0")
    test_app.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(test_app)

    test_app.include_router(
        categories.router, prefix="/api/categories", tags=["categories"]
    )
    test_app.include_router(products.router, prefix="/api/products", tags=["products"])
    test_app.include_router(
        admin_categories.router,
        prefix="/api/admin/categories",
        tags=["admin-categories"],
    )

    @test_app.get("/health")
    def health():
        return {"status": "ok"}

    # Override database dependency
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture(scope="function")
def client(test_app) -> TestClient:
    """Create a test client without entering context manager."""
    return TestClient(test_app, raise_server_exceptions=False)


@pytest.fixture(scope="function")
def seeded_categories(db_session) -> Dict[str, CategoryModel]:
    """Insert the sample taxonomy with increasing creation times."""
    rows = {}
    for index, data in enumerate(SCENARIO):
        row = CategoryModel(
            created_at=BASE_TIME + timedelta(minutes=index),
            is_active=True,
            **data,
        )
        db_session.add(row)
        rows[row.id] = row
    db_session.commit()
    for row in rows.values():
        db_session.refresh(row)
    return rows


@pytest.fixture(scope="function")
def sample_products(db_session, seeded_categories) -> Dict[str, Product]:
    """Products filed under Switches, Routers and Cámaras, plus an inactive one."""
    specs = [
        ("p-switch", "Switch 24 puertos", ["c1"], "brand-a", True, True),
        ("p-router", "Router empresarial", ["c2"], "brand-b", False, True),
        ("p-domo", "Cámara Domo HD 2MP", ["r2"], "brand-a", True, True),
        ("p-old", "Router descontinuado", ["c2"], "brand-b", False, False),
    ]
    products = {}
    for index, (pid, name, category_ids, brand, is_new, active) in enumerate(specs):
        product = Product(
            id=pid,
            name=name,
            slug=pid,
            brand_id=brand,
            is_new=is_new,
            is_active=active,
            created_at=BASE_TIME + timedelta(hours=index),
        )
        product.categories = [seeded_categories[cid] for cid in category_ids]
        db_session.add(product)
        products[pid] = product
    db_session.commit()
    return products
