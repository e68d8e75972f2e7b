#!/usr/bin/env python3
"""
Script to seed the catalog database with a sample taxonomy and products.
Categories go through the same validation as the admin API.

Usage: python3 seed_sample_data.py
"""

import asyncio
import uuid

from catalog.core.database import Base, SessionLocal, engine
from catalog.core.exceptions import CategoryError
from catalog.models.category import Category as CategoryModel
from catalog.models.product import Product
from catalog.schemas.category import CategoryCreate
from catalog.services.category_service import CategoryService, generate_slug
from catalog.services.category_store import SqlAlchemyCategoryStore


# Root categories with their subcategories, in display order
SAMPLE_TAXONOMY = [
    {
        "name": "Redes",
        "icon": "network",
        "description": "Equipamiento de redes de datos",
        "children": ["Switches", "Routers", "Access Points"],
    },
    {
        "name": "Cámaras",
        "icon": "camera",
        "description": "Videovigilancia IP y analógica",
        "children": ["Domo", "Bullet", "PTZ"],
    },
    {
        "name": "Control de Acceso",
        "icon": "fingerprint",
        "description": "Lectores biométricos y controladoras",
        "children": [],
    },
]

SAMPLE_PRODUCTS = [
    ("Switch 24 puertos PoE", "switches", True),
    ("Router empresarial dual WAN", "routers", False),
    ("Cámara Domo HD 2MP", "domo", True),
    ("Cámara PTZ 5MP", "ptz", False),
]


async def seed_categories(service: CategoryService, store: SqlAlchemyCategoryStore) -> int:
    added = 0

    for root_order, root in enumerate(SAMPLE_TAXONOMY, 1):
        root_data = CategoryCreate(
            name=root["name"],
            icon=root["icon"],
            description=root["description"],
            order=root_order,
        )
        parent = next(
            (c for c in await store.list_categories() if c.name == root["name"]), None
        )
        if parent is None:
            parent = await service.create(root_data)
            print(f"✓ Added category: {parent.name} ({parent.slug})")
            added += 1
        else:
            print(f"⊘ Category already exists: {parent.name}")

        for child_order, child_name in enumerate(root["children"], 1):
            child_data = CategoryCreate(
                name=child_name, parent_id=parent.id, order=child_order
            )
            try:
                child = await service.create(child_data)
            except CategoryError as e:
                print(f"⊘ Skipped {child_name}: {e.message}")
                continue
            print(f"  ✓ Added subcategory: {child.name} ({child.slug})")
            added += 1

    return added


def seed_products(db) -> int:
    added = 0
    for name, category_slug, is_new in SAMPLE_PRODUCTS:
        slug = generate_slug(name)
        if db.query(Product).filter(Product.slug == slug).first():
            print(f"⊘ Product already exists: {name}")
            continue

        category = (
            db.query(CategoryModel).filter(CategoryModel.slug == category_slug).first()
        )
        product = Product(id=str(uuid.uuid4()), name=name, slug=slug, is_new=is_new)
        if category:
            product.categories = [category]
        db.add(product)
        db.commit()
        print(f"✓ Added product: {name}")
        added += 1
    return added


def main():
    print("🔌 Connecting to database...")
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        store = SqlAlchemyCategoryStore(db)
        categories_added = asyncio.run(seed_categories(CategoryService(store), store))
        products_added = seed_products(db)

        print()
        print(f"✓ Added {categories_added} categories and {products_added} products")

    except Exception as e:
        print(f"❌ Error: {e}")
        db.rollback()
        raise

    finally:
        db.close()
        print("✓ Database connection closed")


if __name__ == "__main__":
    print("=" * 60)
    print("  Catalog Sample Data Script")
    print("=" * 60)
    print()

    main()
