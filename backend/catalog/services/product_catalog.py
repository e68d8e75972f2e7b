"""Read-only product queries used by the public catalog pages."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from catalog.models.product import Product, product_categories
from catalog.schemas.product import Product as ProductSchema

logger = logging.getLogger(__name__)


def to_schema(product: Product) -> ProductSchema:
    return ProductSchema(
        id=product.id,
        name=product.name,
        slug=product.slug,
        description=product.description,
        main_image_url=product.main_image_url,
        model_code=product.model_code,
        brand_id=product.brand_id,
        is_new=product.is_new,
        category_ids=sorted(c.id for c in product.categories),
        created_at=product.created_at,
    )


class ProductCatalog:
    """Active-product listing with optional category, brand and text filters."""

    def __init__(self, db: Session):
        self.db = db

    def list_products(
        self,
        category_ids: Optional[Iterable[str]] = None,
        brand_ids: Optional[Iterable[str]] = None,
        search: Optional[str] = None,
        is_new: Optional[bool] = None,
        exclude_id: Optional[str] = None,
        page: int = 0,
        limit: int = 20,
    ) -> List[ProductSchema]:
        """
        List active products, newest first.

        Args:
            category_ids: Composed category filter. None or empty means no
                category restriction, not an empty result.
            brand_ids: Restrict to these brands
            search: Case-insensitive substring of the product name
            is_new: Only products flagged as new when True
            exclude_id: Product to leave out (e.g. the one being viewed)
            page: Zero-based page number
            limit: Page size

        Returns:
            List of products
        """
        query = (
            self.db.query(Product)
            .options(selectinload(Product.categories))
            .filter(Product.is_active == True)
        )

        category_ids = list(category_ids or [])
        if category_ids:
            matching = select(product_categories.c.product_id).where(
                product_categories.c.category_id.in_(category_ids)
            )
            query = query.filter(Product.id.in_(matching))

        brand_ids = list(brand_ids or [])
        if brand_ids:
            query = query.filter(Product.brand_id.in_(brand_ids))

        if exclude_id:
            query = query.filter(Product.id != exclude_id)

        if is_new:
            query = query.filter(Product.is_new == True)

        if search:
            query = query.filter(Product.name.ilike(f"%{search}%"))

        products = (
            query.order_by(desc(Product.created_at), Product.id)
            .offset(page * limit)
            .limit(limit)
            .all()
        )
        logger.debug(
            f"Product listing: {len(products)} rows "
            f"(categories={len(category_ids)}, page={page}, limit={limit})"
        )
        return [to_schema(p) for p in products]

    def get_by_slug(self, slug: str) -> Optional[ProductSchema]:
        product = (
            self.db.query(Product)
            .options(selectinload(Product.categories))
            .filter(Product.slug == slug, Product.is_active == True)
            .first()
        )
        return to_schema(product) if product else None
