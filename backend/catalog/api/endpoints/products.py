from fastapi import APIRouter, Depends, HTTPException
from starlette.concurrency import run_in_threadpool
from typing import List, Optional
from catalog.api.deps import get_category_store, get_product_catalog
from catalog.api.validation import (
    BrandIdsParam,
    CategoryIdsParam,
    LimitParam,
    PageParam,
    SearchParam,
    validate_ids,
    validate_string_length,
)
from catalog.services.category_store import CategoryStore
from catalog.services.category_tree import compose_filter
from catalog.services.product_catalog import ProductCatalog
from catalog.schemas.product import Product as ProductSchema, ProductPage

router = APIRouter()


@router.get("/", response_model=ProductPage)
async def list_products(
    category_id: Optional[List[str]] = CategoryIdsParam,
    brand_id: Optional[List[str]] = BrandIdsParam,
    search: Optional[str] = SearchParam,
    is_new: Optional[bool] = None,
    exclude_id: Optional[str] = None,
    page: int = PageParam,
    limit: int = LimitParam,
    store: CategoryStore = Depends(get_category_store),
    catalog: ProductCatalog = Depends(get_product_catalog),
):
    """
    List active products.

    Each selected category is expanded to itself plus its subcategories and the
    results are combined. Selecting no category means no category restriction.
    """
    selected = validate_ids(category_id, "category_id")
    brand_ids = validate_ids(brand_id, "brand_id")
    search = validate_string_length(search, "search", max_length=100)

    category_filter = None
    if selected:
        category_filter = sorted(
            compose_filter(selected, await store.list_categories())
        )

    # ProductCatalog uses a synchronous session
    items = await run_in_threadpool(
        catalog.list_products,
        category_ids=category_filter,
        brand_ids=brand_ids,
        search=search or None,
        is_new=is_new,
        exclude_id=exclude_id,
        page=page,
        limit=limit,
    )
    return ProductPage(
        items=items, page=page, limit=limit, category_filter=category_filter
    )


@router.get("/{slug}", response_model=ProductSchema)
def get_product(slug: str, catalog: ProductCatalog = Depends(get_product_catalog)):
    """Get an active product by slug."""
    product = catalog.get_by_slug(slug)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
