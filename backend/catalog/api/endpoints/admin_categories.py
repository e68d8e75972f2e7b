from fastapi import APIRouter, Depends, Request
from typing import List, Optional
from catalog.api.deps import get_category_service, get_reorder_engine
from catalog.api.validation import SearchParam, validate_string_length
from catalog.core.config import settings
from catalog.core.logging_config import get_client_ip, log_audit_event
from catalog.services.category_reorder import ReorderEngine
from catalog.services.category_service import CategoryService
from catalog.schemas.category import (
    Category as CategorySchema,
    CategoryCreate,
    CategoryTree,
    CategoryUpdate,
    ReorderRequest,
    ReorderResponse,
)

router = APIRouter()


@router.get("/", response_model=List[CategorySchema])
async def list_categories(
    search: Optional[str] = SearchParam,
    service: CategoryService = Depends(get_category_service),
):
    """All categories, including inactive ones, optionally filtered by name/description."""
    search = validate_string_length(
        search, "search", max_length=settings.CATEGORY_SEARCH_MAX_LENGTH
    )
    return await service.list_categories(search=search or None)


@router.get("/tree", response_model=CategoryTree)
async def get_category_tree(service: CategoryService = Depends(get_category_service)):
    """Full tree for the admin console; ``invalid_ids`` lists depth violations."""
    tree = await service.tree()
    return tree.to_schema()


@router.get("/{category_id}", response_model=CategorySchema)
async def get_category(
    category_id: str, service: CategoryService = Depends(get_category_service)
):
    return await service.get(category_id)


@router.post("/", response_model=CategorySchema, status_code=201)
async def create_category(
    category: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
):
    """
    Create a category.

    The slug is derived from the name when omitted. A parent, if given, must be
    a root category.
    """
    return await service.create(category)


@router.patch("/{category_id}", response_model=CategorySchema)
async def update_category(
    category_id: str,
    category_update: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
):
    """Partially update a category."""
    return await service.update(category_id, category_update)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    service: CategoryService = Depends(get_category_service),
):
    """
    Delete a category.

    Refused with 409 while the category still has subcategories.
    """
    await service.delete(category_id)
    return {"message": "Category deleted successfully"}


@router.post("/reorder", response_model=ReorderResponse)
async def reorder_categories(
    reorder: ReorderRequest,
    request: Request,
    service: CategoryService = Depends(get_category_service),
    engine: ReorderEngine = Depends(get_reorder_engine),
):
    """
    Move a category to the position of a sibling and renumber the group 1..n.

    Both categories must share the same parent (both roots or both children of
    the same root); cross-level moves are rejected with 400 and change nothing.
    """
    plan = await service.reorder(engine, reorder.moved_id, reorder.target_id)

    log_audit_event(
        event_type="category.reorder.request",
        message="Category reorder saved",
        ip_address=get_client_ip(request),
        request_method=request.method,
        request_path=request.url.path,
        moved_id=reorder.moved_id,
        target_id=reorder.target_id,
    )
    return ReorderResponse(parent_id=plan.parent_id, items=plan.items)
