from fastapi import APIRouter, Depends
from typing import List
from catalog.api.deps import get_category_service
from catalog.services.category_service import CategoryService
from catalog.schemas.category import (
    Category as CategorySchema,
    CategoryDescendants,
    CategoryTree,
)

router = APIRouter()


@router.get("/", response_model=List[CategorySchema])
async def get_categories(service: CategoryService = Depends(get_category_service)):
    """Get all active categories ordered for display."""
    return await service.list_categories(active_only=True)


@router.get("/tree", response_model=CategoryTree)
async def get_category_tree(service: CategoryService = Depends(get_category_service)):
    """
    Get the active category tree.

    Children of inactive root categories are hidden along with their parent.
    """
    tree = await service.tree(active_only=True)
    return tree.to_schema()


@router.get("/{category_id}/descendants", response_model=CategoryDescendants)
async def get_category_descendants(
    category_id: str, service: CategoryService = Depends(get_category_service)
):
    """
    Get the ids a category filter expands to: the category and its subcategories.

    ``cycle_detected`` flags corrupted parent links encountered during the walk.
    """
    ids, cycle_detected = await service.descendants(category_id)
    return CategoryDescendants(
        category_id=category_id, ids=sorted(ids), cycle_detected=cycle_detected
    )
