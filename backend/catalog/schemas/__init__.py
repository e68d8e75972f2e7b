from catalog.schemas.category import (
    Category,
    CategoryCreate,
    CategoryUpdate,
    CategoryTree,
    CategoryTreeNode,
    CategoryDescendants,
    ReorderRequest,
    ReorderResponse,
)
from catalog.schemas.product import Product, ProductPage

__all__ = [
    "Category",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryTree",
    "CategoryTreeNode",
    "CategoryDescendants",
    "ReorderRequest",
    "ReorderResponse",
    "Product",
    "ProductPage",
]
