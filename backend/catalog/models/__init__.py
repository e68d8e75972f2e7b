from .category import Category
from .product import Product, product_categories

__all__ = [
    "Category",
    "Product",
    "product_categories",
]
