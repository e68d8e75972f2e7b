from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class ProductBase(BaseModel):
    name: str
    slug: str
    description: Optional[str] = None
    main_image_url: Optional[str] = None
    model_code: Optional[str] = None
    brand_id: Optional[str] = None
    is_new: bool = False


class Product(ProductBase):
    id: str
    category_ids: List[str] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductPage(BaseModel):
    items: List[Product]
    page: int
    limit: int
    category_filter: Optional[List[str]] = None  # None means no category restriction
