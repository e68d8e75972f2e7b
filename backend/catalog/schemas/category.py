from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List


class CategoryBase(BaseModel):
    name: str
    slug: str
    parent_id: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    icon: Optional[str] = None
    order: int = 0
    is_active: bool = True


class CategoryCreate(BaseModel):
    name: str
    slug: Optional[str] = None  # Derived from name when omitted or blank
    parent_id: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    icon: Optional[str] = None
    order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    parent_id: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    icon: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None


class Category(CategoryBase):
    """Validated category record shared by stores and the taxonomy services."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    class Config:
        from_attributes = True


class CategoryTreeNode(Category):
    children: List["CategoryTreeNode"] = []


class CategoryTree(BaseModel):
    roots: List[CategoryTreeNode]
    invalid_ids: List[str] = []


class CategoryDescendants(BaseModel):
    category_id: str
    ids: List[str]
    cycle_detected: bool = False


class ReorderRequest(BaseModel):
    moved_id: str
    target_id: str


class ReorderResponse(BaseModel):
    parent_id: Optional[str] = None
    items: List[Category]
