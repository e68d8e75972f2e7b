from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime
from catalog.core.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, index=True)  # UUID4 assigned at creation
    parent_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    name = Column(String, nullable=False, index=True)
    slug = Column(String, nullable=False, unique=True, index=True)
    order = Column("order", Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    description = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    icon = Column(String, nullable=True)  # Icon name rendered by the public site
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    products = relationship(
        "Product", secondary="product_categories", back_populates="categories"
    )
