# storefront/schemas/category.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

from storefront.schemas.product import ProductRead


class CategoryCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    parent_id: uuid.UUID | None = None
    image: str | None = None
    is_active: bool = True


class CategoryUpdate(SQLModel):
    """
    Partial update. Sending `parent_id: null` moves the category to the
    root level.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    parent_id: uuid.UUID | None = None
    image: str | None = None
    is_active: bool | None = None


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    parent_id: uuid.UUID | None
    level: int
    image: str | None
    is_active: bool
    created_at: datetime


class CategoryNode(CategoryRead):
    subcategories: list["CategoryNode"] = []


class CategoryDetail(CategoryRead):
    subcategories: list[CategoryRead] = []
    products: list[ProductRead] = []
