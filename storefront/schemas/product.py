# storefront/schemas/product.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.common import Pagination

ProductStatus = Literal["draft", "active", "archived"]
SortField = Literal["created_at", "price", "name"]


class VariantIn(SQLModel):
    model_config = ConfigDict(extra="forbid")

    sku: str
    size: str | None = None
    color: str | None = None
    price: float = Field(gt=0)
    stock: int = Field(default=0, ge=0)


class VariantRead(SQLModel):
    id: uuid.UUID
    sku: str
    size: str | None
    color: str | None
    price: float
    stock: int


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - slug is optional: if omitted, generated from `name`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=255)
    slug: str | None = None
    description: str | None = None
    price: float = Field(gt=0)
    compare_at_price: float | None = Field(default=None, gt=0)
    sku: str = Field(max_length=100)
    stock: int = Field(default=0, ge=0)
    status: ProductStatus = "draft"
    featured: bool = False
    category_id: uuid.UUID | None = None
    variants: list[VariantIn] = []

    @field_validator("name", "sku")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class ProductUpdate(SQLModel):
    """
    Partial update; `variants`, when supplied, replaces the whole set.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=255)
    slug: str | None = None
    description: str | None = None
    price: float | None = Field(default=None, gt=0)
    compare_at_price: float | None = None
    sku: str | None = None
    stock: int | None = Field(default=None, ge=0)
    status: ProductStatus | None = None
    featured: bool | None = None
    category_id: uuid.UUID | None = None
    variants: list[VariantIn] | None = None


class ProductRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    price: float
    compare_at_price: float | None
    sku: str
    stock: int
    status: str
    featured: bool
    category_id: uuid.UUID | None
    hero_image_url: str | None
    created_at: datetime


class ProductDetail(ProductRead):
    variants: list[VariantRead] = []


class ProductList(SQLModel):
    products: list[ProductRead]
    pagination: Pagination


class ProductFilter(SQLModel):
    """
    Query parameters for the storefront listing.
    """

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    sort: SortField = "created_at"
    order: Literal["asc", "desc"] = "desc"
    category_id: uuid.UUID | None = None
    min_price: float | None = None
    max_price: float | None = None
    search: str | None = None
    featured: bool | None = None
    status: ProductStatus = "active"
