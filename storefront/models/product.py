# storefront/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    `stock` is the live inventory counter. Checkout decrements it and
    cancellation restores it.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the product",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description / HTML",
    )

    price: float = Field(
        gt=0,
        description="Current unit price",
    )

    compare_at_price: float | None = Field(
        default=None,
        description="Strike-through price shown next to `price`",
    )

    sku: str = Field(
        max_length=100,
        unique=True,
        index=True,
    )

    stock: int = Field(
        default=0,
        ge=0,
        description="How many units currently in stock",
    )

    # draft | active | archived
    status: str = Field(
        default="draft",
        index=True,
        description="Only 'active' products are visible on the storefront",
    )

    featured: bool = Field(default=False, index=True)

    category_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    hero_image_url: str | None = Field(
        default=None,
        description="Main hero image URL",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class ProductVariant(SQLModel, table=True):
    """
    Size/color variant of a product.
    """

    __tablename__ = "product_variants"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    sku: str = Field(max_length=100)
    size: str | None = None
    color: str | None = None
    price: float = Field(gt=0)
    stock: int = Field(default=0, ge=0)
