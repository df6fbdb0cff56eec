# storefront/models/category.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Category(SQLModel, table=True):
    """
    Catalog category. Categories form a tree through `parent_id`;
    `level` is 1 for roots and parent.level + 1 below.
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=100, index=True)

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
    )

    description: str | None = None

    parent_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    level: int = Field(default=1, ge=1)

    image: str | None = None

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
