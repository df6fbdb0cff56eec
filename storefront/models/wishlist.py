# storefront/models/wishlist.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Wishlist(SQLModel, table=True):
    """
    One wishlist per user, created on first access.
    """

    __tablename__ = "wishlists"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        unique=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class WishlistItem(SQLModel, table=True):
    __tablename__ = "wishlist_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    wishlist_id: uuid.UUID = Field(
        foreign_key="wishlists.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
