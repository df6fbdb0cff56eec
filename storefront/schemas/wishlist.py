# storefront/schemas/wishlist.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel

from storefront.schemas.product import ProductRead


class WishlistAdd(SQLModel):
    product_id: uuid.UUID


class WishlistItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    added_at: datetime
    product: ProductRead | None = None


class WishlistRead(SQLModel):
    id: uuid.UUID
    items: list[WishlistItemRead]


class WishlistAddResult(SQLModel):
    item: WishlistItemRead
    created: bool
