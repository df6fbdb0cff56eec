# storefront/schemas/cart.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    product_id: uuid.UUID
    variant_id: uuid.UUID | None = None
    quantity: int = Field(ge=1)


class CartItemUpdate(SQLModel):
    """
    Partial update of a cart line.

    - quantity <= 0 removes the line (saved_for_later is then ignored)
    - only supplied fields are touched
    """

    quantity: int | None = None
    saved_for_later: bool | None = None


class CartTotals(SQLModel):
    subtotal: float = 0.0
    discount_total: float = 0.0
    tax_total: float = 0.0
    shipping_total: float = 0.0
    grand_total: float = 0.0


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including line_total.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: uuid.UUID | None = None
    product_name: str | None = None
    product_hero_image_url: str | None = None
    quantity: int
    price: float
    saved_for_later: bool
    line_total: float
    created_at: datetime


class AppliedCouponRead(SQLModel):
    id: uuid.UUID
    promotion_id: uuid.UUID
    code: str | None
    discount: float
    created_at: datetime


class CartRead(CartTotals):
    """
    Full cart response model with totals.

    `id` is None for a cart that has not been created yet.
    """

    id: uuid.UUID | None = None
    user_id: uuid.UUID | None = None
    session_id: str | None = None
    items: list[CartItemRead] = []
    applied_coupons: list[AppliedCouponRead] = []
