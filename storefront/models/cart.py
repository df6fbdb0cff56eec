# storefront/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Cart(SQLModel, table=True):
    """
    Shopping cart, owned either by a user or by a guest session.

    Exactly one of `user_id` / `session_id` is set. The five money fields
    always satisfy:

        grand_total = subtotal - discount_total + tax_total + shipping_total

    The row survives checkout and clear with its totals zeroed, so the
    same cart is reused by the next add.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        unique=True,
        index=True,
    )

    session_id: str | None = Field(
        default=None,
        max_length=255,
        unique=True,
        index=True,
        description="Client-generated guest session identifier",
    )

    subtotal: float = 0.0
    discount_total: float = 0.0
    tax_total: float = 0.0
    shipping_total: float = 0.0
    grand_total: float = 0.0

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartItem(SQLModel, table=True):
    """
    Line item inside a cart.

    `price` is captured when the item is first added and does not follow
    later product price changes. Items with `saved_for_later` set stay in
    the cart but are excluded from totals and checkout.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    variant_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="product_variants.id",
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    price: float = Field(
        description="Unit price when added to cart",
    )

    saved_for_later: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class AppliedCoupon(SQLModel, table=True):
    """
    A promotion applied to a cart.

    `discount` is computed once, at application time. Removing the coupon
    reverses exactly this amount.
    """

    __tablename__ = "applied_coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    promotion_id: uuid.UUID = Field(
        foreign_key="promotions.id",
        index=True,
    )

    code: str | None = None

    discount: float = 0.0

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
