# storefront/models/order.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Created once from a priced cart; items, addresses and totals are
    copies, not references. Only `status` (and `updated_at`) change
    afterwards, and every change is mirrored in OrderStatusHistory.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        max_length=20,
        unique=True,
        index=True,
        description="Human-readable number: YYMMDD-NNNN",
    )

    # None for guest checkout
    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    email: str = Field(description="Contact email for the order")

    # pending | processing | shipped | delivered | cancelled | refunded
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    payment_method: str
    shipping_method: str

    subtotal: float
    discount_total: float = 0.0
    tax_total: float = 0.0
    shipping_total: float = 0.0
    grand_total: float

    notes: str | None = None

    applied_coupons: list[dict[str, Any]] | None = Field(
        default=None,
        sa_column=Column(JSON),
        description="Snapshot of [{code, discount}] at checkout",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order (snapshot of the cart line at checkout).
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    variant_id: uuid.UUID | None = None

    name: str
    sku: str

    price: float = Field(description="Unit price at time of order")
    quantity: int = Field(gt=0)
    subtotal: float


class OrderAddress(SQLModel, table=True):
    """
    Shipping or billing address owned by an order.
    """

    __tablename__ = "order_addresses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    # shipping | billing
    type: str

    first_name: str
    last_name: str
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str
    phone: str | None = None


class OrderStatusHistory(SQLModel, table=True):
    """
    Append-only log of status changes.
    """

    __tablename__ = "order_status_history"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    status: str
    note: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
