# storefront/schemas/order.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel

from storefront.schemas.common import Pagination

OrderStatus = Literal[
    "pending", "processing", "shipped", "delivered", "cancelled", "refunded"
]

# Statuses from which a customer may still cancel
CANCELLABLE_STATUSES: frozenset[str] = frozenset({"pending", "processing"})


class AddressIn(SQLModel):
    """
    Shipping / billing address supplied at checkout.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str
    last_name: str
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str
    phone: str | None = None

    @field_validator(
        "first_name", "last_name", "address_line1", "city", "state", "postal_code", "country"
    )
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class OrderCreate(SQLModel):
    """
    Payload for creating an order from the current cart.

    Backend derives:
      - user_id / email from token (guests must send `email`)
      - status = 'pending'
      - totals, coupons and items from the cart
    """

    model_config = ConfigDict(extra="forbid")

    shipping_address: AddressIn
    billing_address: AddressIn
    payment_method: str
    shipping_method: str
    notes: str | None = None
    email: EmailStr | None = None

    @field_validator("payment_method", "shipping_method")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    note: str | None = None


class OrderCancel(SQLModel):
    reason: str | None = None


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: uuid.UUID | None
    name: str
    sku: str
    price: float
    quantity: int
    subtotal: float


class OrderAddressRead(AddressIn):
    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    type: str


class OrderStatusHistoryRead(SQLModel):
    id: uuid.UUID
    status: str
    note: str | None
    created_at: datetime


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without owned records).
    """

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID | None
    email: str
    status: OrderStatus
    payment_method: str
    shipping_method: str
    subtotal: float
    discount_total: float
    tax_total: float
    shipping_total: float
    grand_total: float
    notes: str | None
    applied_coupons: list[dict[str, Any]] | None = None
    created_at: datetime
    updated_at: datetime


class OrderDetail(OrderRead):
    """
    Full order view including items, addresses and status history.
    """

    items: list[OrderItemRead]
    addresses: list[OrderAddressRead]
    status_history: list[OrderStatusHistoryRead]


class OrderList(SQLModel):
    orders: list[OrderRead]
    pagination: Pagination
