# storefront/models/promotion.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


class Promotion(SQLModel, table=True):
    """
    Discount rule, optionally redeemable through a coupon code.

    type:
      - percentage    : `value` percent of the subtotal, capped by `max_discount`
      - fixed         : `value` off, never more than the subtotal
      - free_shipping : removes the cart's shipping charge
      - buy_x_get_y   : configured through `conditions` only

    Only `usage_limit_total` is enforced; `usage_limit_per_user` is stored
    for reporting.
    """

    __tablename__ = "promotions"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(max_length=255)
    description: str | None = None

    code: str | None = Field(
        default=None,
        max_length=100,
        unique=True,
        index=True,
        description="Coupon code, always stored uppercase",
    )

    type: str = Field(
        index=True,
        description="percentage | fixed | free_shipping | buy_x_get_y",
    )

    value: float = 0.0
    min_purchase: float = 0.0
    max_discount: float | None = None

    start_date: datetime
    end_date: datetime

    is_active: bool = Field(default=True, index=True)

    usage_limit_per_user: int | None = None
    usage_limit_total: int | None = None
    usage_count: int = Field(default=0, ge=0)

    conditions: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
        description="buy_x / get_y configuration",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
