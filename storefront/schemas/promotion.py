# storefront/schemas/promotion.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.cart import AppliedCouponRead, CartRead
from storefront.schemas.common import Pagination

PromotionType = Literal["percentage", "fixed", "free_shipping", "buy_x_get_y"]


def _normalize_code(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip().upper()
    return v or None


class PromotionCreate(SQLModel):
    """
    Payload for creating a promotion (admin).

    - code is optional and stored uppercase
    - value is required for percentage / fixed promotions
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    code: str | None = None
    type: PromotionType
    value: float = Field(default=0.0, ge=0)
    min_purchase: float = Field(default=0.0, ge=0)
    max_discount: float | None = Field(default=None, ge=0)
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    usage_limit_per_user: int | None = Field(default=None, ge=1)
    usage_limit_total: int | None = Field(default=None, ge=1)
    conditions: dict[str, Any] | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return _normalize_code(v)

    @model_validator(mode="after")
    def check_rules(self) -> "PromotionCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be after start_date")
        if self.type in ("percentage", "fixed") and self.value <= 0:
            raise ValueError("value is required for percentage and fixed promotions")
        if self.type == "percentage" and self.value > 100:
            raise ValueError("percentage value cannot exceed 100")
        return self


class PromotionUpdate(SQLModel):
    """
    Partial update; only supplied fields are written.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    code: str | None = None
    type: PromotionType | None = None
    value: float | None = Field(default=None, ge=0)
    min_purchase: float | None = Field(default=None, ge=0)
    max_discount: float | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None
    usage_limit_per_user: int | None = None
    usage_limit_total: int | None = None
    conditions: dict[str, Any] | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return _normalize_code(v)


class PromotionRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str | None
    code: str | None
    type: str
    value: float
    min_purchase: float
    max_discount: float | None
    start_date: datetime
    end_date: datetime
    is_active: bool
    usage_limit_per_user: int | None
    usage_limit_total: int | None
    usage_count: int
    conditions: dict[str, Any] | None
    created_at: datetime


class PromotionList(SQLModel):
    promotions: list[PromotionRead]
    pagination: Pagination


class CouponApply(SQLModel):
    code: str = Field(min_length=1)


class AppliedCouponResult(SQLModel):
    """
    Result of applying a coupon.

    `warnings` lists bookkeeping steps that failed after the coupon was
    applied (degraded success).
    """

    cart: CartRead
    applied_coupon: AppliedCouponRead
    warnings: list[str] = []
