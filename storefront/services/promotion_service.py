# storefront/services/promotion_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import Conflict, Expired, NotFound, PreconditionFailed
from storefront.core.identity import CartOwner
from storefront.models.cart import AppliedCoupon, Cart
from storefront.models.promotion import Promotion
from storefront.repositories.base import DuplicateKeyError, merge_patch
from storefront.repositories.cart_repo import CouponRepository
from storefront.repositories.promotion_repo import PromotionRepository
from storefront.schemas.cart import AppliedCouponRead, CartRead
from storefront.schemas.common import Pagination, page_bounds
from storefront.schemas.promotion import (
    AppliedCouponResult,
    PromotionCreate,
    PromotionList,
    PromotionRead,
    PromotionUpdate,
)
from storefront.services.cart_service import CartService
from storefront.services.pricing_service import money

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def is_within_window(promotion: Promotion, now: datetime | None = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return (
        promotion.is_active
        and _as_utc(promotion.start_date) <= now <= _as_utc(promotion.end_date)
    )


def has_uses_left(promotion: Promotion) -> bool:
    return (
        promotion.usage_limit_total is None
        or promotion.usage_count < promotion.usage_limit_total
    )


def compute_discount(promotion: Promotion, cart: Cart) -> float:
    """
    Amount taken off the cart by `promotion`.

    - percentage    : subtotal * value / 100, capped by max_discount
    - fixed         : value, never more than the subtotal
    - free_shipping : the cart's current shipping charge
    """
    if promotion.type == "percentage":
        discount = cart.subtotal * promotion.value / 100
        if promotion.max_discount is not None:
            discount = min(discount, promotion.max_discount)
    elif promotion.type == "fixed":
        discount = min(promotion.value, cart.subtotal)
    elif promotion.type == "free_shipping":
        discount = cart.shipping_total
    else:
        raise PreconditionFailed(f"Promotion type '{promotion.type}' is not supported")
    return money(discount)


class PromotionService:
    """
    Coupon application on carts plus promotion administration.

    Coupon apply/remove adjust discount_total and grand_total directly;
    the other totals are left as the pricing engine computed them.
    """

    def __init__(
        self,
        promotion_repo: PromotionRepository,
        coupon_repo: CouponRepository,
        cart_service: CartService,
    ):
        self.promotion_repo = promotion_repo
        self.coupon_repo = coupon_repo
        self.cart_service = cart_service

    # -------- Coupons on carts --------

    def apply_coupon(
        self,
        session: Session,
        owner: CartOwner,
        code: str,
    ) -> AppliedCouponResult:
        """
        Validate a coupon code and apply it to the owner's cart.

        Check order:
          1. code exists
          2. promotion is active, in its window, and has uses left
          3. cart exists and does not carry this promotion yet
          4. cart subtotal meets min_purchase
          5. promotion type is supported

        The usage counter is bumped after the coupon is stored. If that
        fails the coupon stays applied and the result carries a warning.
        """
        promotion = self.promotion_repo.get_by_code(session, code.strip().upper())
        if not promotion:
            raise NotFound("Invalid coupon code")

        if not is_within_window(promotion):
            raise Expired("This coupon has expired or is not active")
        if not has_uses_left(promotion):
            raise Expired("This coupon has reached its usage limit")

        cart = self.cart_service.require_cart(session, owner)
        if self.coupon_repo.find_for_promotion(session, cart.id, promotion.id):
            raise Conflict("This coupon has already been applied")

        if cart.subtotal < promotion.min_purchase:
            raise PreconditionFailed(
                f"Minimum purchase of {promotion.min_purchase:.2f} required for this coupon"
            )

        discount = compute_discount(promotion, cart)

        applied = self.coupon_repo.insert(
            session,
            AppliedCoupon(
                cart_id=cart.id,
                promotion_id=promotion.id,
                code=promotion.code,
                discount=discount,
            ),
        )
        self.cart_service.cart_repo.update(
            session,
            cart,
            {
                "discount_total": money(cart.discount_total + discount),
                "grand_total": money(cart.grand_total - discount),
                "updated_at": datetime.now(timezone.utc),
            },
        )

        warnings: list[str] = []
        try:
            self.promotion_repo.increment(session, promotion.id, "usage_count", 1)
        except Exception:
            session.rollback()
            logger.exception("Failed to bump usage count for promotion %s", promotion.id)
            warnings.append("Coupon applied but its usage count could not be updated")

        return AppliedCouponResult(
            cart=self.cart_service.build_cart_read(session, cart),
            applied_coupon=AppliedCouponRead.model_validate(applied, from_attributes=True),
            warnings=warnings,
        )

    def remove_coupon(
        self,
        session: Session,
        owner: CartOwner,
        coupon_id: uuid.UUID,
    ) -> CartRead:
        """
        Take a coupon off the cart, reversing exactly the discount it added.
        The promotion's usage count is left as is.
        """
        cart = self.cart_service.require_cart(session, owner)
        applied = self.coupon_repo.get_in_cart(session, cart.id, coupon_id)
        if not applied:
            raise NotFound("Coupon not found")

        discount = applied.discount
        self.coupon_repo.delete(session, applied)
        self.cart_service.cart_repo.update(
            session,
            cart,
            {
                "discount_total": money(cart.discount_total - discount),
                "grand_total": money(cart.grand_total + discount),
                "updated_at": datetime.now(timezone.utc),
            },
        )
        return self.cart_service.build_cart_read(session, cart)

    # -------- Administration --------

    def list_promotions(
        self,
        session: Session,
        page: int = 1,
        limit: int = 20,
        active_only: bool = False,
    ) -> PromotionList:
        where = []
        if active_only:
            now = datetime.now(timezone.utc)
            where = [
                Promotion.is_active == True,  # noqa: E712
                Promotion.start_date <= now,
                Promotion.end_date >= now,
            ]
        skip, limit = page_bounds(page, limit)
        rows, total = self.promotion_repo.list(
            session,
            *where,
            order_by=Promotion.created_at.desc(),
            skip=skip,
            limit=limit,
        )
        return PromotionList(
            promotions=[PromotionRead.model_validate(p, from_attributes=True) for p in rows],
            pagination=Pagination.build(total, page, limit),
        )

    def get_promotion(self, session: Session, promotion_id: uuid.UUID) -> Promotion:
        promotion = self.promotion_repo.get_by_id(session, promotion_id)
        if not promotion:
            raise NotFound("Promotion not found")
        return promotion

    def _ensure_code_free(
        self,
        session: Session,
        code: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if not code:
            return
        where = [Promotion.code == code]
        if exclude_id is not None:
            where.append(Promotion.id != exclude_id)
        if self.promotion_repo.find_one(session, *where):
            raise Conflict("Promotion code already exists")

    def create_promotion(self, session: Session, payload: PromotionCreate) -> Promotion:
        self._ensure_code_free(session, payload.code)
        promotion = Promotion(**payload.model_dump(), usage_count=0)
        try:
            promotion = self.promotion_repo.insert(session, promotion)
        except DuplicateKeyError:
            raise Conflict("Promotion code already exists")
        logger.info("Created promotion %s (code=%s)", promotion.id, promotion.code)
        return promotion

    def update_promotion(
        self,
        session: Session,
        promotion_id: uuid.UUID,
        payload: PromotionUpdate,
    ) -> Promotion:
        promotion = self.get_promotion(session, promotion_id)
        if "code" in payload.model_fields_set and payload.code != promotion.code:
            self._ensure_code_free(session, payload.code, exclude_id=promotion.id)

        merge_patch(promotion, payload, skip_none=True)
        # an explicit null code turns the promotion into an automatic one
        if "code" in payload.model_fields_set and payload.code is None:
            promotion.code = None
        try:
            return self.promotion_repo.update(session, promotion)
        except DuplicateKeyError:
            raise Conflict("Promotion code already exists")

    def delete_promotion(self, session: Session, promotion_id: uuid.UUID) -> None:
        promotion = self.get_promotion(session, promotion_id)
        if self.coupon_repo.is_promotion_in_use(session, promotion.id):
            raise PreconditionFailed("Promotion is applied to active carts")
        self.promotion_repo.delete(session, promotion)
