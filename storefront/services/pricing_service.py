# storefront/services/pricing_service.py
from datetime import datetime, timezone
from typing import Iterable

from sqlmodel import Session

from storefront.models.cart import AppliedCoupon, Cart, CartItem
from storefront.repositories.cart_repo import (
    CartItemRepository,
    CartRepository,
    CouponRepository,
)
from storefront.schemas.cart import CartTotals

# Flat tax rate (10%), not location-aware
TAX_RATE = 0.10

# Flat shipping, waived when the subtotal is above the threshold
SHIPPING_FLAT_RATE = 10.0
FREE_SHIPPING_THRESHOLD = 100.0


def money(value: float) -> float:
    """Round a monetary amount to cents."""
    return round(value, 2)


def compute_totals(
    items: Iterable[CartItem],
    coupons: Iterable[AppliedCoupon],
) -> CartTotals:
    """
    Derive cart totals.

    - subtotal:  sum(price * quantity) over items not saved for later
    - tax:       subtotal * TAX_RATE
    - shipping:  0 above FREE_SHIPPING_THRESHOLD, else SHIPPING_FLAT_RATE
    - discount:  sum of the amounts stored on the applied coupons
    - grand:     subtotal + tax + shipping - discount
    """
    subtotal = money(
        sum(it.price * it.quantity for it in items if not it.saved_for_later)
    )
    tax_total = money(subtotal * TAX_RATE)
    shipping_total = 0.0 if subtotal > FREE_SHIPPING_THRESHOLD else SHIPPING_FLAT_RATE
    discount_total = money(sum(c.discount for c in coupons))
    grand_total = money(subtotal + tax_total + shipping_total - discount_total)

    return CartTotals(
        subtotal=subtotal,
        discount_total=discount_total,
        tax_total=tax_total,
        shipping_total=shipping_total,
        grand_total=grand_total,
    )


class PricingService:
    """
    Keeps the five money fields of a cart in sync with its contents.

    Must run after every line-item mutation. Coupon apply/remove adjust
    discount_total/grand_total directly instead (subtotal, tax and
    shipping are unaffected by coupons).
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        item_repo: CartItemRepository,
        coupon_repo: CouponRepository,
    ):
        self.cart_repo = cart_repo
        self.item_repo = item_repo
        self.coupon_repo = coupon_repo

    def recalculate(self, session: Session, cart: Cart) -> CartTotals:
        items = self.item_repo.list_for_cart(session, cart.id, eligible_only=True)
        coupons = self.coupon_repo.list_for_cart(session, cart.id)
        totals = compute_totals(items, coupons)
        self._write(session, cart, totals)
        return totals

    def zero(self, session: Session, cart: Cart) -> CartTotals:
        totals = CartTotals()
        self._write(session, cart, totals)
        return totals

    def _write(self, session: Session, cart: Cart, totals: CartTotals) -> None:
        changes = totals.model_dump()
        changes["updated_at"] = datetime.now(timezone.utc)
        self.cart_repo.update(session, cart, changes)
