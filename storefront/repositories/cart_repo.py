# storefront/repositories/cart_repo.py
import uuid
from typing import Any

from sqlmodel import Session, select

from storefront.models.cart import AppliedCoupon, Cart, CartItem
from storefront.repositories.base import BaseRepository


class CartRepository(BaseRepository[Cart]):
    """
    Data access for carts and their line items.
    """

    model = Cart

    def get_for_owner(self, session: Session, owner_filter: dict[str, Any]) -> Cart | None:
        where = [getattr(Cart, field) == value for field, value in owner_filter.items()]
        return self.find_one(session, *where)

    def delete_cart(self, session: Session, cart: Cart) -> None:
        """Delete a cart together with its items and applied coupons."""
        for child in (CartItem, AppliedCoupon):
            for row in session.exec(select(child).where(child.cart_id == cart.id)).all():
                session.delete(row)
        # children must be gone before the parent row
        session.flush()
        session.delete(cart)
        session.commit()


class CartItemRepository(BaseRepository[CartItem]):
    model = CartItem

    def list_for_cart(
        self,
        session: Session,
        cart_id: uuid.UUID,
        *,
        eligible_only: bool = False,
    ) -> list[CartItem]:
        where = [CartItem.cart_id == cart_id]
        if eligible_only:
            where.append(CartItem.saved_for_later == False)  # noqa: E712
        return self.find_all(session, *where, order_by=CartItem.created_at)

    def get_in_cart(
        self, session: Session, cart_id: uuid.UUID, item_id: uuid.UUID
    ) -> CartItem | None:
        return self.find_one(session, CartItem.id == item_id, CartItem.cart_id == cart_id)

    def find_line(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
        variant_id: uuid.UUID | None,
    ) -> CartItem | None:
        """
        Line for the exact product + variant combination.
        "No variant" only matches rows without a variant.
        """
        variant_clause = (
            CartItem.variant_id.is_(None)
            if variant_id is None
            else CartItem.variant_id == variant_id
        )
        return self.find_one(
            session,
            CartItem.cart_id == cart_id,
            CartItem.product_id == product_id,
            variant_clause,
        )


class CouponRepository(BaseRepository[AppliedCoupon]):
    model = AppliedCoupon

    def list_for_cart(self, session: Session, cart_id: uuid.UUID) -> list[AppliedCoupon]:
        return self.find_all(
            session, AppliedCoupon.cart_id == cart_id, order_by=AppliedCoupon.created_at
        )

    def get_in_cart(
        self, session: Session, cart_id: uuid.UUID, coupon_id: uuid.UUID
    ) -> AppliedCoupon | None:
        return self.find_one(
            session, AppliedCoupon.id == coupon_id, AppliedCoupon.cart_id == cart_id
        )

    def find_for_promotion(
        self, session: Session, cart_id: uuid.UUID, promotion_id: uuid.UUID
    ) -> AppliedCoupon | None:
        return self.find_one(
            session,
            AppliedCoupon.cart_id == cart_id,
            AppliedCoupon.promotion_id == promotion_id,
        )

    def is_promotion_in_use(self, session: Session, promotion_id: uuid.UUID) -> bool:
        return self.count(session, AppliedCoupon.promotion_id == promotion_id) > 0
