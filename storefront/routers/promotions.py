# storefront/routers/promotions.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import require_admin
from storefront.core.identity import CartOwner, get_cart_owner
from storefront.database import get_session
from storefront.repositories.cart_repo import (
    CartItemRepository,
    CartRepository,
    CouponRepository,
)
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.promotion_repo import PromotionRepository
from storefront.schemas.cart import CartRead
from storefront.schemas.promotion import (
    AppliedCouponResult,
    CouponApply,
    PromotionCreate,
    PromotionList,
    PromotionRead,
    PromotionUpdate,
)
from storefront.services.cart_service import CartService
from storefront.services.pricing_service import PricingService
from storefront.services.promotion_service import PromotionService

router = APIRouter(prefix="/promotions", tags=["Promotions"])

cart_repo = CartRepository()
item_repo = CartItemRepository()
coupon_repo = CouponRepository()
cart_service = CartService(
    cart_repo,
    item_repo,
    coupon_repo,
    ProductRepository(),
    PricingService(cart_repo, item_repo, coupon_repo),
)
service = PromotionService(PromotionRepository(), coupon_repo, cart_service)


# -------- Coupons (guests and users) --------


@router.post("/apply", response_model=AppliedCouponResult)
def apply_coupon(
    payload: CouponApply,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    """
    Apply a coupon code to the current cart.

    `warnings` is non-empty when the coupon was applied but some
    bookkeeping failed.
    """
    return service.apply_coupon(session, owner, payload.code)


@router.delete("/coupons/{coupon_id}", response_model=CartRead)
def remove_coupon(
    coupon_id: uuid.UUID,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    return service.remove_coupon(session, owner, coupon_id)


# -------- Admin endpoints --------


@router.get("", response_model=PromotionList, dependencies=[Depends(require_admin)])
def list_promotions(
    session: Session = Depends(get_session),
    page: int = 1,
    limit: int = 20,
    active_only: bool = False,
):
    return service.list_promotions(session, page=page, limit=limit, active_only=active_only)


@router.get(
    "/{promotion_id}",
    response_model=PromotionRead,
    dependencies=[Depends(require_admin)],
)
def get_promotion(
    promotion_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_promotion(session, promotion_id)


@router.post(
    "",
    response_model=PromotionRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_promotion(
    payload: PromotionCreate,
    session: Session = Depends(get_session),
):
    """
    Create a promotion (admin only). Codes are stored uppercase.
    """
    return service.create_promotion(session, payload)


@router.patch(
    "/{promotion_id}",
    response_model=PromotionRead,
    dependencies=[Depends(require_admin)],
)
def update_promotion(
    promotion_id: uuid.UUID,
    payload: PromotionUpdate,
    session: Session = Depends(get_session),
):
    return service.update_promotion(session, promotion_id, payload)


@router.delete(
    "/{promotion_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_promotion(
    promotion_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a promotion (admin only). Refused while a cart has it applied.
    """
    service.delete_promotion(session, promotion_id)
    return None
