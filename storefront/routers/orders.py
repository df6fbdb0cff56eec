# storefront/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import get_current_user, require_admin, require_auth
from storefront.core.identity import CartOwner, get_checkout_owner
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import (
    CartItemRepository,
    CartRepository,
    CouponRepository,
)
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import (
    OrderCancel,
    OrderCreate,
    OrderDetail,
    OrderList,
    OrderStatus,
    OrderStatusUpdate,
)
from storefront.services.order_service import OrderService
from storefront.services.pricing_service import PricingService

router = APIRouter(prefix="/orders", tags=["Orders"])

cart_repo = CartRepository()
item_repo = CartItemRepository()
coupon_repo = CouponRepository()
service = OrderService(
    OrderRepository(),
    cart_repo,
    item_repo,
    coupon_repo,
    ProductRepository(),
    PricingService(cart_repo, item_repo, coupon_repo),
)


# -------- Checkout (guests and users) --------


@router.post(
    "",
    response_model=OrderDetail,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_checkout_owner),
    current_user: User | None = Depends(get_current_user),
):
    """
    Create an order from the current cart.

    Behavior:
      - Uses the cart items not saved for later.
      - Re-checks stock; totals and coupons are copied from the cart.
      - Deducts stock and resets the cart afterwards.
      - Guests must include `email` in the payload.
    """
    return service.create_order(session, owner, payload, current_user)


# -------- Authenticated user endpoints --------


@router.get("/me", response_model=OrderList)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    page: int = 1,
    limit: int = 10,
):
    """
    List the current user's orders, newest first.
    """
    return service.list_user_orders(session, current_user.id, page=page, limit=limit)


@router.get("/{order_id}", response_model=OrderDetail)
def get_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get one order with items, addresses and status history.
    Owners and admins only.
    """
    return service.get_order(session, order_id, current_user)


@router.post("/{order_id}/cancel", response_model=OrderDetail)
def cancel_order(
    order_id: uuid.UUID,
    payload: OrderCancel | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Cancel a pending or processing order; its stock is put back.
    """
    reason = payload.reason if payload else None
    return service.cancel_order(session, order_id, current_user, reason)


# -------- Admin endpoints --------


@router.get("", response_model=OrderList, dependencies=[Depends(require_admin)])
def list_all_orders(
    session: Session = Depends(get_session),
    page: int = 1,
    limit: int = 20,
    status: OrderStatus | None = None,
):
    """
    List all orders (admin only), optionally filtered by status.
    """
    return service.list_all_orders(session, page=page, limit=limit, status=status)


@router.patch(
    "/{order_id}/status",
    response_model=OrderDetail,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Set any order status (admin only). Every change is logged in the
    status history.
    """
    return service.update_status(session, order_id, payload)
