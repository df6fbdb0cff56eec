# storefront/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.core.errors import InvalidRequest
from storefront.core.identity import CartOwner, get_cart_owner, guest_session_id
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import (
    CartItemRepository,
    CartRepository,
    CouponRepository,
)
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import CartItemCreate, CartItemUpdate, CartRead
from storefront.services.cart_service import CartService
from storefront.services.pricing_service import PricingService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
item_repo = CartItemRepository()
coupon_repo = CouponRepository()
pricing = PricingService(cart_repo, item_repo, coupon_repo)
service = CartService(cart_repo, item_repo, coupon_repo, ProductRepository(), pricing)


@router.get("", response_model=CartRead)
def get_my_cart(
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    """
    Get the current cart.

    Auth:
      - Bearer token => the user's cart.
      - Otherwise `X-Session-Id` header (or `sessionId` query) => guest cart.
    """
    return service.get_cart(session, owner)


@router.post("", response_model=CartRead)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    """
    Add a product (optionally a variant) to the cart.

    Returns the updated cart.
    """
    return service.add_item(session, owner, payload)


@router.patch("/items/{item_id}", response_model=CartRead)
def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    """
    Change quantity and/or saved-for-later flag of a line.
    quantity <= 0 removes the line.
    """
    return service.update_item(session, owner, item_id, payload)


@router.delete("/items/{item_id}", response_model=CartRead)
def remove_cart_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    return service.remove_item(session, owner, item_id)


@router.delete("", response_model=CartRead)
def clear_cart(
    session: Session = Depends(get_session),
    owner: CartOwner = Depends(get_cart_owner),
):
    """
    Clear the entire cart (items and coupons).
    """
    return service.clear(session, owner)


@router.post("/merge", response_model=CartRead)
def merge_guest_cart(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    session_id: str | None = Depends(guest_session_id),
):
    """
    Merge the guest cart identified by the session id into the
    authenticated user's cart. Call right after login.
    """
    if not session_id or not session_id.strip():
        raise InvalidRequest("Session ID is required to merge a guest cart")
    return service.merge_guest_cart(session, current_user.id, session_id.strip())
