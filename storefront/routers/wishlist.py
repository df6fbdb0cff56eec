# storefront/routers/wishlist.py
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.schemas.wishlist import WishlistAdd, WishlistAddResult, WishlistRead
from storefront.services.wishlist_service import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])

service = WishlistService(WishlistRepository(), ProductRepository())


@router.get("", response_model=WishlistRead)
def get_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.get_wishlist(session, current_user.id)


@router.post("", response_model=WishlistAddResult)
def add_to_wishlist(
    payload: WishlistAdd,
    response: Response,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Add a product to the wishlist.

    201 when a new entry was created, 200 when it was already there.
    """
    result = service.add_item(session, current_user.id, payload.product_id)
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    return result


@router.delete("/items/{item_id}", response_model=WishlistRead)
def remove_from_wishlist(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.remove_item(session, current_user.id, item_id)


@router.delete("", response_model=WishlistRead)
def clear_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.clear(session, current_user.id)
