# storefront/core/identity.py
import uuid
from typing import Any, Literal

from fastapi import Depends, Header, Query
from sqlmodel import SQLModel

from storefront.core.auth import get_current_user
from storefront.core.errors import InvalidRequest
from storefront.models.user import User

Purpose = Literal["cart", "checkout"]

_MISSING_SESSION = {
    "cart": "Session ID is required for guest cart",
    "checkout": "Session ID is required for guest checkout",
}


class CartOwner(SQLModel):
    """
    Ownership key of a cart: either an authenticated user id or a guest
    session id, never both.
    """

    user_id: uuid.UUID | None = None
    session_id: str | None = None

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def as_filter(self) -> dict[str, Any]:
        if self.user_id is not None:
            return {"user_id": self.user_id}
        return {"session_id": self.session_id}


def resolve_owner(
    user_id: uuid.UUID | None,
    session_id: str | None,
    *,
    purpose: Purpose = "cart",
) -> CartOwner:
    """
    Pick the ownership key for a request.

    The authenticated user always wins; the guest session id is only used
    when there is no user.

    Raises:
        InvalidRequest: if neither identity is present.
    """
    if user_id is not None:
        return CartOwner(user_id=user_id)

    session_id = (session_id or "").strip()
    if not session_id:
        raise InvalidRequest(_MISSING_SESSION[purpose])
    return CartOwner(session_id=session_id)


def guest_session_id(
    x_session_id: str | None = Header(default=None, alias="X-Session-Id"),
    session_id: str | None = Query(default=None, alias="sessionId"),
) -> str | None:
    """
    Guest session id supplied by the client, header first.
    """
    return x_session_id or session_id


def get_cart_owner(
    user: User | None = Depends(get_current_user),
    session_id: str | None = Depends(guest_session_id),
) -> CartOwner:
    return resolve_owner(user.id if user else None, session_id, purpose="cart")


def get_checkout_owner(
    user: User | None = Depends(get_current_user),
    session_id: str | None = Depends(guest_session_id),
) -> CartOwner:
    return resolve_owner(user.id if user else None, session_id, purpose="checkout")
