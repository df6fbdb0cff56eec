# storefront/routers/users.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_admin, require_auth
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.user import (
    UserList,
    UserRead,
    UserRoleUpdate,
    UserStatusUpdate,
    UserUpdate,
)
from storefront.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


# -------- Self profile --------


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.

    The profile row is auto-created on first request (auth dependency),
    with a default name derived from the email and role="user".
    """
    return service.get_me(current_user)


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Update the authenticated user's profile. Only `name` is editable.
    """
    return service.update_me(session, current_user, payload)


# -------- Admin endpoints --------


@router.get("", response_model=UserList, dependencies=[Depends(require_admin)])
def list_users(
    session: Session = Depends(get_session),
    page: int = 1,
    limit: int = 20,
):
    return service.list_users(session, page=page, limit=limit)


@router.get(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_user(session, user_id)


@router.patch(
    "/{user_id}/role",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    """
    Update a user's role (admin only).

    Allowed roles: user, admin.
    Guests are anonymous and don't have rows.
    """
    return service.update_role(session, user_id, payload)


@router.patch("/{user_id}/status", response_model=UserRead)
def change_status(
    user_id: uuid.UUID,
    payload: UserStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Activate or suspend an account (admin only). Suspended users are
    rejected on their next request.
    """
    return service.update_status(session, user_id, payload, admin)
