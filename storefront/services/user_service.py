# storefront/services/user_service.py
import logging
import uuid

from sqlmodel import Session

from storefront.core.errors import InvalidRequest, NotFound
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.common import Pagination, page_bounds
from storefront.schemas.user import (
    UserList,
    UserRead,
    UserRoleUpdate,
    UserStatusUpdate,
    UserUpdate,
)

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - profile edits for the current user (name only)
      - admin role / status management
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def get_me(self, current_user: User) -> User:
        """Return the current authenticated user."""
        return current_user

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits.
        Currently, only `name` is editable.
        """
        changes = {}
        if payload.name is not None:
            changes["name"] = payload.name
        return self.repo.update(session, current_user, changes)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        page: int = 1,
        limit: int = 20,
    ) -> UserList:
        """List users with pagination, newest first (admin only)."""
        skip, limit = page_bounds(page, limit)
        rows, total = self.repo.list(
            session, order_by=User.created_at.desc(), skip=skip, limit=limit
        )
        return UserList(
            users=[UserRead.model_validate(u, from_attributes=True) for u in rows],
            pagination=Pagination.build(total, page, limit),
        )

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        """
        Get a user by id (admin only).

        Raises:
            NotFound: if not found.
        """
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_role(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        user = self.get_user(session, user_id)
        logger.info("Role of user %s changed %s -> %s", user.id, user.role, payload.role)
        return self.repo.update(session, user, {"role": payload.role})

    def update_status(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserStatusUpdate,
        acting_admin: User,
    ) -> User:
        """
        Activate or suspend an account (admin only). Admins cannot suspend
        themselves.
        """
        user = self.get_user(session, user_id)
        if user.id == acting_admin.id and payload.status != "active":
            raise InvalidRequest("You cannot suspend your own account")
        return self.repo.update(session, user, {"status": payload.status})
