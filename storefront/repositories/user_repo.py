# storefront/repositories/user_repo.py
from sqlmodel import Session

from storefront.models.user import User
from storefront.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    model = User

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        return self.find_one(session, User.email == email)
