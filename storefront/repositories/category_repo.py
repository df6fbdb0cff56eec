# storefront/repositories/category_repo.py
import uuid

from sqlmodel import Session

from storefront.models.category import Category
from storefront.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    model = Category

    def get_by_slug(self, session: Session, slug: str) -> Category | None:
        return self.find_one(session, Category.slug == slug)

    def list_active(self, session: Session) -> list[Category]:
        return self.find_all(
            session, Category.is_active == True, order_by=Category.name  # noqa: E712
        )

    def list_children(self, session: Session, parent_id: uuid.UUID) -> list[Category]:
        return self.find_all(session, Category.parent_id == parent_id, order_by=Category.name)
