# storefront/repositories/promotion_repo.py
from sqlmodel import Session

from storefront.models.promotion import Promotion
from storefront.repositories.base import BaseRepository


class PromotionRepository(BaseRepository[Promotion]):
    model = Promotion

    def get_by_code(self, session: Session, code: str) -> Promotion | None:
        """Codes are stored uppercase; callers pass the normalized code."""
        return self.find_one(session, Promotion.code == code)
