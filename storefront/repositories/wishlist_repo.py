# storefront/repositories/wishlist_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.wishlist import Wishlist, WishlistItem
from storefront.repositories.base import BaseRepository


class WishlistRepository(BaseRepository[Wishlist]):
    model = Wishlist

    def get_for_user(self, session: Session, user_id: uuid.UUID) -> Wishlist | None:
        return self.find_one(session, Wishlist.user_id == user_id)

    def list_items(self, session: Session, wishlist_id: uuid.UUID) -> list[WishlistItem]:
        stmt = (
            select(WishlistItem)
            .where(WishlistItem.wishlist_id == wishlist_id)
            .order_by(WishlistItem.added_at.desc())
        )
        return list(session.exec(stmt).all())

    def find_item(
        self, session: Session, wishlist_id: uuid.UUID, product_id: uuid.UUID
    ) -> WishlistItem | None:
        stmt = select(WishlistItem).where(
            WishlistItem.wishlist_id == wishlist_id,
            WishlistItem.product_id == product_id,
        )
        return session.exec(stmt).first()

    def add_item(self, session: Session, item: WishlistItem) -> WishlistItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def remove_item(self, session: Session, wishlist_id: uuid.UUID, item_id: uuid.UUID) -> None:
        stmt = select(WishlistItem).where(
            WishlistItem.id == item_id,
            WishlistItem.wishlist_id == wishlist_id,
        )
        for row in session.exec(stmt).all():
            session.delete(row)
        session.commit()

    def clear(self, session: Session, wishlist_id: uuid.UUID) -> None:
        for row in self.list_items(session, wishlist_id):
            session.delete(row)
        session.commit()
