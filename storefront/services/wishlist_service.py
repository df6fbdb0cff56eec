# storefront/services/wishlist_service.py
import uuid

from sqlmodel import Session

from storefront.core.errors import NotFound
from storefront.models.wishlist import Wishlist, WishlistItem
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.schemas.product import ProductRead
from storefront.schemas.wishlist import WishlistAddResult, WishlistItemRead, WishlistRead


class WishlistService:
    """
    Per-user wishlist. One wishlist per user, created on first access.
    """

    def __init__(self, repo: WishlistRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    def _get_or_create(self, session: Session, user_id: uuid.UUID) -> Wishlist:
        wishlist = self.repo.get_for_user(session, user_id)
        if wishlist is None:
            wishlist = self.repo.insert(session, Wishlist(user_id=user_id))
        return wishlist

    def _require(self, session: Session, user_id: uuid.UUID) -> Wishlist:
        wishlist = self.repo.get_for_user(session, user_id)
        if wishlist is None:
            raise NotFound("Wishlist not found")
        return wishlist

    @staticmethod
    def _item_read(item: WishlistItem, product=None) -> WishlistItemRead:
        return WishlistItemRead(
            id=item.id,
            product_id=item.product_id,
            added_at=item.added_at,
            product=ProductRead.model_validate(product, from_attributes=True) if product else None,
        )

    def get_wishlist(self, session: Session, user_id: uuid.UUID) -> WishlistRead:
        """
        Wishlist with newest items first; items whose product is no longer
        active are left out of the view.
        """
        wishlist = self._get_or_create(session, user_id)
        items = self.repo.list_items(session, wishlist.id)
        products = self.product_repo.get_many(session, [it.product_id for it in items])

        visible = []
        for it in items:
            product = products.get(it.product_id)
            if product is not None and product.status == "active":
                visible.append(self._item_read(it, product))
        return WishlistRead(id=wishlist.id, items=visible)

    def add_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> WishlistAddResult:
        """
        Add a product; adding it twice returns the existing entry.
        """
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise NotFound("Product not found")

        wishlist = self._get_or_create(session, user_id)
        existing = self.repo.find_item(session, wishlist.id, product_id)
        if existing:
            return WishlistAddResult(item=self._item_read(existing, product), created=False)

        item = self.repo.add_item(
            session, WishlistItem(wishlist_id=wishlist.id, product_id=product_id)
        )
        return WishlistAddResult(item=self._item_read(item, product), created=True)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> WishlistRead:
        wishlist = self._require(session, user_id)
        self.repo.remove_item(session, wishlist.id, item_id)
        return self.get_wishlist(session, user_id)

    def clear(self, session: Session, user_id: uuid.UUID) -> WishlistRead:
        wishlist = self._require(session, user_id)
        self.repo.clear(session, wishlist.id)
        return WishlistRead(id=wishlist.id, items=[])
