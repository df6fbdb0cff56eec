# storefront/repositories/product_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.product import Product, ProductVariant
from storefront.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """
    Data access layer for Product & ProductVariant.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    model = Product

    # ----- Products -----

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        return self.find_one(session, Product.slug == slug)

    def get_many(self, session: Session, product_ids: list[uuid.UUID]) -> dict[uuid.UUID, Product]:
        if not product_ids:
            return {}
        rows = self.find_all(session, Product.id.in_(product_ids))
        return {p.id: p for p in rows}

    def delete_with_variants(self, session: Session, product: Product) -> None:
        for variant in self.list_variants(session, product.id):
            session.delete(variant)
        session.flush()
        session.delete(product)
        session.commit()

    # ----- Variants -----

    def list_variants(self, session: Session, product_id: uuid.UUID) -> list[ProductVariant]:
        stmt = select(ProductVariant).where(ProductVariant.product_id == product_id)
        return list(session.exec(stmt).all())

    def get_variant(
        self,
        session: Session,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> ProductVariant | None:
        variant = session.get(ProductVariant, variant_id)
        if variant is None or variant.product_id != product_id:
            return None
        return variant

    def replace_variants(
        self,
        session: Session,
        product_id: uuid.UUID,
        variants: list[ProductVariant],
    ) -> list[ProductVariant]:
        for old in self.list_variants(session, product_id):
            session.delete(old)
        session.flush()
        session.add_all(variants)
        session.commit()
        for variant in variants:
            session.refresh(variant)
        return variants
