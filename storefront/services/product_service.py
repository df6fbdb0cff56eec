# storefront/services/product_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlmodel import Session

from storefront.core.errors import Conflict, InvalidRequest, NotFound
from storefront.core.slugs import ensure_unique_slug, slugify
from storefront.core.storage_utils import delete_public_url, upload_to_storage
from storefront.models.product import Product, ProductVariant
from storefront.repositories.base import DuplicateKeyError
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.common import Pagination, page_bounds
from storefront.schemas.product import (
    ProductCreate,
    ProductDetail,
    ProductFilter,
    ProductList,
    ProductRead,
    ProductUpdate,
    VariantIn,
    VariantRead,
)

logger = logging.getLogger(__name__)

# --- Image config ---

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

RELATED_LIMIT = 4

# Fields an update may explicitly clear with null
NULLABLE_FIELDS = {"description", "compare_at_price", "category_id"}


class ProductService:
    """
    Business logic for the product catalog.

    Responsibilities:
      - storefront listing / search / related products
      - slug generation & uniqueness
      - sku uniqueness (surfaced as Conflict)
      - hero image upload/replace orchestration with Supabase Storage
      - admin-only operations (enforced at router via require_admin)
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    def _unique_slug(self, session: Session, raw: str) -> str:
        return ensure_unique_slug(
            slugify(raw, fallback="product"),
            lambda s: self.repo.get_by_slug(session, s) is not None,
        )

    @staticmethod
    def _validate_and_get_ext(content_type: str, file_bytes: bytes) -> str:
        if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
            raise InvalidRequest("Unsupported image type. Allowed: JPEG, PNG, WEBP.")

        if len(file_bytes) > MAX_IMAGE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Image too large (max 5MB).",
            )

        return ALLOWED_IMAGE_CONTENT_TYPES[content_type]

    @staticmethod
    def _variants(product_id: uuid.UUID, variants: list[VariantIn]) -> list[ProductVariant]:
        return [ProductVariant(product_id=product_id, **v.model_dump()) for v in variants]

    def _detail(self, session: Session, product: Product) -> ProductDetail:
        return ProductDetail(
            **ProductRead.model_validate(product, from_attributes=True).model_dump(),
            variants=[
                VariantRead.model_validate(v, from_attributes=True)
                for v in self.repo.list_variants(session, product.id)
            ],
        )

    # ----- Storefront reads -----

    def list_products(self, session: Session, filters: ProductFilter) -> ProductList:
        """
        Filtered, sorted and paged listing (defaults to active products).
        """
        where = [Product.status == filters.status]
        if filters.category_id is not None:
            where.append(Product.category_id == filters.category_id)
        if filters.min_price is not None:
            where.append(Product.price >= filters.min_price)
        if filters.max_price is not None:
            where.append(Product.price <= filters.max_price)
        if filters.featured is not None:
            where.append(Product.featured == filters.featured)
        if filters.search and filters.search.strip():
            term = f"%{filters.search.strip()}%"
            where.append(or_(Product.name.ilike(term), Product.description.ilike(term)))

        column = getattr(Product, filters.sort)
        order_by = column.asc() if filters.order == "asc" else column.desc()

        skip, limit = page_bounds(filters.page, filters.limit)
        rows, total = self.repo.list(
            session, *where, order_by=order_by, skip=skip, limit=limit
        )
        return ProductList(
            products=[ProductRead.model_validate(p, from_attributes=True) for p in rows],
            pagination=Pagination.build(total, filters.page, limit),
        )

    def search_products(self, session: Session, q: str, limit: int = 10) -> list[Product]:
        q = (q or "").strip()
        if not q:
            raise InvalidRequest("Search query is required")
        term = f"%{q}%"
        return self.repo.find_all(
            session,
            Product.status == "active",
            or_(Product.name.ilike(term), Product.description.ilike(term)),
            order_by=Product.name,
            limit=limit,
        )

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    def get_product_detail(self, session: Session, product_id: uuid.UUID) -> ProductDetail:
        return self._detail(session, self.get_product(session, product_id))

    def related_products(self, session: Session, product_id: uuid.UUID) -> list[Product]:
        """
        Up to four other active products from the same category.
        """
        product = self.get_product(session, product_id)
        if product.category_id is None:
            return []
        return self.repo.find_all(
            session,
            Product.category_id == product.category_id,
            Product.id != product.id,
            Product.status == "active",
            order_by=Product.created_at.desc(),
            limit=RELATED_LIMIT,
        )

    # ----- Admin writes -----

    def create_product(self, session: Session, payload: ProductCreate) -> ProductDetail:
        """
        Create a product (and its variants) with a unique slug.

        - If slug is provided => slugify & ensure unique.
        - Else => slugify from name & ensure unique.
        """
        data = payload.model_dump(exclude={"variants", "slug"})
        product = Product(**data, slug=self._unique_slug(session, payload.slug or payload.name))
        try:
            product = self.repo.insert(session, product)
        except DuplicateKeyError:
            raise Conflict("A product with this SKU already exists")

        if payload.variants:
            self.repo.replace_variants(
                session, product.id, self._variants(product.id, payload.variants)
            )
        logger.info("Created product %s (%s)", product.id, product.slug)
        return self._detail(session, product)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> ProductDetail:
        """
        Partial update of a product.

        - A new slug, or a new name without a slug, re-derives the slug.
        - `variants`, when supplied, replaces the whole set.
        """
        product = self.get_product(session, product_id)
        fields = payload.model_fields_set

        new_slug = None
        if payload.slug:
            if slugify(payload.slug, fallback="product") != product.slug:
                new_slug = self._unique_slug(session, payload.slug)
        elif "name" in fields and payload.name and payload.name != product.name:
            new_slug = self._unique_slug(session, payload.name)

        changes = {
            field: value
            for field, value in payload.model_dump(
                exclude_unset=True, exclude={"variants", "slug"}
            ).items()
            if value is not None or field in NULLABLE_FIELDS
        }
        if new_slug:
            changes["slug"] = new_slug

        try:
            product = self.repo.update(session, product, changes)
        except DuplicateKeyError:
            raise Conflict("A product with this SKU already exists")

        if payload.variants is not None:
            self.repo.replace_variants(
                session, product.id, self._variants(product.id, payload.variants)
            )
        return self._detail(session, product)

    def delete_product(self, session: Session, product_id: uuid.UUID) -> None:
        """
        Delete a product with its variants, and clean up Storage.
        """
        product = self.get_product(session, product_id)
        if product.hero_image_url:
            delete_public_url(product.hero_image_url)
        self.repo.delete_with_variants(session, product)

    # ----- Hero image -----

    def set_hero_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Product:
        """
        Upload or replace the hero image for a product.

        - Validates content type + size.
        - Deletes old hero image from Storage if present.
        - Uploads new hero image to a deterministic path:
            products/<product_id>/hero.<ext>
        """
        product = self.get_product(session, product_id)
        ext = self._validate_and_get_ext(content_type, file_bytes)

        if product.hero_image_url:
            delete_public_url(product.hero_image_url)

        path = f"products/{product.id}/hero.{ext}"
        new_url = upload_to_storage(path, file_bytes, content_type)
        return self.repo.update(session, product, {"hero_image_url": new_url})
