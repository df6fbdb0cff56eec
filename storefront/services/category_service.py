# storefront/services/category_service.py
import logging
import uuid
from typing import Any

from sqlmodel import Session

from storefront.core.errors import Conflict, InvalidRequest, NotFound, PreconditionFailed
from storefront.core.slugs import slugify
from storefront.core.tree import build_tree
from storefront.models.category import Category
from storefront.models.product import Product
from storefront.repositories.base import DuplicateKeyError
from storefront.repositories.category_repo import CategoryRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.category import (
    CategoryCreate,
    CategoryDetail,
    CategoryNode,
    CategoryRead,
    CategoryUpdate,
)
from storefront.schemas.product import ProductRead

logger = logging.getLogger(__name__)

# Products shown on a category page
CATEGORY_PRODUCTS_LIMIT = 10


def _to_node(node: dict[str, Any]) -> CategoryNode:
    base = CategoryRead.model_validate(node["record"], from_attributes=True)
    return CategoryNode(
        **base.model_dump(),
        subcategories=[_to_node(child) for child in node["children"]],
    )


class CategoryService:
    """
    Category hierarchy management.

    Slugs come from the name and must be unique (no -2 suffixing, a
    duplicate name is a Conflict). `level` is derived from the parent.
    """

    def __init__(self, repo: CategoryRepository, product_repo: ProductRepository):
        self.repo = repo
        self.product_repo = product_repo

    # ----- Reads -----

    def get_tree(self, session: Session) -> list[CategoryNode]:
        """Active categories as a forest, siblings ordered by name."""
        roots = build_tree(
            self.repo.list_active(session),
            id_of=lambda c: c.id,
            parent_id_of=lambda c: c.parent_id,
        )
        return [_to_node(root) for root in roots]

    def get_category(self, session: Session, category_id: uuid.UUID) -> Category:
        category = self.repo.get_by_id(session, category_id)
        if not category:
            raise NotFound("Category not found")
        return category

    def get_category_detail(self, session: Session, category_id: uuid.UUID) -> CategoryDetail:
        """
        Category with its direct subcategories and a first page of its
        active products.
        """
        category = self.get_category(session, category_id)
        products = self.product_repo.find_all(
            session,
            Product.category_id == category.id,
            Product.status == "active",
            order_by=Product.created_at.desc(),
            limit=CATEGORY_PRODUCTS_LIMIT,
        )
        return CategoryDetail(
            **CategoryRead.model_validate(category, from_attributes=True).model_dump(),
            subcategories=[
                CategoryRead.model_validate(c, from_attributes=True)
                for c in self.repo.list_children(session, category.id)
            ],
            products=[ProductRead.model_validate(p, from_attributes=True) for p in products],
        )

    # ----- Helpers -----

    def _slug_for(
        self,
        session: Session,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> str:
        slug = slugify(name, fallback="category")
        existing = self.repo.get_by_slug(session, slug)
        if existing and existing.id != exclude_id:
            raise Conflict("Category with this name already exists")
        return slug

    def _level_under(self, session: Session, parent_id: uuid.UUID | None) -> int:
        if parent_id is None:
            return 1
        parent = self.repo.get_by_id(session, parent_id)
        if not parent:
            raise NotFound("Parent category not found")
        return parent.level + 1

    def _check_no_cycle(
        self,
        session: Session,
        category_id: uuid.UUID,
        parent_id: uuid.UUID,
    ) -> None:
        """Walk up from the new parent; meeting the category itself is a cycle."""
        if parent_id == category_id:
            raise InvalidRequest("Category cannot be its own parent")
        seen: set[uuid.UUID] = set()
        current = self.repo.get_by_id(session, parent_id)
        while current is not None and current.id not in seen:
            if current.id == category_id:
                raise InvalidRequest("Category cannot be moved under its own subcategory")
            seen.add(current.id)
            current = self.repo.get_by_id(session, current.parent_id) if current.parent_id else None

    # ----- Writes -----

    def create_category(self, session: Session, payload: CategoryCreate) -> Category:
        category = Category(
            name=payload.name.strip(),
            slug=self._slug_for(session, payload.name),
            description=payload.description,
            parent_id=payload.parent_id,
            level=self._level_under(session, payload.parent_id),
            image=payload.image,
            is_active=payload.is_active,
        )
        try:
            category = self.repo.insert(session, category)
        except DuplicateKeyError:
            raise Conflict("Category with this name already exists")
        logger.info("Created category %s (%s)", category.id, category.slug)
        return category

    def update_category(
        self,
        session: Session,
        category_id: uuid.UUID,
        payload: CategoryUpdate,
    ) -> Category:
        """
        Partial update.

        - renaming re-derives the slug
        - moving re-derives the level (children keep their stored level)
        """
        category = self.get_category(session, category_id)
        fields = payload.model_fields_set
        changes: dict[str, Any] = {}

        if payload.name is not None and payload.name.strip() != category.name:
            changes["name"] = payload.name.strip()
            changes["slug"] = self._slug_for(session, payload.name, exclude_id=category.id)

        if "parent_id" in fields:
            if payload.parent_id is not None:
                self._check_no_cycle(session, category.id, payload.parent_id)
            changes["parent_id"] = payload.parent_id
            changes["level"] = self._level_under(session, payload.parent_id)

        for field in ("description", "image"):
            if field in fields:
                changes[field] = getattr(payload, field)
        if payload.is_active is not None:
            changes["is_active"] = payload.is_active

        try:
            return self.repo.update(session, category, changes)
        except DuplicateKeyError:
            raise Conflict("Category with this name already exists")

    def delete_category(self, session: Session, category_id: uuid.UUID) -> None:
        category = self.get_category(session, category_id)
        if self.repo.count(session, Category.parent_id == category.id):
            raise PreconditionFailed("Cannot delete category with subcategories")
        if self.product_repo.count(session, Product.category_id == category.id):
            raise PreconditionFailed("Cannot delete category with products")
        self.repo.delete(session, category)
