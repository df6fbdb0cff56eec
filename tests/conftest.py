"""Shared fixtures: in-memory database, wired services and record factories."""

import os

# Settings are read at import time, so the environment must be ready first.
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from storefront.core.identity import CartOwner
from storefront.main import app  # noqa: F401  (registers every table)
from storefront.models.category import Category
from storefront.models.product import Product, ProductVariant
from storefront.models.promotion import Promotion
from storefront.models.user import User
from storefront.repositories.cart_repo import (
    CartItemRepository,
    CartRepository,
    CouponRepository,
)
from storefront.repositories.category_repo import CategoryRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.promotion_repo import PromotionRepository
from storefront.repositories.user_repo import UserRepository
from storefront.repositories.wishlist_repo import WishlistRepository
from storefront.services.cart_service import CartService
from storefront.services.category_service import CategoryService
from storefront.services.order_service import OrderService
from storefront.services.pricing_service import PricingService
from storefront.services.product_service import ProductService
from storefront.services.promotion_service import PromotionService
from storefront.services.user_service import UserService
from storefront.services.wishlist_service import WishlistService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def services():
    """Every service wired the way the routers wire them."""
    cart_repo = CartRepository()
    item_repo = CartItemRepository()
    coupon_repo = CouponRepository()
    product_repo = ProductRepository()
    pricing = PricingService(cart_repo, item_repo, coupon_repo)
    cart = CartService(cart_repo, item_repo, coupon_repo, product_repo, pricing)
    return SimpleNamespace(
        pricing=pricing,
        cart=cart,
        promotion=PromotionService(PromotionRepository(), coupon_repo, cart),
        order=OrderService(
            OrderRepository(), cart_repo, item_repo, coupon_repo, product_repo, pricing
        ),
        product=ProductService(product_repo),
        category=CategoryService(CategoryRepository(), product_repo),
        wishlist=WishlistService(WishlistRepository(), product_repo),
        user=UserService(UserRepository()),
    )


# ---------- factories ----------


@pytest.fixture
def make_user(session):
    def factory(**overrides) -> User:
        uid = overrides.pop("id", uuid.uuid4())
        data = {
            "id": uid,
            "email": f"{uid.hex[:8]}@example.com",
            "name": "Test User",
            "role": "user",
            "status": "active",
        }
        data.update(overrides)
        user = User(**data)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return factory


@pytest.fixture
def make_category(session):
    def factory(**overrides) -> Category:
        name = overrides.pop("name", f"Category {uuid.uuid4().hex[:6]}")
        data = {
            "name": name,
            "slug": name.lower().replace(" ", "-"),
            "level": 1,
            "is_active": True,
        }
        data.update(overrides)
        category = Category(**data)
        session.add(category)
        session.commit()
        session.refresh(category)
        return category

    return factory


@pytest.fixture
def make_product(session):
    def factory(**overrides) -> Product:
        tag = uuid.uuid4().hex[:8]
        data = {
            "name": f"Product {tag}",
            "slug": f"product-{tag}",
            "sku": f"SKU-{tag}",
            "price": 20.0,
            "stock": 100,
            "status": "active",
        }
        data.update(overrides)
        product = Product(**data)
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return factory


@pytest.fixture
def make_variant(session):
    def factory(product: Product, **overrides) -> ProductVariant:
        data = {
            "product_id": product.id,
            "sku": f"{product.sku}-V{uuid.uuid4().hex[:4]}",
            "size": "M",
            "color": "red",
            "price": product.price,
            "stock": 10,
        }
        data.update(overrides)
        variant = ProductVariant(**data)
        session.add(variant)
        session.commit()
        session.refresh(variant)
        return variant

    return factory


@pytest.fixture
def make_promotion(session):
    def factory(**overrides) -> Promotion:
        now = datetime.now(timezone.utc)
        data = {
            "name": "Promo",
            "code": f"SAVE{uuid.uuid4().hex[:6].upper()}",
            "type": "percentage",
            "value": 10.0,
            "min_purchase": 0.0,
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=1),
            "is_active": True,
        }
        data.update(overrides)
        promotion = Promotion(**data)
        session.add(promotion)
        session.commit()
        session.refresh(promotion)
        return promotion

    return factory


@pytest.fixture
def guest():
    return CartOwner(session_id=f"guest-{uuid.uuid4().hex}")


@pytest.fixture
def check_totals():
    """grand_total = subtotal - discount_total + tax_total + shipping_total"""

    def check(cart) -> None:
        expected = round(
            cart.subtotal - cart.discount_total + cart.tax_total + cart.shipping_total, 2
        )
        assert cart.grand_total == pytest.approx(expected)

    return check
