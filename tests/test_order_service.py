import uuid
from datetime import datetime, timezone

import pytest

from storefront.core.errors import (
    Forbidden,
    InsufficientStock,
    InvalidRequest,
    InvalidState,
    NotFound,
    PreconditionFailed,
)
from storefront.core.identity import CartOwner
from storefront.schemas.cart import CartItemCreate, CartItemUpdate
from storefront.schemas.order import AddressIn, OrderCreate, OrderStatusUpdate
from storefront.services.order_service import next_order_number


def _address(**overrides) -> AddressIn:
    data = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address_line1": "12 Analytical St",
        "city": "London",
        "state": "LDN",
        "postal_code": "N1 9GU",
        "country": "UK",
    }
    data.update(overrides)
    return AddressIn(**data)


def _checkout(**overrides) -> OrderCreate:
    data = {
        "shipping_address": _address(),
        "billing_address": _address(address_line1="1 Billing Rd"),
        "payment_method": "card",
        "shipping_method": "standard",
    }
    data.update(overrides)
    return OrderCreate(**data)


@pytest.fixture
def shopper(make_user):
    user = make_user()
    return user, CartOwner(user_id=user.id)


def _add(services, session, owner, product, quantity):
    return services.cart.add_item(
        session, owner, CartItemCreate(product_id=product.id, quantity=quantity)
    )


class TestOrderNumber:
    def test_first_order(self):
        now = datetime(2026, 10, 17, tzinfo=timezone.utc)
        assert next_order_number(None, now) == "261017-0001"

    def test_sequence_continues_across_days(self):
        now = datetime(2026, 10, 18, tzinfo=timezone.utc)
        assert next_order_number("261017-0041", now) == "261018-0042"

    def test_unparseable_previous_number(self):
        now = datetime(2026, 10, 17, tzinfo=timezone.utc)
        assert next_order_number("legacy", now) == "261017-0001"


class TestCreateOrder:
    def test_materializes_cart(self, session, services, shopper, make_product, make_promotion):
        user, owner = shopper
        product = make_product(price=20.0, stock=10, name="Wool Scarf")
        _add(services, session, owner, product, 3)
        promo = make_promotion(type="fixed", value=5)
        services.promotion.apply_coupon(session, owner, promo.code)
        cart_before = services.cart.get_cart(session, owner)

        order = services.order.create_order(session, owner, _checkout(), user)

        assert order.status == "pending"
        assert order.user_id == user.id
        assert order.email == user.email
        assert order.grand_total == cart_before.grand_total
        assert order.discount_total == 5.0
        assert order.applied_coupons == [{"code": promo.code, "discount": 5.0}]
        (item,) = order.items
        assert (item.name, item.sku, item.price, item.quantity, item.subtotal) == (
            "Wool Scarf",
            product.sku,
            20.0,
            3,
            60.0,
        )
        assert sorted(a.type for a in order.addresses) == ["billing", "shipping"]
        assert [(h.status, h.note) for h in order.status_history] == [
            ("pending", "Order created")
        ]

    def test_stock_is_deducted_and_cart_reset(self, session, services, shopper, make_product):
        user, owner = shopper
        product = make_product(stock=10)
        _add(services, session, owner, product, 3)

        services.order.create_order(session, owner, _checkout(), user)

        session.refresh(product)
        assert product.stock == 7
        cart = services.cart.get_cart(session, owner)
        assert cart.items == []
        assert cart.applied_coupons == []
        assert cart.grand_total == 0.0

    def test_saved_for_later_items_are_cleared_too(self, session, services, shopper, make_product):
        user, owner = shopper
        bought, parked = make_product(price=10.0, stock=10), make_product(price=99.0, stock=10)
        _add(services, session, owner, bought, 1)
        cart = _add(services, session, owner, parked, 1)
        parked_line = next(it for it in cart.items if it.product_id == parked.id)
        services.cart.update_item(
            session, owner, parked_line.id, CartItemUpdate(saved_for_later=True)
        )

        order = services.order.create_order(session, owner, _checkout(), user)

        assert [it.product_id for it in order.items] == [bought.id]
        remaining = services.cart.get_cart(session, owner)
        assert remaining.items == []
        assert (remaining.subtotal, remaining.shipping_total, remaining.grand_total) == (
            0.0,
            0.0,
            0.0,
        )
        session.refresh(parked)
        assert parked.stock == 10

    def test_account_email_wins_over_payload(self, session, services, shopper, make_product):
        user, owner = shopper
        _add(services, session, owner, make_product(), 1)

        order = services.order.create_order(
            session, owner, _checkout(email="someone-else@example.com"), user
        )

        assert order.email == user.email

    def test_order_numbers_increase(self, session, services, shopper, make_product):
        user, owner = shopper
        product = make_product()
        _add(services, session, owner, product, 1)
        first = services.order.create_order(session, owner, _checkout(), user)
        _add(services, session, owner, product, 1)
        second = services.order.create_order(session, owner, _checkout(), user)

        assert int(second.order_number.split("-")[1]) == int(first.order_number.split("-")[1]) + 1

    def test_only_saved_for_later_items_is_empty(self, session, services, shopper, make_product):
        user, owner = shopper
        cart = _add(services, session, owner, make_product(), 1)
        services.cart.update_item(
            session, owner, cart.items[0].id, CartItemUpdate(saved_for_later=True)
        )
        with pytest.raises(PreconditionFailed) as exc:
            services.order.create_order(session, owner, _checkout(), user)
        assert exc.value.message == "Cart is empty"

    def test_without_cart(self, session, services, shopper):
        user, owner = shopper
        with pytest.raises(NotFound):
            services.order.create_order(session, owner, _checkout(), user)

    def test_stock_changed_since_adding(self, session, services, shopper, make_product):
        user, owner = shopper
        product = make_product(stock=5, name="Silk Tie")
        _add(services, session, owner, product, 4)
        services.product.repo.update(session, product, {"stock": 2})

        with pytest.raises(InsufficientStock) as exc:
            services.order.create_order(session, owner, _checkout(), user)
        assert exc.value.message == "Not enough stock for Silk Tie"

    def test_guest_needs_email(self, session, services, guest, make_product):
        _add(services, session, guest, make_product(), 1)
        with pytest.raises(InvalidRequest):
            services.order.create_order(session, guest, _checkout())

    def test_guest_checkout(self, session, services, guest, make_product):
        _add(services, session, guest, make_product(), 1)

        order = services.order.create_order(
            session, guest, _checkout(email="guest@example.com")
        )

        assert order.user_id is None
        assert order.email == "guest@example.com"

    def test_stock_decrement_failure_does_not_fail_order(
        self, session, services, shopper, make_product, monkeypatch
    ):
        user, owner = shopper
        product = make_product(stock=10)
        _add(services, session, owner, product, 2)

        def boom(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(services.order.product_repo, "update", boom)

        order = services.order.create_order(session, owner, _checkout(), user)

        assert order.status == "pending"
        session.refresh(product)
        assert product.stock == 10
        assert services.cart.get_cart(session, owner).items == []


class TestStatusChanges:
    @pytest.fixture
    def placed(self, session, services, shopper, make_product):
        user, owner = shopper
        product = make_product(stock=10)
        _add(services, session, owner, product, 3)
        order = services.order.create_order(session, owner, _checkout(), user)
        return user, product, order

    def test_cancel_pending_restores_stock(self, session, services, placed):
        user, product, order = placed

        cancelled = services.order.cancel_order(session, order.id, user, "Changed my mind")

        assert cancelled.status == "cancelled"
        assert cancelled.status_history[-1].note == "Changed my mind"
        session.refresh(product)
        assert product.stock == 10

    def test_cancel_still_succeeds_when_restock_fails(
        self, session, services, placed, monkeypatch
    ):
        user, product, order = placed

        def boom(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(services.order.product_repo, "increment", boom)

        cancelled = services.order.cancel_order(session, order.id, user, "Too slow")

        assert cancelled.status == "cancelled"
        assert [(h.status, h.note) for h in cancelled.status_history][-1] == (
            "cancelled",
            "Too slow",
        )
        session.refresh(product)
        assert product.stock == 7

    def test_cancel_default_note(self, session, services, placed):
        user, _, order = placed
        cancelled = services.order.cancel_order(session, order.id, user)
        assert cancelled.status_history[-1].note == "Order cancelled by user"

    def test_cancel_shipped_is_invalid(self, session, services, placed):
        user, _, order = placed
        services.order.update_status(session, order.id, OrderStatusUpdate(status="shipped"))
        with pytest.raises(InvalidState):
            services.order.cancel_order(session, order.id, user)

    def test_cancel_by_stranger_is_forbidden(self, session, services, placed, make_user):
        _, _, order = placed
        with pytest.raises(Forbidden):
            services.order.cancel_order(session, order.id, make_user())

    def test_admin_can_cancel(self, session, services, placed, make_user):
        _, _, order = placed
        cancelled = services.order.cancel_order(session, order.id, make_user(role="admin"))
        assert cancelled.status == "cancelled"

    def test_cancel_unknown(self, session, services, make_user):
        with pytest.raises(NotFound):
            services.order.cancel_order(session, uuid.uuid4(), make_user())

    def test_update_status_appends_history(self, session, services, placed):
        _, _, order = placed

        updated = services.order.update_status(
            session, order.id, OrderStatusUpdate(status="processing")
        )
        updated = services.order.update_status(
            session, order.id, OrderStatusUpdate(status="pending", note="Back to queue")
        )

        assert updated.status == "pending"
        assert [h.note for h in updated.status_history] == [
            "Order created",
            "Status updated to processing",
            "Back to queue",
        ]


class TestReads:
    def test_owner_and_admin_can_read(self, session, services, shopper, make_product, make_user):
        user, owner = shopper
        _add(services, session, owner, make_product(), 1)
        order = services.order.create_order(session, owner, _checkout(), user)

        assert services.order.get_order(session, order.id, user).id == order.id
        assert services.order.get_order(session, order.id, make_user(role="admin")).id == order.id
        with pytest.raises(Forbidden):
            services.order.get_order(session, order.id, make_user())

    def test_listings(self, session, services, shopper, make_product, guest):
        user, owner = shopper
        product = make_product()
        for _ in range(3):
            _add(services, session, owner, product, 1)
            services.order.create_order(session, owner, _checkout(), user)
        _add(services, session, guest, product, 1)
        services.order.create_order(session, guest, _checkout(email="g@example.com"))

        mine = services.order.list_user_orders(session, user.id, page=1, limit=2)
        assert len(mine.orders) == 2
        assert mine.pagination.total == 3
        assert mine.pagination.pages == 2

        everything = services.order.list_all_orders(session)
        assert everything.pagination.total == 4
        assert services.order.list_all_orders(session, status="cancelled").pagination.total == 0
