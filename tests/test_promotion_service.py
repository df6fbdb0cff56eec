import uuid
from datetime import datetime, timedelta, timezone

import pytest

from storefront.core.errors import Conflict, Expired, NotFound, PreconditionFailed
from storefront.core.identity import CartOwner
from storefront.schemas.cart import CartItemCreate
from storefront.schemas.promotion import PromotionCreate, PromotionUpdate


@pytest.fixture
def cart_with(session, services, guest, make_product):
    """Put `quantity` x a product of `price` into the guest cart."""

    def fill(price: float, quantity: int = 1):
        product = make_product(price=price)
        return services.cart.add_item(
            session, guest, CartItemCreate(product_id=product.id, quantity=quantity)
        )

    return fill


class TestApplyCoupon:
    def test_percentage_is_capped_by_max_discount(
        self, session, services, guest, cart_with, make_promotion, check_totals
    ):
        cart_with(100.0)
        promo = make_promotion(type="percentage", value=20, max_discount=15)

        result = services.promotion.apply_coupon(session, guest, promo.code)

        assert result.applied_coupon.discount == 15.0
        assert result.cart.discount_total == 15.0
        assert result.cart.grand_total == pytest.approx(100 + 10 + 10 - 15)
        assert result.warnings == []
        check_totals(result.cart)

    def test_fixed_never_exceeds_subtotal(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(8.0)
        promo = make_promotion(type="fixed", value=25)

        result = services.promotion.apply_coupon(session, guest, promo.code)

        assert result.applied_coupon.discount == 8.0

    def test_free_shipping_takes_off_shipping(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(30.0)
        promo = make_promotion(type="free_shipping", value=0)

        result = services.promotion.apply_coupon(session, guest, promo.code)

        assert result.applied_coupon.discount == 10.0

    def test_code_is_case_insensitive(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(50.0)
        promo = make_promotion(code="SPRING10")

        result = services.promotion.apply_coupon(session, guest, "  spring10 ")

        assert result.applied_coupon.code == "SPRING10"

    def test_usage_count_is_incremented(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(50.0)
        promo = make_promotion()

        services.promotion.apply_coupon(session, guest, promo.code)

        session.refresh(promo)
        assert promo.usage_count == 1

    def test_unknown_code(self, session, services, guest, cart_with):
        cart_with(50.0)
        with pytest.raises(NotFound) as exc:
            services.promotion.apply_coupon(session, guest, "NOPE")
        assert exc.value.message == "Invalid coupon code"

    def test_expired_window(self, session, services, guest, cart_with, make_promotion):
        cart_with(50.0)
        past = datetime.now(timezone.utc) - timedelta(days=10)
        promo = make_promotion(start_date=past, end_date=past + timedelta(days=1))
        with pytest.raises(Expired) as exc:
            services.promotion.apply_coupon(session, guest, promo.code)
        assert exc.value.message == "This coupon has expired or is not active"

    def test_inactive(self, session, services, guest, cart_with, make_promotion):
        cart_with(50.0)
        promo = make_promotion(is_active=False)
        with pytest.raises(Expired):
            services.promotion.apply_coupon(session, guest, promo.code)

    def test_usage_limit_reached(self, session, services, guest, cart_with, make_promotion):
        cart_with(50.0)
        promo = make_promotion(usage_limit_total=3, usage_count=3)
        with pytest.raises(Expired) as exc:
            services.promotion.apply_coupon(session, guest, promo.code)
        assert exc.value.message == "This coupon has reached its usage limit"

    def test_no_cart(self, session, services, guest, make_promotion):
        promo = make_promotion()
        with pytest.raises(NotFound) as exc:
            services.promotion.apply_coupon(session, guest, promo.code)
        assert exc.value.message == "Cart not found"

    def test_same_coupon_twice_conflicts(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(50.0)
        promo = make_promotion()
        services.promotion.apply_coupon(session, guest, promo.code)
        with pytest.raises(Conflict):
            services.promotion.apply_coupon(session, guest, promo.code)

    def test_min_purchase(self, session, services, guest, cart_with, make_promotion):
        cart_with(40.0)
        promo = make_promotion(min_purchase=50)
        with pytest.raises(PreconditionFailed):
            services.promotion.apply_coupon(session, guest, promo.code)

    def test_buy_x_get_y_is_rejected_before_writing(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(50.0)
        promo = make_promotion(type="buy_x_get_y", conditions={"buy": 2, "get": 1})

        with pytest.raises(PreconditionFailed) as exc:
            services.promotion.apply_coupon(session, guest, promo.code)

        assert "not supported" in exc.value.message
        cart = services.cart.get_cart(session, guest)
        assert cart.applied_coupons == []
        assert cart.discount_total == 0.0

    def test_usage_increment_failure_still_applies_with_warning(
        self, session, services, guest, cart_with, make_promotion, monkeypatch
    ):
        cart_with(50.0)
        promo = make_promotion(type="fixed", value=5)

        def boom(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(services.promotion.promotion_repo, "increment", boom)

        result = services.promotion.apply_coupon(session, guest, promo.code)

        assert result.applied_coupon.discount == 5.0
        assert result.cart.discount_total == 5.0
        assert len(result.warnings) == 1
        session.refresh(promo)
        assert promo.usage_count == 0


class TestRemoveCoupon:
    def test_apply_then_remove_restores_grand_total(
        self, session, services, guest, cart_with, make_promotion, check_totals
    ):
        before = cart_with(33.33, 3)
        promo = make_promotion(type="percentage", value=15)

        applied = services.promotion.apply_coupon(session, guest, promo.code)
        after = services.promotion.remove_coupon(session, guest, applied.applied_coupon.id)

        assert after.grand_total == before.grand_total
        assert after.discount_total == 0.0
        assert after.applied_coupons == []
        check_totals(after)

    def test_usage_count_is_not_decremented(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(50.0)
        promo = make_promotion()
        applied = services.promotion.apply_coupon(session, guest, promo.code)

        services.promotion.remove_coupon(session, guest, applied.applied_coupon.id)

        session.refresh(promo)
        assert promo.usage_count == 1

    def test_coupon_of_another_cart(
        self, session, services, guest, cart_with, make_promotion, make_product
    ):
        cart_with(50.0)
        promo = make_promotion()
        applied = services.promotion.apply_coupon(session, guest, promo.code)

        other = CartOwner(session_id="someone-else")
        services.cart.add_item(
            session, other, CartItemCreate(product_id=make_product().id, quantity=1)
        )
        with pytest.raises(NotFound):
            services.promotion.remove_coupon(session, other, applied.applied_coupon.id)


def _create_payload(**overrides):
    now = datetime.now(timezone.utc)
    data = {
        "name": "Winter sale",
        "code": "winter",
        "type": "percentage",
        "value": 10,
        "start_date": now,
        "end_date": now + timedelta(days=30),
    }
    data.update(overrides)
    return PromotionCreate(**data)


class TestPromotionAdmin:
    def test_create_uppercases_code(self, session, services):
        promo = services.promotion.create_promotion(session, _create_payload())
        assert promo.code == "WINTER"
        assert promo.usage_count == 0

    def test_create_duplicate_code(self, session, services):
        services.promotion.create_promotion(session, _create_payload())
        with pytest.raises(Conflict):
            services.promotion.create_promotion(session, _create_payload(name="Again"))

    def test_invalid_payloads(self):
        now = datetime.now(timezone.utc)
        with pytest.raises(ValueError):
            _create_payload(end_date=now - timedelta(days=1))
        with pytest.raises(ValueError):
            _create_payload(value=150)
        with pytest.raises(ValueError):
            _create_payload(type="fixed", value=0)

    def test_update_patches_only_given_fields(self, session, services, make_promotion):
        promo = make_promotion(name="Old", value=10)

        updated = services.promotion.update_promotion(
            session, promo.id, PromotionUpdate(value=25)
        )

        assert updated.value == 25
        assert updated.name == "Old"

    def test_update_code_collision(self, session, services, make_promotion):
        make_promotion(code="TAKEN")
        promo = make_promotion(code="MINE")
        with pytest.raises(Conflict):
            services.promotion.update_promotion(session, promo.id, PromotionUpdate(code="taken"))

    def test_delete_refused_while_applied(
        self, session, services, guest, cart_with, make_promotion
    ):
        cart_with(50.0)
        promo = make_promotion()
        services.promotion.apply_coupon(session, guest, promo.code)

        with pytest.raises(PreconditionFailed):
            services.promotion.delete_promotion(session, promo.id)

    def test_delete(self, session, services, make_promotion):
        promo_id = make_promotion().id
        services.promotion.delete_promotion(session, promo_id)
        with pytest.raises(NotFound):
            services.promotion.get_promotion(session, promo_id)

    def test_list_active_only(self, session, services, make_promotion):
        make_promotion(name="Live")
        make_promotion(name="Off", is_active=False)

        page = services.promotion.list_promotions(session, active_only=True)

        assert [p.name for p in page.promotions] == ["Live"]
        assert page.pagination.total == 1

    def test_get_unknown(self, session, services):
        with pytest.raises(NotFound):
            services.promotion.get_promotion(session, uuid.uuid4())
