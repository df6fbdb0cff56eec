# storefront/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import (
    Forbidden,
    InsufficientStock,
    InvalidRequest,
    InvalidState,
    NotFound,
    PreconditionFailed,
)
from storefront.core.identity import CartOwner
from storefront.models.cart import AppliedCoupon, Cart, CartItem
from storefront.models.order import Order, OrderAddress, OrderItem, OrderStatusHistory
from storefront.models.product import Product
from storefront.models.user import User
from storefront.repositories.cart_repo import (
    CartItemRepository,
    CartRepository,
    CouponRepository,
)
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.common import Pagination, page_bounds
from storefront.schemas.order import (
    CANCELLABLE_STATUSES,
    AddressIn,
    OrderAddressRead,
    OrderCreate,
    OrderDetail,
    OrderItemRead,
    OrderList,
    OrderRead,
    OrderStatusHistoryRead,
    OrderStatusUpdate,
)
from storefront.services.pricing_service import PricingService, money

logger = logging.getLogger(__name__)


def next_order_number(latest: str | None, now: datetime | None = None) -> str:
    """
    YYMMDD-NNNN, where NNNN continues the sequence of the latest order.

    The sequence is global, it does not restart with the date.
    """
    now = now or datetime.now(timezone.utc)
    sequence = 1
    if latest and "-" in latest:
        try:
            sequence = int(latest.split("-", 1)[1]) + 1
        except ValueError:
            sequence = 1
    return f"{now:%y%m%d}-{sequence:04d}"


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Materialize an order from a priced cart (snapshot of items,
        addresses, totals and coupons)
      - Re-check stock right before checkout
      - Deduct stock and reset the cart afterwards (best-effort)
      - Status changes (admin) and cancellation with stock restoration
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        item_repo: CartItemRepository,
        coupon_repo: CouponRepository,
        product_repo: ProductRepository,
        pricing: PricingService,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.item_repo = item_repo
        self.coupon_repo = coupon_repo
        self.product_repo = product_repo
        self.pricing = pricing

    # -------- Checkout --------

    def create_order(
        self,
        session: Session,
        owner: CartOwner,
        payload: OrderCreate,
        user: User | None = None,
    ) -> OrderDetail:
        """
        Convert the owner's cart into an Order.

        Steps:
          1. Resolve the contact email (guests must send one).
          2. Load the cart and its eligible items; error if empty.
          3. Re-check stock of every item against the live product.
          4. Insert Order, OrderItems, both addresses and the first
             history entry.
          5. Deduct stock (best-effort).
          6. Reset the cart (best-effort).

        Each insert commits on its own: a failure after step 4 started
        leaves the already written records in place.
        """
        # 1) Contact email: the account email for users, the payload for guests
        email = user.email if user else payload.email
        if owner.is_guest and not email:
            raise InvalidRequest("Email is required for guest checkout")

        # 2) Cart + eligible items
        cart = self.cart_repo.get_for_owner(session, owner.as_filter())
        if not cart:
            raise NotFound("Cart not found")

        items = self.item_repo.list_for_cart(session, cart.id, eligible_only=True)
        if not items:
            raise PreconditionFailed("Cart is empty")

        # 3) Stock re-check
        products = self.product_repo.get_many(session, [it.product_id for it in items])
        for it in items:
            product = products.get(it.product_id)
            if product is None or product.stock < it.quantity:
                name = product.name if product else str(it.product_id)
                raise InsufficientStock(f"Not enough stock for {name}")

        coupons = self.coupon_repo.list_for_cart(session, cart.id)

        # 4) Order + owned records
        order = self.order_repo.insert(
            session,
            Order(
                order_number=next_order_number(self.order_repo.latest_order_number(session)),
                user_id=owner.user_id,
                email=email,
                status="pending",
                payment_method=payload.payment_method,
                shipping_method=payload.shipping_method,
                subtotal=cart.subtotal,
                discount_total=cart.discount_total,
                tax_total=cart.tax_total,
                shipping_total=cart.shipping_total,
                grand_total=cart.grand_total,
                notes=payload.notes,
                applied_coupons=[{"code": c.code, "discount": c.discount} for c in coupons],
            ),
        )

        owned: list = [
            OrderItem(
                order_id=order.id,
                product_id=it.product_id,
                variant_id=it.variant_id,
                name=products[it.product_id].name,
                sku=products[it.product_id].sku,
                price=it.price,
                quantity=it.quantity,
                subtotal=money(it.price * it.quantity),
            )
            for it in items
        ]
        owned.append(self._address(order.id, "shipping", payload.shipping_address))
        owned.append(self._address(order.id, "billing", payload.billing_address))
        owned.append(
            OrderStatusHistory(order_id=order.id, status="pending", note="Order created")
        )
        self.order_repo.add_owned(session, owned)

        logger.info("Created order %s (%s) from cart %s", order.order_number, order.id, cart.id)

        # 5) Stock deduction
        self._deduct_stock(session, items, products)

        # 6) Cart reset
        self._reset_cart(session, cart)

        return self._build_detail(session, order)

    @staticmethod
    def _address(order_id: uuid.UUID, kind: str, address: AddressIn) -> OrderAddress:
        return OrderAddress(order_id=order_id, type=kind, **address.model_dump())

    def _deduct_stock(
        self,
        session: Session,
        items: list[CartItem],
        products: dict[uuid.UUID, Product],
    ) -> None:
        # Plain overwrite from the stock read during the re-check
        for it in items:
            product = products[it.product_id]
            try:
                self.product_repo.update(
                    session, product, {"stock": product.stock - it.quantity}
                )
            except Exception:
                session.rollback()
                logger.exception(
                    "Failed to deduct stock for product %s (qty %s)",
                    it.product_id,
                    it.quantity,
                )

    def _reset_cart(
        self,
        session: Session,
        cart: Cart,
    ) -> None:
        # Saved-for-later lines go too; a checked-out cart is empty
        try:
            self.item_repo.delete_where(session, CartItem.cart_id == cart.id)
            self.coupon_repo.delete_where(session, AppliedCoupon.cart_id == cart.id)
            self.pricing.zero(session, cart)
        except Exception:
            session.rollback()
            logger.exception("Failed to reset cart %s after checkout", cart.id)

    # -------- Reads --------

    def get_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        user: User,
    ) -> OrderDetail:
        """
        Order detail for its owner or an admin.
        """
        order = self._require_order(session, order_id)
        if user.role != "admin" and order.user_id != user.id:
            raise Forbidden("You are not authorized to view this order")
        return self._build_detail(session, order)

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 10,
    ) -> OrderList:
        return self._page(session, page, limit, Order.user_id == user_id)

    def list_all_orders(
        self,
        session: Session,
        page: int = 1,
        limit: int = 20,
        status: str | None = None,
    ) -> OrderList:
        where = [Order.status == status] if status else []
        return self._page(session, page, limit, *where)

    def _page(self, session: Session, page: int, limit: int, *where) -> OrderList:
        skip, limit = page_bounds(page, limit)
        rows, total = self.order_repo.list(
            session,
            *where,
            order_by=Order.created_at.desc(),
            skip=skip,
            limit=limit,
        )
        return OrderList(
            orders=[OrderRead.model_validate(o, from_attributes=True) for o in rows],
            pagination=Pagination.build(total, page, limit),
        )

    # -------- Status changes --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderDetail:
        """
        Admin-only status change. Any status may follow any other; every
        change is appended to the history.
        """
        order = self._require_order(session, order_id)
        self._set_status(
            session,
            order,
            payload.status,
            payload.note or f"Status updated to {payload.status}",
        )
        return self._build_detail(session, order)

    def cancel_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        user: User,
        reason: str | None = None,
    ) -> OrderDetail:
        """
        Cancel a pending or processing order and put its stock back.

        Guest orders have no owner, so only an admin can cancel them.
        """
        order = self._require_order(session, order_id)
        if user.role != "admin" and (order.user_id is None or order.user_id != user.id):
            raise Forbidden("You are not authorized to cancel this order")
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidState(f"Order cannot be cancelled in status '{order.status}'")

        self._set_status(session, order, "cancelled", reason or "Order cancelled by user")

        for item in self.order_repo.list_items(session, order.id):
            try:
                self.product_repo.increment(session, item.product_id, "stock", item.quantity)
            except Exception:
                session.rollback()
                logger.exception(
                    "Failed to restore stock for product %s (order %s)",
                    item.product_id,
                    order.id,
                )

        logger.info("Order %s cancelled by %s", order.id, user.id)
        return self._build_detail(session, order)

    # -------- Helpers --------

    def _require_order(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFound("Order not found")
        return order

    def _set_status(self, session: Session, order: Order, status: str, note: str) -> None:
        self.order_repo.update(
            session,
            order,
            {"status": status, "updated_at": datetime.now(timezone.utc)},
        )
        self.order_repo.add_owned(
            session, [OrderStatusHistory(order_id=order.id, status=status, note=note)]
        )

    def _build_detail(self, session: Session, order: Order) -> OrderDetail:
        """
        Compose OrderDetail from the order and everything it owns.
        """
        base = OrderRead.model_validate(order, from_attributes=True)
        return OrderDetail(
            **base.model_dump(),
            items=[
                OrderItemRead.model_validate(it, from_attributes=True)
                for it in self.order_repo.list_items(session, order.id)
            ],
            addresses=[
                OrderAddressRead.model_validate(a, from_attributes=True)
                for a in self.order_repo.list_addresses(session, order.id)
            ],
            status_history=[
                OrderStatusHistoryRead.model_validate(h, from_attributes=True)
                for h in self.order_repo.list_history(session, order.id)
            ],
        )
