# storefront/services/cart_service.py
import logging
import uuid

from sqlmodel import Session

from storefront.core.errors import Conflict, InsufficientStock, NotFound
from storefront.core.identity import CartOwner
from storefront.models.cart import AppliedCoupon, Cart, CartItem
from storefront.models.product import Product
from storefront.repositories.base import DuplicateKeyError, merge_patch
from storefront.repositories.cart_repo import (
    CartItemRepository,
    CartRepository,
    CouponRepository,
)
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.cart import (
    AppliedCouponRead,
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartRead,
)
from storefront.services.pricing_service import PricingService, money

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - lazily create the cart of a user or guest session
      - validate product existence and stock
      - capture the unit price when a product is first added
      - keep totals in sync through the PricingService
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        item_repo: CartItemRepository,
        coupon_repo: CouponRepository,
        product_repo: ProductRepository,
        pricing: PricingService,
    ):
        self.cart_repo = cart_repo
        self.item_repo = item_repo
        self.coupon_repo = coupon_repo
        self.product_repo = product_repo
        self.pricing = pricing

    # ---- internal helpers ----

    def find_cart(self, session: Session, owner: CartOwner) -> Cart | None:
        return self.cart_repo.get_for_owner(session, owner.as_filter())

    def require_cart(self, session: Session, owner: CartOwner) -> Cart:
        cart = self.find_cart(session, owner)
        if cart is None:
            raise NotFound("Cart not found")
        return cart

    def _get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    @staticmethod
    def _check_stock(product: Product, quantity: int) -> None:
        if product.stock < quantity:
            raise InsufficientStock("Not enough stock available")

    def build_cart_read(self, session: Session, cart: Cart) -> CartRead:
        """
        Compose CartRead from the cart row, its items and applied coupons.
        """
        items = self.item_repo.list_for_cart(session, cart.id)
        products = self.product_repo.get_many(session, [it.product_id for it in items])
        coupons = self.coupon_repo.list_for_cart(session, cart.id)

        item_reads: list[CartItemRead] = []
        for it in items:
            product = products.get(it.product_id)
            item_reads.append(
                CartItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    variant_id=it.variant_id,
                    product_name=product.name if product else None,
                    product_hero_image_url=product.hero_image_url if product else None,
                    quantity=it.quantity,
                    price=it.price,
                    saved_for_later=it.saved_for_later,
                    line_total=money(it.price * it.quantity),
                    created_at=it.created_at,
                )
            )

        return CartRead(
            id=cart.id,
            user_id=cart.user_id,
            session_id=cart.session_id,
            items=item_reads,
            applied_coupons=[
                AppliedCouponRead.model_validate(c, from_attributes=True) for c in coupons
            ],
            subtotal=cart.subtotal,
            discount_total=cart.discount_total,
            tax_total=cart.tax_total,
            shipping_total=cart.shipping_total,
            grand_total=cart.grand_total,
        )

    # ---- public operations ----

    def get_or_create(self, session: Session, owner: CartOwner) -> Cart:
        """
        Return the owner's cart, creating an empty one on first use.

        Raises:
            Conflict: if a concurrent request created the same cart first.
        """
        cart = self.find_cart(session, owner)
        if cart is not None:
            return cart
        try:
            return self.cart_repo.insert(session, Cart(**owner.as_filter()))
        except DuplicateKeyError:
            raise Conflict("A cart already exists for this owner")

    def get_cart(self, session: Session, owner: CartOwner) -> CartRead:
        """
        Current cart; an empty zero-total view when none exists yet.
        """
        cart = self.find_cart(session, owner)
        if cart is None:
            return CartRead(user_id=owner.user_id, session_id=owner.session_id)
        return self.build_cart_read(session, cart)

    def add_item(
        self,
        session: Session,
        owner: CartOwner,
        payload: CartItemCreate,
    ) -> CartRead:
        """
        Add a product (optionally a variant) to the cart.

        Rules:
          - product (and variant, if given) must exist
          - requested quantity <= product.stock
          - same product + variant => quantity is increased on the existing line
          - price is taken from the current product.price
        """
        product = self._get_product(session, payload.product_id)
        if payload.variant_id is not None:
            if not self.product_repo.get_variant(session, product.id, payload.variant_id):
                raise NotFound("Variant not found")
        self._check_stock(product, payload.quantity)

        cart = self.get_or_create(session, owner)
        existing = self.item_repo.find_line(
            session, cart.id, payload.product_id, payload.variant_id
        )

        if existing:
            self.item_repo.update(
                session, existing, {"quantity": existing.quantity + payload.quantity}
            )
        else:
            self.item_repo.insert(
                session,
                CartItem(
                    cart_id=cart.id,
                    product_id=payload.product_id,
                    variant_id=payload.variant_id,
                    quantity=payload.quantity,
                    price=product.price,
                    saved_for_later=False,
                ),
            )

        self.pricing.recalculate(session, cart)
        return self.build_cart_read(session, cart)

    def update_item(
        self,
        session: Session,
        owner: CartOwner,
        item_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartRead:
        """
        Change quantity and/or the saved-for-later flag of a line.

        quantity <= 0 removes the line, whatever saved_for_later says.
        """
        cart = self.require_cart(session, owner)
        item = self.item_repo.get_in_cart(session, cart.id, item_id)
        if not item:
            raise NotFound("Item not found in cart")

        if payload.quantity is not None and payload.quantity <= 0:
            self.item_repo.delete(session, item)
        else:
            if payload.quantity is not None:
                product = self._get_product(session, item.product_id)
                self._check_stock(product, payload.quantity)
            merge_patch(item, payload, skip_none=True)
            self.item_repo.update(session, item)

        self.pricing.recalculate(session, cart)
        return self.build_cart_read(session, cart)

    def remove_item(
        self,
        session: Session,
        owner: CartOwner,
        item_id: uuid.UUID,
    ) -> CartRead:
        """
        Remove a line from the cart (no-op if it is not there).
        """
        cart = self.require_cart(session, owner)
        self.item_repo.delete_where(
            session, CartItem.id == item_id, CartItem.cart_id == cart.id
        )
        self.pricing.recalculate(session, cart)
        return self.build_cart_read(session, cart)

    def clear(self, session: Session, owner: CartOwner) -> CartRead:
        """
        Remove every line and applied coupon; totals go straight to zero.
        """
        cart = self.require_cart(session, owner)
        self.item_repo.delete_where(session, CartItem.cart_id == cart.id)
        self.coupon_repo.delete_where(session, AppliedCoupon.cart_id == cart.id)
        self.pricing.zero(session, cart)
        return self.build_cart_read(session, cart)

    def merge_guest_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        session_id: str,
    ) -> CartRead:
        """
        Fold a guest cart into the user's cart after login.

        Lines with the same product + variant are summed; the guest cart is
        deleted with its lines and coupons.
        """
        user_owner = CartOwner(user_id=user_id)
        guest = self.find_cart(session, CartOwner(session_id=session_id))
        if guest is None:
            return self.get_cart(session, user_owner)

        guest_id = guest.id
        cart = self.get_or_create(session, user_owner)
        guest_items = self.item_repo.list_for_cart(session, guest.id)

        for gi in guest_items:
            existing = self.item_repo.find_line(session, cart.id, gi.product_id, gi.variant_id)
            if existing:
                self.item_repo.update(
                    session, existing, {"quantity": existing.quantity + gi.quantity}
                )
            else:
                self.item_repo.insert(
                    session,
                    CartItem(
                        cart_id=cart.id,
                        product_id=gi.product_id,
                        variant_id=gi.variant_id,
                        quantity=gi.quantity,
                        price=gi.price,
                        saved_for_later=gi.saved_for_later,
                    ),
                )

        self.cart_repo.delete_cart(session, guest)
        logger.info(
            "Merged %d line(s) from guest cart %s into cart %s",
            len(guest_items),
            guest_id,
            cart.id,
        )

        self.pricing.recalculate(session, cart)
        return self.build_cart_read(session, cart)
