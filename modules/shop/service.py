"""
Shop Module - Service Layer
==============================
The operations a storefront calls: cart mutations, discounts, checkout,
catalog reads and order history.

Every call:
  1. Requires the caller's identity (catalog reads are public)
  2. Passes the rate limiter under "<owner>:<action>" (mutations only)
  3. Runs in its own unit of work: commit on success, rollback on error

Cart mutations publish the new cart view to the owner's subscribers
once the unit of work has committed. A failed mutation publishes nothing.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List, Optional

from sqlalchemy.orm import Session, sessionmaker

from config.database import SessionLocal
from common.exceptions import Forbidden, InsufficientStock, NotFound
from common.notifications import CartListener, CartUpdates
from common.security import RateLimiter, require_identity
from common.sanitizer import (
    validate_cart_item_id, validate_product_id, validate_quantity, validate_variant,
)
from modules.cart.service import cart_service
from modules.catalog.service import catalog_service
from modules.coupon.service import discount_service
from modules.order.service import order_service

logger = logging.getLogger("safecart.shop")


class ShopService:

    def __init__(
        self,
        session_factory: sessionmaker = SessionLocal,
        rate_limiter: Optional[RateLimiter] = None,
        cart_updates: Optional[CartUpdates] = None,
    ):
        self.session_factory = session_factory
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()
        self.cart_updates = cart_updates if cart_updates is not None else CartUpdates()

    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _admit(self, owner_id: Optional[str], action: str) -> str:
        owner = require_identity(owner_id)
        self.rate_limiter.can_make_request(f"{owner}:{action}")
        return owner

    def _published(self, owner: str, view: dict) -> dict:
        self.cart_updates.publish(owner, view)
        return view

    # ==========================================
    # Subscriptions
    # ==========================================

    def subscribe_cart_updates(
        self, owner_id: Optional[str], user_id, listener: CartListener,
    ) -> Callable[[], None]:
        """
        Listen for changes to `user_id`'s cart. Only the cart's owner may
        subscribe. Returns the unsubscribe callable.
        """
        owner = require_identity(owner_id)
        if user_id is None or owner != str(user_id).strip():
            logger.warning("Cart subscription refused: %s asked for %s", owner, user_id)
            raise Forbidden("Cannot subscribe to another user's cart")
        return self.cart_updates.subscribe(owner, listener)

    # ==========================================
    # Cart
    # ==========================================

    def get_cart(self, owner_id: Optional[str]) -> dict:
        owner = require_identity(owner_id)
        with self.unit_of_work() as db:
            cart = cart_service.get_or_create_cart(db, owner)
            return cart_service.to_view(cart)

    def add_to_cart(self, owner_id: Optional[str], product_id, quantity=1, variant=None) -> dict:
        """
        Add units of a product, snapshotting its current name, price and image.
        Stock must cover the quantity already in the cart plus the new units.
        """
        owner = self._admit(owner_id, "add-item")
        product_id = validate_product_id(product_id)
        quantity = validate_quantity(quantity)
        variant = validate_variant(variant)

        with self.unit_of_work() as db:
            product = catalog_service.get_by_id(db, product_id)
            cart = cart_service.get_or_create_cart(db, owner)

            in_cart = cart_service.item_quantity(cart, product.id, variant)
            if product.stock < in_cart + quantity:
                logger.warning("Add to cart refused for %s: %s short on stock", owner, product.name)
                raise InsufficientStock(product.name)

            cart_service.add_item(db, cart, {
                "id": product.id,
                "name": product.name,
                "price": product.price,
                "quantity": quantity,
                "image": product.image,
                "variant": variant,
            })
            view = cart_service.to_view(cart)
        return self._published(owner, view)

    def update_cart_item(self, owner_id: Optional[str], item_id, quantity) -> dict:
        owner = self._admit(owner_id, "update-quantity")
        item_id = validate_cart_item_id(item_id)
        quantity = validate_quantity(quantity)

        with self.unit_of_work() as db:
            cart = cart_service.get_or_create_cart(db, owner)
            item = cart_service.find_item(cart, item_id)
            if not item:
                raise NotFound("Item not found in cart")

            product = catalog_service.get_by_id(db, item.product_id)
            if product.stock < quantity:
                raise InsufficientStock(product.name)

            cart_service.update_item_quantity(db, cart, item_id, quantity)
            view = cart_service.to_view(cart)
        return self._published(owner, view)

    def remove_from_cart(self, owner_id: Optional[str], item_id) -> dict:
        owner = self._admit(owner_id, "remove-item")
        item_id = validate_cart_item_id(item_id)

        with self.unit_of_work() as db:
            cart = cart_service.get_or_create_cart(db, owner)
            cart_service.remove_item(db, cart, item_id)
            view = cart_service.to_view(cart)
        return self._published(owner, view)

    def remove_multiple_items(self, owner_id: Optional[str], item_ids: List[str]) -> dict:
        owner = self._admit(owner_id, "remove-items")
        item_ids = [validate_cart_item_id(item_id) for item_id in (item_ids or [])]

        with self.unit_of_work() as db:
            cart = cart_service.get_or_create_cart(db, owner)
            cart_service.remove_multiple_items(db, cart, item_ids)
            view = cart_service.to_view(cart)
        return self._published(owner, view)

    def clear_cart(self, owner_id: Optional[str]) -> dict:
        owner = self._admit(owner_id, "clear-cart")
        with self.unit_of_work() as db:
            cart = cart_service.get_or_create_cart(db, owner)
            cart_service.clear(db, cart)
            view = cart_service.to_view(cart)
        return self._published(owner, view)

    # ==========================================
    # Discount
    # ==========================================

    def validate_discount_code(self, owner_id: Optional[str], code) -> dict:
        self._admit(owner_id, "validate-discount")
        with self.unit_of_work() as db:
            return discount_service.validate_code(db, code)

    def apply_discount(self, owner_id: Optional[str], code) -> dict:
        """Store a valid code's percentage on the cart and count one use of it."""
        owner = self._admit(owner_id, "apply-discount")
        with self.unit_of_work() as db:
            discount = discount_service.get_valid(db, code)
            cart = cart_service.get_or_create_cart(db, owner)
            cart_service.apply_discount(db, cart, discount.percentage, discount.code)
            discount_service.increment_usage(db, discount.id)
            logger.info("Discount %s applied to cart of %s", discount.code, owner)
            view = cart_service.to_view(cart)
        return self._published(owner, view)

    def remove_discount(self, owner_id: Optional[str]) -> dict:
        owner = self._admit(owner_id, "remove-discount")
        with self.unit_of_work() as db:
            cart = cart_service.get_or_create_cart(db, owner)
            cart_service.remove_discount(db, cart)
            view = cart_service.to_view(cart)
        return self._published(owner, view)

    # ==========================================
    # Checkout
    # ==========================================

    def checkout(
        self,
        owner_id: Optional[str],
        cart_item_ids: Iterable[str],
        shipping_address: str = "",
        payment_method: str = "",
    ) -> dict:
        owner = self._admit(owner_id, "checkout")
        with self.unit_of_work() as db:
            return order_service.checkout(db, owner, cart_item_ids, shipping_address, payment_method)

    # ==========================================
    # Catalog (public)
    # ==========================================

    def get_products(self, limit: int = 20, offset: int = 0) -> List[dict]:
        with self.unit_of_work() as db:
            return [product.to_dict() for product in catalog_service.find_all(db, limit, offset)]

    def get_product(self, product_id) -> dict:
        product_id = validate_product_id(product_id)
        with self.unit_of_work() as db:
            return catalog_service.get_by_id(db, product_id).to_dict()

    # ==========================================
    # Orders
    # ==========================================

    def get_orders(self, owner_id: Optional[str]) -> List[dict]:
        owner = require_identity(owner_id)
        with self.unit_of_work() as db:
            return [order.to_dict() for order in order_service.find_by_user_id(db, owner)]

    def get_order(self, owner_id: Optional[str], order_id: str) -> dict:
        """An order of the caller's. Someone else's order reads as not found."""
        owner = require_identity(owner_id)
        with self.unit_of_work() as db:
            order = order_service.find_by_id(db, order_id)
            if not order or order.customer_id != owner:
                raise NotFound("Order not found")
            return order.to_dict()
