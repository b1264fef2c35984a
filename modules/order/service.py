"""
Order Service
===============
Checkout of selected cart items and order lookup.

Checkout runs as one unit of work on the caller's session: the order,
its item snapshots, the stock decrements and the removal of the bought
cart items either all land or none of them do.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from typing import List, Optional

from sqlalchemy.orm import Session

from config.settings import TAX_PERCENT, MAX_ADDRESS_LENGTH, MAX_PAYMENT_METHOD_LENGTH
from common.exceptions import InsufficientStock, ItemsNotFound, NoItemsSelected
from common.helpers import round_money, to_cents
from common.sanitizer import sanitize_text, validate_cart_item_id
from modules.cart import core as cart_core
from modules.cart.models import CartItem
from modules.cart.service import cart_service
from modules.catalog.service import catalog_service
from modules.order.models import Order, OrderItem, OrderStatus

logger = logging.getLogger("safecart.order")


def build_order_item(item: CartItem) -> OrderItem:
    """Snapshot a cart item at purchase time."""
    return OrderItem(
        cart_item_id=item.id,
        product_id=item.product_id,
        product_name=item.name,
        variant=item.variant,
        quantity=item.quantity,
        unit_price_cents=item.price_cents,
        line_total_cents=item.price_cents * item.quantity,
    )


class OrderService:

    # ==========================================
    # Checkout
    # ==========================================

    def checkout(
        self,
        db: Session,
        customer_id: str,
        cart_item_ids: Iterable[str],
        shipping_address: str = "",
        payment_method: str = "",
    ) -> dict:
        """
        Create an order from the selected cart items:
        1. Resolve selected ids against the customer's cart
        2. Check stock for every product involved
        3. Price: subtotal + tax on subtotal + shipping (cart discount not applied)
        4. Create Pending order with item snapshots
        5. Decrease stock
        6. Remove the bought items from the cart

        Raises NoItemsSelected, ItemsNotFound, NotFound, InsufficientStock.
        Any failure rolls the session back.
        """
        if isinstance(cart_item_ids, (str, bytes, Mapping)) or not isinstance(cart_item_ids, Iterable):
            raise NoItemsSelected()
        cart_item_ids = list(cart_item_ids)
        if not cart_item_ids:
            raise NoItemsSelected()
        selected_ids = {validate_cart_item_id(item_id) for item_id in cart_item_ids}

        try:
            cart = cart_service.get_or_create_cart(db, customer_id)
            selected = [item for item in cart.items if item.id in selected_ids]
            if not selected:
                raise ItemsNotFound()

            # Stock check per product, summing variants of the same product
            required = defaultdict(int)
            for item in selected:
                required[item.product_id] += item.quantity
            for product_id, quantity in required.items():
                product = catalog_service.get_by_id(db, product_id)
                if product.stock < quantity:
                    raise InsufficientStock(product.name)

            subtotal = cart_core.calculate_subtotal([item.to_line() for item in selected])
            tax = round_money(subtotal * TAX_PERCENT / 100)
            shipping = cart_core.shipping_fee(subtotal)
            total = subtotal + tax + shipping

            order = self.create(
                db, customer_id, selected, subtotal, tax, shipping,
                shipping_address=shipping_address, payment_method=payment_method,
            )

            for item in selected:
                catalog_service.decrease_stock(db, item.product_id, item.quantity)

            cart_service.remove_multiple_items(db, cart, [item.id for item in selected])

        except Exception as e:
            db.rollback()
            logger.warning("Checkout failed for %s: %s", customer_id, e)
            raise

        logger.info("Order %s placed by %s (total %s)", order.id, customer_id, total)
        return {
            "success": True,
            "order_id": order.id,
            "total": total,
            "message": "Order placed successfully",
        }

    # ==========================================
    # Create
    # ==========================================

    def create(
        self,
        db: Session,
        customer_id: str,
        items: List[CartItem],
        subtotal,
        tax,
        shipping,
        shipping_address: str = "",
        payment_method: str = "",
    ) -> Order:
        """Pending order with a price snapshot of every item."""
        order = Order(
            customer_id=customer_id,
            subtotal_cents=to_cents(subtotal),
            tax_cents=to_cents(tax),
            shipping_cents=to_cents(shipping),
            total_cents=to_cents(subtotal) + to_cents(tax) + to_cents(shipping),
            shipping_address=sanitize_text(shipping_address, MAX_ADDRESS_LENGTH),
            payment_method=sanitize_text(payment_method, MAX_PAYMENT_METHOD_LENGTH),
            status=OrderStatus.PENDING.value,
        )
        order.items = [build_order_item(item) for item in items]
        db.add(order)
        db.flush()
        return order

    # ==========================================
    # Queries
    # ==========================================

    def find_by_id(self, db: Session, order_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    def find_by_user_id(self, db: Session, customer_id: str) -> List[Order]:
        return (
            db.query(Order)
            .filter(Order.customer_id == customer_id)
            .order_by(Order.created_at.desc())
            .all()
        )


# Singleton
order_service = OrderService()
