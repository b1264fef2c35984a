"""
Cart Module - Service Layer
==============================
Cart store: get/create per owner, add/update/remove entries, discounts, totals.

Limits and merging are decided by the pure cart core; this layer only
mirrors the outcome onto the stored rows.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from common.exceptions import NotFound
from common.helpers import to_cents, variant_key
from common.sanitizer import validate_quantity
from modules.cart import core as cart_core
from modules.cart.models import Cart, CartItem

logger = logging.getLogger("safecart.cart")


class CartService:

    # ==========================================
    # Lookup
    # ==========================================

    def find_by_user_id(self, db: Session, customer_id: str) -> Optional[Cart]:
        return db.query(Cart).filter(Cart.customer_id == customer_id).first()

    def get_or_create_cart(self, db: Session, customer_id: str) -> Cart:
        """Get existing cart or create new one for customer."""
        cart = self.find_by_user_id(db, customer_id)
        if not cart:
            cart = Cart(customer_id=customer_id, discount=0)
            db.add(cart)
            db.flush()
            logger.debug("Created cart %s for %s", cart.id, customer_id)
        return cart

    def find_item(self, cart: Cart, item_id: str) -> Optional[CartItem]:
        return next((item for item in cart.items if item.id == item_id), None)

    def find_entry(self, cart: Cart, product_id: int, variant: Optional[dict]) -> Optional[CartItem]:
        key = variant_key(variant)
        return next(
            (item for item in cart.items if item.product_id == product_id and item.variant_key == key),
            None,
        )

    def to_lines(self, cart: Cart) -> List[dict]:
        return [item.to_line() for item in cart.items]

    # ==========================================
    # Entries
    # ==========================================

    def add_item(self, db: Session, cart: Cart, candidate: dict) -> CartItem:
        """
        Add a product snapshot to the cart, merging with the same (product, variant).
        Raises CartFull / QuantityLimit / ValidationError from the core.
        """
        lines, index = cart_core.merge_item(self.to_lines(cart), candidate)
        entry = lines[index]

        item = self.find_entry(cart, entry["id"], entry["variant"])
        if item:
            item.quantity = entry["quantity"]
        else:
            item = CartItem(
                product_id=entry["id"],
                name=entry["name"],
                image=entry["image"],
                variant=entry["variant"],
                variant_key=variant_key(entry["variant"]),
                quantity=entry["quantity"],
                price_cents=to_cents(entry["price"]),
                position=self._next_position(cart),
            )
            cart.items.append(item)

        cart.touch()
        db.flush()
        return item

    def update_item_quantity(self, db: Session, cart: Cart, item_id: str, quantity: int) -> CartItem:
        """Set an entry's quantity. Unknown item ids raise NotFound."""
        item = self.find_item(cart, item_id)
        if not item:
            raise NotFound("Item not found in cart")

        cart_core.update_quantity(self.to_lines(cart), item.product_id, item.variant, quantity, strict=True)
        item.quantity = validate_quantity(quantity)
        cart.touch()
        db.flush()
        return item

    def remove_item(self, db: Session, cart: Cart, item_id: str) -> bool:
        """Remove one entry. Returns False (no error) when it isn't there."""
        item = self.find_item(cart, item_id)
        if not item:
            return False
        cart.items.remove(item)
        cart.touch()
        db.flush()
        return True

    def remove_multiple_items(self, db: Session, cart: Cart, item_ids: Iterable[str]) -> int:
        wanted = set(item_ids)
        doomed = [item for item in cart.items if item.id in wanted]
        for item in doomed:
            cart.items.remove(item)
        if doomed:
            cart.touch()
            db.flush()
        return len(doomed)

    def clear(self, db: Session, cart: Cart):
        """Empty the cart and drop its discount."""
        cart.items.clear()
        cart.discount = 0
        cart.discount_code = None
        cart.touch()
        db.flush()

    # ==========================================
    # Discount
    # ==========================================

    def apply_discount(self, db: Session, cart: Cart, percentage: int, code: Optional[str] = None):
        cart.discount = int(percentage)
        cart.discount_code = code
        cart.touch()
        db.flush()

    def remove_discount(self, db: Session, cart: Cart):
        cart.discount = 0
        cart.discount_code = None
        cart.touch()
        db.flush()

    # ==========================================
    # View
    # ==========================================

    def item_quantity(self, cart: Cart, product_id: int, variant: Optional[dict]) -> int:
        item = self.find_entry(cart, product_id, variant)
        return item.quantity if item else 0

    def to_view(self, cart: Cart) -> dict:
        """Cart with its entries and computed totals."""
        lines = self.to_lines(cart)
        view = {
            "id": cart.id,
            "user_id": cart.customer_id,
            "items": [item.to_dict() for item in cart.items],
            "discount_code": cart.discount_code,
            "created_at": cart.created_at,
            "updated_at": cart.updated_at,
        }
        view.update(cart_core.summarize(lines, cart.discount or 0))
        return view

    # ==========================================
    # Private helpers
    # ==========================================

    def _next_position(self, cart: Cart) -> int:
        return max((item.position or 0 for item in cart.items), default=-1) + 1


# Singleton
cart_service = CartService()
