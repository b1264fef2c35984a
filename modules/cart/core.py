"""
Cart Module - Core
===================
Pure cart logic over an explicit list of item mappings
({id, name, price, quantity, image, variant}).

No hidden state: every function takes the items it works on and returns a
new list, leaving its input untouched. Entries are keyed by
(product id, variant); equal keys merge by summing quantity.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from config.settings import (
    MAX_CART_SIZE, MAX_QUANTITY, MAX_SHIPPING_FEE,
    TAX_PERCENT, FREE_SHIPPING_THRESHOLD, FLAT_SHIPPING_FEE,
)
from common.exceptions import CartFull, QuantityLimit, NotFound, ValidationError
from common.helpers import round_money, variant_key
from common.sanitizer import (
    sanitize_number, validate_cart_item, validate_product_id,
    validate_quantity, validate_variant, validate_price,
)

logger = logging.getLogger("safecart.cart")

ZERO = Decimal("0.00")


# ==========================================
# Lookup
# ==========================================

def _matches(item: Mapping, product_id: int, key: str) -> bool:
    return item.get("id") == product_id and variant_key(item.get("variant")) == key


def find_entry(items: Sequence[Mapping], product_id: int, variant: Optional[dict] = None) -> int:
    """Index of the entry keyed (product_id, variant), or -1."""
    key = variant_key(variant)
    for index, item in enumerate(items):
        if _matches(item, product_id, key):
            return index
    return -1


def _copy(items: Sequence[Mapping]) -> List[dict]:
    return [dict(item) for item in items]


# ==========================================
# Mutations
# ==========================================

def merge_item(items: Sequence[Mapping], candidate: Mapping, max_size: int = MAX_CART_SIZE) -> Tuple[List[dict], int]:
    """
    Add `candidate` to the items.
    Returns (new_items, index_of_affected_entry).
    Raises CartFull for a new distinct entry past `max_size`,
    QuantityLimit when a merged quantity exceeds MAX_QUANTITY.
    """
    items = list(items or [])
    valid = validate_cart_item(candidate)
    index = find_entry(items, valid["id"], valid["variant"])

    if index == -1:
        if len(items) >= max_size:
            logger.warning("Cart full (%s entries), rejecting product %s", len(items), valid["id"])
            raise CartFull(max_size)
        return _copy(items) + [valid], len(items)

    merged = int(items[index].get("quantity") or 0) + valid["quantity"]
    try:
        quantity = validate_quantity(merged)
    except ValidationError:
        raise QuantityLimit(MAX_QUANTITY)

    result = _copy(items)
    result[index]["quantity"] = quantity
    return result, index


def add_item(items: Sequence[Mapping], candidate: Mapping, max_size: int = MAX_CART_SIZE) -> List[dict]:
    result, _ = merge_item(items, candidate, max_size)
    return result


def remove_item(items: Sequence[Mapping], product_id, variant=None) -> List[dict]:
    """Drop the entry keyed (product_id, variant). Removing nothing is not an error."""
    valid_id = validate_product_id(product_id)
    key = variant_key(validate_variant(variant))
    return [dict(item) for item in items or [] if not _matches(item, valid_id, key)]


def update_quantity(items: Sequence[Mapping], product_id, variant, quantity, strict: bool = False) -> List[dict]:
    """
    Set the quantity of the entry keyed (product_id, variant).

    With no matching entry the items come back unchanged, unless `strict`
    is set, in which case NotFound is raised.
    """
    valid_id = validate_product_id(product_id)
    valid_quantity = validate_quantity(quantity)
    valid_variant = validate_variant(variant)

    items = list(items or [])
    index = find_entry(items, valid_id, valid_variant)
    if index == -1:
        if strict:
            raise NotFound("Item not found in cart")
        return _copy(items)

    result = _copy(items)
    result[index]["quantity"] = valid_quantity
    return result


def clear_cart() -> List[dict]:
    return []


# ==========================================
# Aggregation
# ==========================================

def calculate_subtotal(items) -> Decimal:
    """Sum of price x quantity. Anything that isn't a list of valid entries counts as 0."""
    if not isinstance(items, (list, tuple)):
        return ZERO

    subtotal = Decimal(0)
    for item in items:
        if not isinstance(item, Mapping):
            logger.error("Failed to calculate subtotal: entry is not a mapping")
            return ZERO
        try:
            subtotal += validate_price(item.get("price")) * validate_quantity(item.get("quantity"))
        except ValidationError as e:
            logger.error("Failed to calculate subtotal: %s", e.message)
            return ZERO
    return round_money(subtotal)


def _clamp(value, minimum, maximum) -> Decimal:
    try:
        number = sanitize_number(value)
    except ValidationError:
        return Decimal(minimum)
    return min(max(number, Decimal(minimum)), Decimal(maximum))


def calculate_total(items, discount=0, tax=0, shipping=0) -> Decimal:
    """
    subtotal -> minus discount% -> plus tax% of the discounted amount -> plus shipping.
    Percentages are clamped to [0, 100], shipping to [0, MAX_SHIPPING_FEE].
    """
    subtotal = calculate_subtotal(items)
    discount_amount = subtotal * _clamp(discount, 0, 100) / 100
    taxable = subtotal - discount_amount
    tax_amount = taxable * _clamp(tax, 0, 100) / 100
    return round_money(taxable + tax_amount + _clamp(shipping, 0, MAX_SHIPPING_FEE))


def get_item_count(items) -> int:
    if not isinstance(items, (list, tuple)):
        return 0
    try:
        return sum(validate_quantity(item.get("quantity")) for item in items)
    except (ValidationError, AttributeError):
        logger.error("Failed to get item count")
        return 0


def apply_discount(amount, discount_percent):
    """
    Take `discount_percent` off `amount`.

    An invalid amount or a percentage outside [0, 100] is logged and the
    amount comes back exactly as passed in, unconverted, so the result is
    only a Decimal when the discount was applied. Callers that need money
    must validate `amount` first.
    """
    try:
        valid_amount = sanitize_number(amount, 0)
        valid_discount = sanitize_number(discount_percent, 0, 100)
    except ValidationError as e:
        logger.warning("Discount not applied: %s", e.message)
        return amount
    return round_money(valid_amount * (1 - valid_discount / 100))


def shipping_fee(subtotal, threshold=FREE_SHIPPING_THRESHOLD, flat_fee=FLAT_SHIPPING_FEE) -> Decimal:
    """Free shipping from `threshold` up, a flat fee below it."""
    if Decimal(str(subtotal)) >= Decimal(str(threshold)):
        return ZERO
    return round_money(flat_fee)


def summarize(items, discount_percent=0, tax_percent=TAX_PERCENT) -> dict:
    """Totals shown with a cart. Shipping is decided on the pre-discount subtotal."""
    subtotal = calculate_subtotal(items)
    discount = _clamp(discount_percent, 0, 100)
    discount_amount = subtotal * discount / 100
    shipping = shipping_fee(subtotal) if items else ZERO

    return {
        "item_count": get_item_count(items),
        "subtotal": subtotal,
        "discount": int(discount),
        "discount_amount": round_money(discount_amount),
        "tax": round_money((subtotal - discount_amount) * _clamp(tax_percent, 0, 100) / 100),
        "shipping": shipping,
        "total": calculate_total(items, discount, tax_percent, shipping),
    }
