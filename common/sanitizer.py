"""
SafeCart - Input Sanitization & Validation
===========================================
Turns untrusted input into typed, bounded values or raises a ValidationError.

Sanitizers clean (text, URL, nested objects); validators enforce the cart's
field rules on top of them. Nothing out of range is ever coerced into range.
"""

import logging
import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from config.settings import (
    MAX_PRODUCT_ID, MAX_NAME_LENGTH, MAX_PRICE, MAX_QUANTITY, MAX_OBJECT_DEPTH,
)
from common.exceptions import InvalidInput, NotANumber, OutOfRange
from common.helpers import round_money

logger = logging.getLogger("safecart.sanitizer")

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_DISCOUNT_CODE_RE = re.compile(r"^[A-Z0-9-]+$")

ALLOWED_URL_SCHEMES = ("http", "https")
MAX_KEY_LENGTH = 50
MAX_CART_ITEM_ID_LENGTH = 64
MIN_DISCOUNT_CODE_LENGTH = 3
MAX_DISCOUNT_CODE_LENGTH = 20


# ==========================================
# Sanitizers
# ==========================================

def sanitize_text(value: Any, max_length: Optional[int] = None) -> str:
    """Remove script blocks and all markup, then trim. Non-strings become ''."""
    if not isinstance(value, str):
        return ""
    cleaned = _SCRIPT_RE.sub("", value)
    cleaned = _TAG_RE.sub("", cleaned).strip()
    if max_length is not None:
        cleaned = cleaned[:max_length].strip()
    return cleaned


def sanitize_number(value: Any, minimum=None, maximum=None) -> Decimal:
    """
    Parse a number into a Decimal.
    Raises NotANumber for anything unparsable, OutOfRange outside [minimum, maximum].
    """
    if value is None or isinstance(value, bool):
        raise NotANumber(f"Invalid number: {value!r}")

    try:
        if isinstance(value, Decimal):
            number = value
        elif isinstance(value, (int, float)):
            number = Decimal(str(value))
        elif isinstance(value, str) and value.strip():
            number = Decimal(value.strip())
        else:
            raise NotANumber(f"Invalid number: {value!r}")
    except InvalidOperation:
        raise NotANumber(f"Invalid number: {value!r}")

    if not number.is_finite():
        raise NotANumber(f"Invalid number: {value!r}")

    if (minimum is not None and number < minimum) or (maximum is not None and number > maximum):
        raise OutOfRange(
            number,
            minimum if minimum is not None else "-Infinity",
            maximum if maximum is not None else "Infinity",
        )
    return number


def sanitize_integer(value: Any, minimum=None, maximum=None) -> int:
    number = sanitize_number(value, minimum, maximum)
    if number != number.to_integral_value():
        raise NotANumber(f"Expected a whole number, got {value!r}")
    return int(number)


def sanitize_url(value: Any) -> Optional[str]:
    """Return a normalized http(s) URL, or None for anything else."""
    if not value or not isinstance(value, str):
        return None
    try:
        parts = urlsplit(value.strip())
        hostname = parts.hostname
    except ValueError:
        logger.warning("Invalid URL: %r", value)
        return None

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_URL_SCHEMES or not hostname:
        logger.warning("Blocked URL: %r", value)
        return None
    return urlunsplit((scheme, parts.netloc, parts.path or "/", parts.query, parts.fragment))


def sanitize_object(value: Any, depth: int = 0) -> dict:
    """
    Recursively sanitize keys and string values of a mapping.
    Non-mappings become {}; nesting deeper than MAX_OBJECT_DEPTH is rejected.
    """
    if depth > MAX_OBJECT_DEPTH:
        raise InvalidInput("Object nesting too deep")
    if not isinstance(value, Mapping):
        return {}

    sanitized = {}
    for key, item in value.items():
        clean_key = sanitize_text(str(key), MAX_KEY_LENGTH)
        if clean_key:
            sanitized[clean_key] = _sanitize_value(item, depth + 1)
    return sanitized


def _sanitize_value(value: Any, depth: int):
    if depth > MAX_OBJECT_DEPTH:
        raise InvalidInput("Object nesting too deep")
    if value is None or isinstance(value, (bool, int)):
        return value
    if isinstance(value, float):
        return value if value == value and abs(value) != float("inf") else None
    if isinstance(value, Decimal):
        return float(value) if value.is_finite() else None
    if isinstance(value, str):
        return sanitize_text(value)
    if isinstance(value, Mapping):
        return sanitize_object(value, depth)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(item, depth + 1) for item in value]
    return sanitize_text(str(value))


# ==========================================
# Field validators
# ==========================================

def validate_product_id(value: Any) -> int:
    return sanitize_integer(value, 1, MAX_PRODUCT_ID)


def validate_product_name(value: Any) -> str:
    cleaned = sanitize_text(value if isinstance(value, str) else ("" if value is None else str(value)))
    if len(cleaned) < 1:
        raise InvalidInput("Product name is required")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidInput(f"Product name too long (max {MAX_NAME_LENGTH} characters)")
    return cleaned


def validate_price(value: Any) -> Decimal:
    return round_money(sanitize_number(value, 0, MAX_PRICE))


def validate_quantity(value: Any) -> int:
    return sanitize_integer(value, 1, MAX_QUANTITY)


def validate_image(value: Any) -> Optional[str]:
    if not value:
        return None
    return sanitize_url(value)


def validate_variant(value: Any) -> Optional[dict]:
    if not value:
        return None
    return sanitize_object(value) or None


def validate_discount_code(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidInput("Discount code must be a string")
    cleaned = sanitize_text(value).upper()
    if len(cleaned) < MIN_DISCOUNT_CODE_LENGTH:
        raise InvalidInput("Discount code too short")
    if len(cleaned) > MAX_DISCOUNT_CODE_LENGTH:
        raise InvalidInput("Discount code too long")
    if not _DISCOUNT_CODE_RE.match(cleaned):
        raise InvalidInput("Discount code contains invalid characters")
    return cleaned


def validate_cart_item_id(value: Any) -> str:
    cleaned = sanitize_text(value if isinstance(value, str) else str(value or ""))
    if not cleaned or len(cleaned) > MAX_CART_ITEM_ID_LENGTH:
        raise InvalidInput("Invalid cart item id")
    return cleaned


def validate_cart_item(item: Any) -> dict:
    """
    Validate an entire cart item. Any failing field rejects the whole item,
    so a partially valid item is never stored.
    """
    if not isinstance(item, Mapping):
        raise InvalidInput("Invalid cart item")

    return {
        "id": validate_product_id(item.get("id")),
        "name": validate_product_name(item.get("name")),
        "price": validate_price(item.get("price")),
        "quantity": validate_quantity(item.get("quantity") or 1),
        "image": validate_image(item.get("image")),
        "variant": validate_variant(item.get("variant")),
    }
