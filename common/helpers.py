"""
SafeCart - Shared Helpers
==========================
Pure utility functions with NO database or module dependencies.
"""

import json
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def monotonic_ms() -> float:
    return time.monotonic() * 1000


def new_id() -> str:
    return str(uuid.uuid4())


# ==========================================
# Money
# ==========================================

def round_money(value) -> Decimal:
    """Round to cents, half away from zero."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value) -> int:
    """Decimal amount -> integer cents (the unit money is stored in)."""
    return int(round_money(value) * 100)


def from_cents(cents: Optional[int]) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(CENT)


def format_money(value) -> str:
    """Format an amount with comma separators and 2 decimals."""
    if value is None:
        return "0.00"
    try:
        return "{:,.2f}".format(round_money(value))
    except (ArithmeticError, ValueError, TypeError):
        return str(value)


# ==========================================
# Variants
# ==========================================

def variant_key(variant: Optional[dict]) -> str:
    """Canonical text for a variant mapping, so key order doesn't matter."""
    if not variant:
        return ""
    return json.dumps(variant, sort_keys=True, separators=(",", ":"), default=str)
