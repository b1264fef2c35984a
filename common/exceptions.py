"""
SafeCart - Custom Exceptions
=============================
Business-level exceptions that can be caught and converted to HTTP responses.
Every error carries a user-displayable message and a machine-readable code.
"""

from typing import Optional

from fastapi import HTTPException, status


class CartError(Exception):
    """Base exception for all business logic errors."""
    code = "CART_ERROR"

    def __init__(self, message: str = "Something went wrong with your cart.", code: Optional[str] = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# ==========================================
# Validation
# ==========================================

class ValidationError(CartError):
    """Raised when untrusted input cannot be turned into a bounded value."""
    code = "INVALID_INPUT"


class InvalidInput(ValidationError):
    pass


class NotANumber(ValidationError):
    code = "NOT_A_NUMBER"


class OutOfRange(ValidationError):
    code = "OUT_OF_RANGE"

    def __init__(self, value, minimum, maximum):
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(f"Number out of range: {value} (expected {minimum}-{maximum})")


# ==========================================
# Cart limits
# ==========================================

class CartFull(CartError):
    code = "CART_FULL"

    def __init__(self, limit: int):
        super().__init__(f"Cannot add more items. Cart limit is {limit} items.")


class QuantityLimit(CartError):
    code = "QUANTITY_LIMIT"

    def __init__(self, limit: int):
        super().__init__(f"Maximum quantity is {limit} per item")


# ==========================================
# Admission
# ==========================================

class TooManyRequests(CartError):
    code = "TOO_MANY_REQUESTS"

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__(f"Too many requests. Please wait {retry_after} seconds.")

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retry_after"] = self.retry_after
        return data


class Unauthenticated(CartError):
    code = "UNAUTHENTICATED"

    def __init__(self):
        super().__init__("You must be logged in")


class Forbidden(CartError):
    """Raised when a caller reaches for another owner's data."""
    code = "FORBIDDEN"


# ==========================================
# Lookups & stock
# ==========================================

class NotFound(CartError):
    """Raised when a requested cart, product, item or discount doesn't exist."""
    code = "NOT_FOUND"


class InsufficientStock(CartError):
    """Raised when product stock is not enough."""
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str = ""):
        self.product_name = product_name
        msg = f"Insufficient stock for {product_name}" if product_name else "Insufficient stock"
        super().__init__(msg)


class InvalidDiscountCode(CartError):
    code = "INVALID_DISCOUNT_CODE"

    def __init__(self, message: str = "Invalid discount code"):
        super().__init__(message)


# ==========================================
# Checkout selection
# ==========================================

class NoItemsSelected(CartError):
    code = "NO_ITEMS_SELECTED"

    def __init__(self):
        super().__init__("No items selected for checkout")


class ItemsNotFound(CartError):
    code = "ITEMS_NOT_FOUND"

    def __init__(self):
        super().__init__("Selected items not found in cart")


# ==========================================
# Local persistence
# ==========================================

class StorageError(CartError):
    """Raised by the local persistence adapter. Code tells which guard tripped."""
    code = "STORAGE_ERROR"


_HTTP_STATUS = {
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    ItemsNotFound: status.HTTP_404_NOT_FOUND,
    InsufficientStock: status.HTTP_409_CONFLICT,
    CartFull: status.HTTP_409_CONFLICT,
    QuantityLimit: status.HTTP_409_CONFLICT,
    TooManyRequests: status.HTTP_429_TOO_MANY_REQUESTS,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def http_status_for(error: CartError) -> int:
    for error_type in type(error).__mro__:
        if error_type in _HTTP_STATUS:
            return _HTTP_STATUS[error_type]
    return status.HTTP_400_BAD_REQUEST


def raise_http(error: CartError, status_code: Optional[int] = None):
    """Convert a business exception to an HTTP exception."""
    headers = None
    if isinstance(error, TooManyRequests):
        headers = {"Retry-After": str(error.retry_after)}
    raise HTTPException(
        status_code=status_code or http_status_for(error),
        detail=error.to_dict(),
        headers=headers,
    )
