"""
Coupon Service
================
Look up, validate and settle percentage discount codes.

Validation chain:
  1. Code is well-formed (3-20 chars, A-Z 0-9 -)
  2. Code exists
  3. Not expired
  4. Usage limit not reached
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from common.exceptions import InvalidDiscountCode, NotFound, ValidationError
from common.sanitizer import sanitize_integer, validate_discount_code
from modules.coupon.models import Discount

logger = logging.getLogger("safecart.coupon")


class DiscountService:

    # ------------------------------------------
    # Lookup
    # ------------------------------------------

    def find_by_code(self, db: Session, code: str) -> Optional[Discount]:
        if not isinstance(code, str):
            return None
        return db.query(Discount).filter(Discount.code == code.strip().upper()).first()

    # ------------------------------------------
    # Validate
    # ------------------------------------------

    def get_valid(self, db: Session, code: str) -> Discount:
        """
        Full validation chain. Returns the usable Discount.
        Raises InvalidDiscountCode on failure.
        """
        try:
            code = validate_discount_code(code)
        except ValidationError:
            raise InvalidDiscountCode()

        discount = self.find_by_code(db, code)
        if not discount:
            raise InvalidDiscountCode()
        if discount.is_expired:
            raise InvalidDiscountCode("Discount code has expired")
        if discount.is_exhausted:
            raise InvalidDiscountCode("Discount code usage limit reached")
        return discount

    def validate_code(self, db: Session, code: str) -> Dict[str, Any]:
        """Non-raising form of get_valid: {valid, percentage, message}."""
        try:
            discount = self.get_valid(db, code)
        except InvalidDiscountCode as e:
            return {"valid": False, "percentage": 0, "message": e.message}
        return {
            "valid": True,
            "percentage": discount.percentage,
            "message": f"{discount.percentage}% discount applied",
        }

    # ------------------------------------------
    # Settle
    # ------------------------------------------

    def increment_usage(self, db: Session, discount_id: int) -> Discount:
        discount = db.query(Discount).filter(Discount.id == discount_id).first()
        if not discount:
            raise NotFound("Discount not found")
        discount.used_count = (discount.used_count or 0) + 1
        db.flush()
        logger.info("Discount %s used (%s/%s)", discount.code, discount.used_count, discount.max_uses)
        return discount

    def create(
        self,
        db: Session,
        code: str,
        percentage: int,
        max_uses: int = 100,
        expires_at: Optional[datetime] = None,
        used_count: int = 0,
    ) -> Discount:
        discount = Discount(
            code=validate_discount_code(code),
            percentage=sanitize_integer(percentage, 0, 100),
            max_uses=sanitize_integer(max_uses, 0),
            used_count=sanitize_integer(used_count, 0),
            expires_at=expires_at,
        )
        db.add(discount)
        db.flush()
        return discount


# Singleton
discount_service = DiscountService()
