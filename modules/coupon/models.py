"""
Coupon Module - Models
========================
Percentage discount codes with a usage cap and optional expiry.

Validity is never stored: it is computed at lookup time from
expires_at and used_count / max_uses.
"""

from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from config.database import Base
from common.helpers import now_utc, as_utc


# ==========================================
# Discount
# ==========================================

class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), unique=True, nullable=False, index=True)   # stored uppercase
    percentage = Column(Integer, nullable=False)
    max_uses = Column(Integer, nullable=False, default=1)
    used_count = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_discount_percentage"),
        CheckConstraint("used_count >= 0", name="ck_discount_used"),
    )

    @property
    def is_expired(self) -> bool:
        expires_at = as_utc(self.expires_at)
        return bool(expires_at and expires_at < now_utc())

    @property
    def is_exhausted(self) -> bool:
        return (self.used_count or 0) >= (self.max_uses or 0)

    @property
    def is_valid(self) -> bool:
        return not self.is_expired and not self.is_exhausted

    @property
    def remaining_uses(self) -> int:
        return max((self.max_uses or 0) - (self.used_count or 0), 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "percentage": self.percentage,
            "max_uses": self.max_uses,
            "used_count": self.used_count,
            "expires_at": self.expires_at,
            "valid": self.is_valid,
        }

    def __repr__(self):
        return f"<Discount {self.code} {self.percentage}%>"
