"""
Catalog Module - Models
========================
Product with price snapshot source and stock counter.
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, BigInteger, Text, DateTime, CheckConstraint
from config.database import Base
from common.helpers import now_utc, from_cents


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String, nullable=True)
    price_cents = Column(BigInteger, default=0, nullable=False)   # cents
    stock = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_stock"),
        CheckConstraint("price_cents >= 0", name="ck_product_price"),
    )

    @property
    def price(self) -> Decimal:
        return from_cents(self.price_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "image": self.image,
            "price": self.price,
            "stock": self.stock,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self):
        return f"<Product {self.id} {self.name}>"
