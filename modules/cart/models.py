"""
Cart Module - Models
=====================
Shopping cart with per-owner uniqueness and quantity constraints.
Entries are unique per (product, variant).
"""

from sqlalchemy import (
    Column, Integer, String, BigInteger, ForeignKey, DateTime, JSON,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from config.database import Base
from common.helpers import now_utc, new_id, from_cents


class Cart(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(String, unique=True, nullable=False, index=True)
    discount = Column(Integer, default=0, nullable=False)            # percent
    discount_code = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.position",
    )

    __table_args__ = (
        CheckConstraint("discount >= 0 AND discount <= 100", name="ck_cart_discount"),
    )

    def touch(self):
        self.updated_at = now_utc()


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True, default=new_id)
    cart_id = Column(String(36), ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    name = Column(String(200), nullable=False)                       # snapshot
    image = Column(String, nullable=True)
    variant = Column(JSON, nullable=True)
    variant_key = Column(String, default="", nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    price_cents = Column(BigInteger, nullable=False)                 # unit price snapshot
    position = Column(Integer, default=0, nullable=False)            # display order
    added_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    cart = relationship("Cart", back_populates="items")

    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "variant_key", name="uq_cart_product_variant"),
        CheckConstraint("quantity >= 1", name="ck_cart_qty"),
    )

    @property
    def price(self):
        return from_cents(self.price_cents)

    @property
    def subtotal(self):
        return from_cents(self.price_cents * self.quantity)

    def to_line(self) -> dict:
        """The entry as the cart core sees it."""
        return {
            "id": self.product_id,
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "image": self.image,
            "variant": self.variant,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "name": self.name,
            "image": self.image,
            "variant": self.variant,
            "quantity": self.quantity,
            "price": self.price,
            "subtotal": self.subtotal,
            "added_at": self.added_at,
        }
