"""
Order Module - Models
======================
Order with full price snapshot per item for audit trail.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, BigInteger, Text, JSON,
    ForeignKey, DateTime,
)
from sqlalchemy.orm import relationship
from config.database import Base
from common.helpers import now_utc, new_id, from_cents


class OrderStatus(str, enum.Enum):
    PENDING = "pending"


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(String, nullable=False, index=True)
    subtotal_cents = Column(BigInteger, nullable=False)
    tax_cents = Column(BigInteger, default=0, nullable=False)
    shipping_cents = Column(BigInteger, default=0, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    shipping_address = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    status = Column(String, default=OrderStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")

    @property
    def subtotal(self):
        return from_cents(self.subtotal_cents)

    @property
    def tax(self):
        return from_cents(self.tax_cents)

    @property
    def shipping(self):
        return from_cents(self.shipping_cents)

    @property
    def total(self):
        return from_cents(self.total_cents)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.customer_id,
            "items": [oi.to_dict() for oi in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
            "shipping_address": self.shipping_address,
            "payment_method": self.payment_method,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    cart_item_id = Column(String(36), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)

    # Snapshot at time of purchase
    product_name = Column(String(200), nullable=False)
    variant = Column(JSON, nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(BigInteger, nullable=False)
    line_total_cents = Column(BigInteger, nullable=False)

    order = relationship("Order", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "cart_item_id": self.cart_item_id,
            "product_id": self.product_id,
            "name": self.product_name,
            "variant": self.variant,
            "quantity": self.quantity,
            "price": from_cents(self.unit_price_cents),
            "subtotal": from_cents(self.line_total_cents),
        }
