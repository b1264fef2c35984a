"""
SafeCart - Store Fixtures
==========================
Demo catalog and discount codes. Seeding is idempotent: rows that already
exist (by product id / discount code) are left untouched.
"""

import logging
from datetime import timedelta

from sqlalchemy.orm import Session

from common.helpers import now_utc
from modules.catalog.models import Product
from modules.catalog.service import catalog_service
from modules.coupon.service import discount_service

logger = logging.getLogger("safecart.fixtures")

DISCOUNT_VALIDITY_DAYS = 30

PRODUCTS = [
    {"id": 1, "name": "iPhone 15 Pro", "price": 999, "stock": 50,
     "description": "Titanium design, A17 Pro chip",
     "image": "https://via.placeholder.com/300x300?text=iPhone+15+Pro"},
    {"id": 2, "name": "MacBook Air M3", "price": 1299, "stock": 30,
     "description": "13-inch laptop with the M3 chip",
     "image": "https://via.placeholder.com/300x300?text=MacBook+Air"},
    {"id": 3, "name": "AirPods Pro", "price": 249, "stock": 100,
     "description": "Active noise cancellation",
     "image": "https://via.placeholder.com/300x300?text=AirPods+Pro"},
    {"id": 4, "name": "Apple Watch Series 9", "price": 399, "stock": 75,
     "description": "Always-on Retina display",
     "image": "https://via.placeholder.com/300x300?text=Apple+Watch"},
]

DISCOUNTS = [
    {"code": "SAVE10", "percentage": 10, "max_uses": 100},
    {"code": "SAVE20", "percentage": 20, "max_uses": 50},
    {"code": "WELCOME", "percentage": 15, "max_uses": 200},
]


def seed(db: Session) -> dict:
    """Insert missing fixtures. Returns how many of each were created."""
    created = {"products": 0, "discounts": 0}

    for data in PRODUCTS:
        if db.query(Product).filter(Product.id == data["id"]).first():
            continue
        catalog_service.create(
            db,
            name=data["name"],
            price=data["price"],
            stock=data["stock"],
            description=data["description"],
            image=data["image"],
            product_id=data["id"],
        )
        created["products"] += 1

    expires_at = now_utc() + timedelta(days=DISCOUNT_VALIDITY_DAYS)
    for data in DISCOUNTS:
        if discount_service.find_by_code(db, data["code"]):
            continue
        discount_service.create(db, expires_at=expires_at, **data)
        created["discounts"] += 1

    logger.info("Seeded %s products, %s discounts", created["products"], created["discounts"])
    return created
