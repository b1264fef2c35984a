"""
Catalog Module - Service Layer
================================
Product lookup, paginated listing and the stock decrement used by checkout.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from common.exceptions import InsufficientStock, NotFound
from common.helpers import to_cents
from common.sanitizer import (
    sanitize_integer, sanitize_text, validate_image, validate_price,
    validate_product_id, validate_product_name, validate_quantity,
)
from modules.catalog.models import Product

logger = logging.getLogger("safecart.catalog")

MAX_PAGE_SIZE = 100


class CatalogService:

    # ==========================================
    # Query
    # ==========================================

    def find_by_id(self, db: Session, product_id: int) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    def get_by_id(self, db: Session, product_id: int) -> Product:
        product = self.find_by_id(db, product_id)
        if not product:
            raise NotFound("Product not found")
        return product

    def find_all(self, db: Session, limit: int = 20, offset: int = 0) -> List[Product]:
        """Page through products ordered by id."""
        limit = sanitize_integer(limit, 1, MAX_PAGE_SIZE)
        offset = sanitize_integer(offset, 0)
        return (
            db.query(Product)
            .order_by(Product.id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(self, db: Session) -> int:
        return db.query(Product).count()

    # ==========================================
    # Mutations
    # ==========================================

    def create(
        self,
        db: Session,
        name: str,
        price,
        stock: int = 0,
        description: Optional[str] = None,
        image: Optional[str] = None,
        product_id: Optional[int] = None,
    ) -> Product:
        product = Product(
            name=validate_product_name(name),
            price_cents=to_cents(validate_price(price)),
            stock=sanitize_integer(stock, 0),
            description=sanitize_text(description) or None,
            image=validate_image(image),
        )
        if product_id is not None:
            product.id = validate_product_id(product_id)
        db.add(product)
        db.flush()
        return product

    def decrease_stock(self, db: Session, product_id: int, quantity: int) -> Product:
        """
        Take `quantity` units out of stock.
        Raises NotFound for an unknown product, InsufficientStock if stock would go negative.
        """
        product = self.get_by_id(db, product_id)
        quantity = validate_quantity(quantity)
        if product.stock < quantity:
            raise InsufficientStock(product.name)

        product.stock -= quantity
        db.flush()
        logger.debug("Stock of product %s decreased by %s to %s", product.id, quantity, product.stock)
        return product


# Singleton
catalog_service = CatalogService()
