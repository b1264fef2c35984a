"""
SafeCart - Entry Point
=======================
Logging setup, table creation, fixture seeding and ShopService wiring.
"""

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from config.settings import LOG_LEVEL, SEED_FIXTURES
from config.database import SessionLocal, build_session_factory, engine as default_engine, init_db
from config.fixtures import seed as seed_fixtures
from common.helpers import format_money
from common.security import RateLimiter
from modules.shop.service import ShopService

logger = logging.getLogger("safecart")


def configure_logging(level: str = LOG_LEVEL):
    """Console handler on the safecart logger tree."""
    root = logging.getLogger("safecart")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        root.addHandler(handler)
    root.setLevel(level)


def bootstrap(
    seed: bool = SEED_FIXTURES,
    engine: Optional[Engine] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> ShopService:
    """Create tables, optionally seed fixtures and return a wired ShopService."""
    configure_logging()

    bind = engine or default_engine
    init_db(bind)
    session_factory = SessionLocal if engine is None else build_session_factory(engine)

    if seed:
        db = session_factory()
        try:
            seed_fixtures(db)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    logger.info("SafeCart ready")
    return ShopService(session_factory=session_factory, rate_limiter=rate_limiter)


if __name__ == "__main__":
    shop = bootstrap()
    for product in shop.get_products():
        print(f"  {product['id']}. {product['name']:<22} {format_money(product['price']):>9}  (stock {product['stock']})")
