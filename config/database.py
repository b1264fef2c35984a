"""
SafeCart - Store Configuration
===============================
Engine, SessionLocal, Base, get_db dependency and table creation.
All models across all modules inherit from this Base.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from config.settings import DATABASE_URL


def build_engine(url: str = DATABASE_URL) -> Engine:
    """
    Create an engine for the given URL.
    In-memory SQLite needs a single shared connection, otherwise every
    pooled connection would see its own empty database.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


def is_memory_url(url: str) -> bool:
    """True for SQLite URLs whose database lives only as long as the process."""
    url = (url or "").strip()
    return url in ("sqlite://", "sqlite:///") or ":memory:" in url or "mode=memory" in url


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = build_engine()

SessionLocal = build_session_factory(engine)

Base = declarative_base()


def init_db(bind: Engine = None):
    """Create all tables (safe to call multiple times)."""
    # Import here so every model is registered on Base.metadata
    from modules.catalog.models import Product  # noqa: F401
    from modules.coupon.models import Discount  # noqa: F401
    from modules.cart.models import Cart, CartItem  # noqa: F401
    from modules.order.models import Order, OrderItem  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def drop_db(bind: Engine = None):
    Base.metadata.drop_all(bind=bind or engine)


def get_db():
    """Yields a store session, auto-closes after the unit of work."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
