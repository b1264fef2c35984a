import pytest

from config.database import build_engine, build_session_factory, init_db
from config.fixtures import seed
from common.security import RateLimiter
from modules.shop.service import ShopService
from tests.helpers import FakeClock


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(session_factory):
    session = session_factory()
    try:
        seed(session)
        session.commit()
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def shop(session_factory, seeded, clock):
    return ShopService(
        session_factory=session_factory,
        rate_limiter=RateLimiter(max_requests=1000, window_ms=60_000, clock=clock),
    )
