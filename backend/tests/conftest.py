"""Pytest configuration and fixtures for SmartTherapy tests.

API tests run against an in-memory SQLite database (aiosqlite) with the
`get_db` dependency overridden; Redis is replaced by a small in-memory
stand-in so the cache paths run without a server.
"""

import fnmatch
from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from smarttherapy.auth.jwt import create_access_token
from smarttherapy.database import Base, get_db, utcnow
from smarttherapy.main import app
from smarttherapy.models.clinic import Clinic
from smarttherapy.models.subscription_tier import SubscriptionTier
from smarttherapy.models.user import User, UserRole
from smarttherapy.utils import cache


# ── Redis stand-in ───────────────────────────────────────────────

class InMemoryRedis:
    """The subset of redis.asyncio.Redis the cache helpers use."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value):
        self.store[key] = value

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    async def scan_iter(self, match="*"):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        pass


@pytest.fixture(autouse=True)
def redis_client(monkeypatch) -> InMemoryRedis:
    fake = InMemoryRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)
    return fake


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs nest correctly on SQLite.
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session wrapped in a transaction that is rolled back afterwards."""
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        await session.begin()
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Test client with the database dependency overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest_asyncio.fixture
async def tiers(db_session: AsyncSession) -> dict[str, SubscriptionTier]:
    rows = {
        "beta": SubscriptionTier(
            name="Beta", code="beta", monthly_price=50_000, yearly_price=550_000,
            therapist_limit=1, new_clients_per_day_limit=1, sort_order=1,
        ),
        "alpha": SubscriptionTier(
            name="Alpha", code="alpha", monthly_price=100_000, yearly_price=1_000_000,
            therapist_limit=3, new_clients_per_day_limit=3, is_recommended=True,
            sort_order=2,
        ),
    }
    db_session.add_all(rows.values())
    await db_session.flush()
    return rows


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Clinic admin who has not started onboarding."""
    user = User(
        email="admin@example.com",
        full_name="Test Admin",
        role=UserRole.CLINIC_ADMIN,
        is_active=True,
    )
    db_session.add(user)
    await db_session.flush()
    return user


@pytest_asyncio.fixture
async def test_clinic(db_session: AsyncSession, tiers) -> Clinic:
    """Fully onboarded clinic: subscribed and paid."""
    clinic = Clinic(
        name="Klinik Sehat",
        address="Jl. Merdeka No. 10, Jakarta",
        phone="+62 21 555 0100",
        email="klinik@example.com",
        subscription_tier_id=tiers["alpha"].id,
        billing_cycle="monthly",
        subscription_expires=utcnow() + timedelta(days=30),
        payment_method="bank_transfer",
        payment_confirmed_at=utcnow(),
    )
    db_session.add(clinic)
    await db_session.flush()
    return clinic


@pytest_asyncio.fixture
async def clinic_user(db_session: AsyncSession, test_user: User, test_clinic: Clinic) -> User:
    test_user.clinic_id = test_clinic.id
    await db_session.flush()
    return test_user


def _headers(user: User) -> dict:
    token = create_access_token(
        user_id=user.id, role=user.role.value, clinic_id=user.clinic_id
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return _headers(test_user)


@pytest.fixture
def clinic_headers(clinic_user: User) -> dict:
    return _headers(clinic_user)


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
    config.addinivalue_line("markers", "cache: Cache tests")
    config.addinivalue_line("markers", "auth: Auth tests")
