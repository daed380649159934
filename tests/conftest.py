import uuid
from contextlib import contextmanager
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.config import build_engine, enable_sqlite_savepoints
from libs.db.session import get_async_db

# Register every model on Base.metadata
import services.orders_service.models  # noqa: F401
import services.referral_service.models  # noqa: F401

settings = get_settings()

DEFAULT_SELLER_ID = "seller-a"
DEFAULT_USER_ID = "user-referrer"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """
    A fresh schema per test.

    SQLite runs fully in memory on a single shared connection; any other
    DATABASE_URL (e.g. PostgreSQL from .env.test) is created and dropped.
    """
    if settings.is_sqlite:
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        enable_sqlite_savepoints(engine)
    else:
        engine = build_engine(settings.DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    if not settings.is_sqlite:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest_asyncio.fixture
async def concurrent_session_factory(tmp_path, test_engine):
    """
    Sessions on separate connections, for tests that race transactions.

    The in-memory SQLite engine shares a single connection, so SQLite runs
    switch to a file database whose writers queue on BEGIN IMMEDIATE.
    """
    if not settings.is_sqlite:
        yield async_sessionmaker(
            bind=test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        return

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"timeout": 30},
    )
    enable_sqlite_savepoints(engine, immediate=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session shared by the test body and the app under test."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_seller_user(seller_id: str = DEFAULT_SELLER_ID, **kwargs) -> AuthUser:
    return AuthUser(
        user_id=kwargs.pop("user_id", f"user-{seller_id}"),
        role="seller",
        seller_id=seller_id,
        **kwargs,
    )


def make_member_user(user_id: str = DEFAULT_USER_ID, **kwargs) -> AuthUser:
    return AuthUser(user_id=user_id, role="authenticated", **kwargs)


def make_admin_user(user_id: str = "admin-1") -> AuthUser:
    return AuthUser(user_id=user_id, role="admin")


def make_service_user(service: str = "tests") -> AuthUser:
    return AuthUser(user_id=f"service:{service}", role="service_role")


@contextmanager
def override_auth(app, user: Optional[AuthUser]):
    """
    Authenticate every request as ``user`` for the duration of the block.

    ``None`` removes the override so the real bearer-token check runs.
    """
    previous = app.dependency_overrides.get(get_current_user)
    if user is None:
        app.dependency_overrides.pop(get_current_user, None)
    else:
        app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Order data for the referral service
# ---------------------------------------------------------------------------


class FakeOrderSource:
    """In-memory stand-in for the orders service read-through."""

    def __init__(self):
        self.orders = {}
        self.calls = 0

    def add(self, order_id: uuid.UUID, status: str, lines):
        from services.referral_service.services.sources import OrderSnapshot

        self.orders[order_id] = OrderSnapshot(
            order_id=order_id, status=status, lines=tuple(lines)
        )

    async def get_order(self, order_id: uuid.UUID):
        self.calls += 1
        return self.orders.get(order_id)


class FakeSellerSource:
    def __init__(self):
        self.revenue = {}
        self.calls = 0

    async def get_revenue(self, seller_id: str) -> Decimal:
        self.calls += 1
        return self.revenue.get(seller_id, Decimal("0"))


@pytest.fixture
def order_source():
    return FakeOrderSource()


@pytest.fixture
def seller_source():
    return FakeSellerSource()


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------


@contextmanager
def _db_override(app, db_session):
    async def _get_db():
        yield db_session

    app.dependency_overrides[get_async_db] = _get_db
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def orders_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Orders service client, authenticated as seller ``seller-a``."""
    from services.orders_service.app.main import app

    with _db_override(app, db_session):
        app.dependency_overrides[get_current_user] = lambda: make_seller_user()
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            yield client


@pytest_asyncio.fixture
async def referral_client(
    db_session, order_source, seller_source
) -> AsyncGenerator[AsyncClient, None]:
    """Referral service client, authenticated as member ``user-referrer``."""
    from services.referral_service.app.main import app
    from services.referral_service.services.sources import (
        get_order_source,
        get_seller_source,
    )

    with _db_override(app, db_session):
        app.dependency_overrides[get_current_user] = lambda: make_member_user()
        app.dependency_overrides[get_order_source] = lambda: order_source
        app.dependency_overrides[get_seller_source] = lambda: seller_source
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            yield client
