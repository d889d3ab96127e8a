"""Shared test configuration and fixtures.

Uses a transactional rollback strategy per test for full isolation:
- Each test gets its own transaction that rolls back after the test.
- ``TEST_DATABASE_URL`` selects the database; by default an in-memory
  SQLite database (aiosqlite) is created fresh for every test.
"""

import os
from collections.abc import AsyncGenerator

# Settings are read at import time, so test configuration goes first.
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-not-for-production-0123456789")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("STRIPE_MONTHLY_PRICE_ID", "price_test_monthly")
os.environ.setdefault("STRIPE_YEARLY_PRICE_ID", "price_test_yearly")
os.environ.setdefault("FRONTEND_URL", "http://localhost:3000")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402
from factories import auth_headers_for, create_user  # noqa: E402

_test_db_url = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def _make_engine():
    if _test_db_url.startswith("sqlite"):
        # One shared connection so the in-memory database outlives each checkout
        return create_async_engine(
            _test_db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_async_engine(_test_db_url, pool_pre_ping=True)


# ---------------------------------------------------------------------------
# Per-test: fresh schema + transactional rollback for isolation
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """Create an engine with all tables; drop them afterwards."""
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session wrapped in a transaction that always rolls back."""
    async with test_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)

        try:
            yield session
        finally:
            await session.close()
            await transaction.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to use the test DB session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience fixtures: authenticated user
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create and return a test user directly in the DB."""
    return await create_user(db_session)


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict[str, str]:
    """Return Authorization headers for the test user."""
    return auth_headers_for(test_user)
