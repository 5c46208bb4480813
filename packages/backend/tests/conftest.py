"""Test fixtures — isolated DB sessions per test.

Learn: Two backends, same fixtures:

1. PostgreSQL (CLIENT_SERVICE_TEST_DATABASE_URL=postgresql+asyncpg://...):
   each test gets its own engine + connection + outer transaction; the
   session uses join_transaction_mode="create_savepoint" so service-level
   commit() only releases a SAVEPOINT. The outer transaction rolls back
   after the test — schema and data vanish.
2. SQLite in memory (default): a fresh schema per test on one shared
   connection. Exercises the timestamp fallback of the upsert primitive.

The app's get_db, API key and identity provider are overridden so
routes run against the test session without real secrets.
"""

import os

os.environ.setdefault("CLIENT_SERVICE_API_KEY", "test_api_key")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from client_service.auth.dependencies import get_api_key
from client_service.auth.provider import (
    ProviderProfile,
    TokenError,
    get_identity_provider,
)
from client_service.db.engine import get_db
from client_service.db.models import Base
from client_service.main import app

TEST_DB_URL = os.environ.get(
    "CLIENT_SERVICE_TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)
IS_POSTGRES = TEST_DB_URL.startswith("postgresql")

API_KEY = "test_api_key"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session that leaves nothing behind."""
    if IS_POSTGRES:
        engine = create_async_engine(TEST_DB_URL, echo=False)
        async with engine.connect() as conn:
            trans = await conn.begin()
            await conn.run_sync(Base.metadata.create_all)
            session = AsyncSession(
                bind=conn,
                expire_on_commit=False,
                join_transaction_mode="create_savepoint",
            )
            try:
                yield session
            finally:
                await session.close()
                await trans.rollback()
        await engine.dispose()
        return

    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


class FakeIdentityProvider:
    """Stands in for the third-party provider.

    Tokens are looked up in `tokens` (token → claims); profiles in
    `profiles` (user id → ProviderProfile).
    """

    def __init__(self):
        self.tokens: dict[str, dict] = {}
        self.profiles: dict[str, ProviderProfile] = {}
        self.fetched: list[str] = []

    async def verify_token(self, token: str) -> dict:
        if token not in self.tokens:
            raise TokenError("Invalid token")
        return self.tokens[token]

    async def fetch_user(self, user_id: str) -> ProviderProfile:
        self.fetched.append(user_id)
        return self.profiles.get(user_id, ProviderProfile(user_id=user_id))


@pytest.fixture()
def provider():
    return FakeIdentityProvider()


def _override(db_session, provider):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_api_key] = lambda: API_KEY
    app.dependency_overrides[get_identity_provider] = lambda: provider


@pytest_asyncio.fixture()
async def client(db_session, provider):
    """HTTP client sending the tenant API key on every request."""
    _override(db_session, provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"x-api-key": API_KEY},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def anon_client(db_session, provider):
    """HTTP client WITHOUT the API key — for auth-gate tests and Bearer flows."""
    _override(db_session, provider)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
