"""
Shared test fixtures for the PromptMart test suite.

Async throughout (aiosqlite + AsyncSession); email and object storage are
replaced by in-memory fakes through FastAPI dependency overrides.
"""

import os
import sys
import tempfile
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-the-suite"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["MEDIA_ROOT"] = tempfile.mkdtemp(prefix="promptmart-media-")
os.environ["CORS_ORIGINS"] = '["*"]'

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from promptmart.api.v1.deps import get_db, get_notifier, get_object_store
from promptmart.db.base import Base
from promptmart.main import app
from tests.fakes import FakeNotifier, FakeObjectStore


# ── Database ────────────────────────────────────────────────────────
@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test, wired into the app."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield factory

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


# ── Collaborators ───────────────────────────────────────────────────
@pytest.fixture
def notifier() -> FakeNotifier:
    fake = FakeNotifier()
    app.dependency_overrides[get_notifier] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def object_store() -> FakeObjectStore:
    fake = FakeObjectStore()
    app.dependency_overrides[get_object_store] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_object_store, None)


@pytest.fixture
async def async_client(session_factory, notifier, object_store) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ── Helpers ─────────────────────────────────────────────────────────
@pytest.fixture
def create_verified_user(async_client: AsyncClient, notifier: FakeNotifier):
    """Register + verify through the API; returns ``(user_id, auth_headers)``.

    The session cookie is dropped so each test chooses its identity
    explicitly via the Authorization header.
    """

    async def _create(email: str, password: str = "password123", name: str = "Tester"):
        resp = await async_client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert resp.status_code == 201, resp.text
        user_id = resp.json()["user_id"]
        resp = await async_client.post(
            "/api/auth/verify-otp",
            json={"user_id": user_id, "otp": notifier.last_code(email)},
        )
        assert resp.status_code == 200, resp.text
        async_client.cookies.clear()
        return user_id, {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _create
