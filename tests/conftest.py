"""
Pytest Configuration and Fixtures

API tests run the real application against an in-memory SQLite database;
collaborators (email, SMS, AI) are mocked per test.
"""

import os
import tempfile

# Settings are read at import time, so the environment must be in place
# before anything under ``app`` is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.mkdtemp(prefix="swiftdesk-"), "uploads"))
os.environ.setdefault("ADMIN_EMAIL", "support@swiftdesk.test")

from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.cache import triage_cache
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.main import app
from app.middleware.rate_limit import ai_limiter, otp_limiter, quiz_limiter, verify_limiter
from app.models import Account, AccountRole


# ==================== Global State ====================

@pytest.fixture(autouse=True)
def reset_global_state():
    """Rate limit buckets and the triage cache are process-wide."""
    for limiter in (otp_limiter, quiz_limiter, ai_limiter, verify_limiter):
        limiter.reset()
    triage_cache.clear()
    yield
    app.dependency_overrides.clear()


# ==================== Database Fixtures ====================

@pytest_asyncio.fixture
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database per test, created from the models."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


# ==================== HTTP Client Fixtures ====================

@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    """ASGI client with ``get_db`` bound to the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_httpx_response():
    """
    Factory fixture to create mock httpx responses.

    Usage:
        response = mock_httpx_response(status_code=200, json_data={"key": "value"})
    """
    def _create_response(status_code: int = 200, json_data: dict = None, text: str = ""):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = json_data or {}
        response.text = text
        return response
    return _create_response


# ==================== Account Fixtures ====================

async def _create_account(
    session: AsyncSession,
    phone: str,
    email: str,
    name: str,
    role: AccountRole = AccountRole.USER,
) -> Account:
    account = Account(phone=phone, email=email, name=name, role=role, is_verified=True)
    session.add(account)
    await session.commit()
    return account


@pytest_asyncio.fixture
async def user(db_session) -> Account:
    return await _create_account(db_session, "+27820000001", "user@example.com", "Test User")


@pytest_asyncio.fixture
async def other_user(db_session) -> Account:
    return await _create_account(db_session, "+27820000002", "other@example.com", "Other User")


@pytest_asyncio.fixture
async def admin(db_session) -> Account:
    return await _create_account(
        db_session, "+27820000099", "admin@example.com", "Support", role=AccountRole.ADMIN
    )


def auth_headers(account: Account) -> dict:
    token = create_access_token(subject=account.id, identifier=account.email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(user) -> dict:
    return auth_headers(user)


@pytest.fixture
def other_headers(other_user) -> dict:
    return auth_headers(other_user)


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_headers(admin)


# ==================== OpenAI Fixtures ====================

@pytest.fixture
def mock_openai_response():
    """
    Factory for a mock OpenAI chat completion carrying ``content``.
    """
    def _create(content: str):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = content
        return response
    return _create


@pytest.fixture
def mock_openai_client():
    """
    Create a mock OpenAI async client.

    Returns:
        AsyncMock configured for chat completions.
    """
    client = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client
