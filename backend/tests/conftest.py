"""
Noteworthy Backend - Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine:        SQLite file database with every table created
    ├── db_session:       AsyncSession on that database
    ├── user / other_user: two registered accounts (data isolation tests)
    ├── identity / other_identity: Authenticated identities for them
    ├── mock_db_session:  Mock session (proves a code path never touches storage)
    ├── token_service:    TokenService with a fixed test secret
    └── test_client:      HTTPX AsyncClient for API endpoint testing
"""

import os
import tempfile

# Override settings for testing BEFORE any noteworthy imports
_TEST_DIR = tempfile.mkdtemp(prefix="noteworthy_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/noteworthy.db"
os.environ["JWT_SECRET"] = "test-secret-for-the-noteworthy-suite-0123456789"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from noteworthy.config import settings  # noqa: E402
from noteworthy.database import Base, async_session_factory, engine  # noqa: E402
from noteworthy.models import User  # noqa: E402
from noteworthy.security.identity import Authenticated  # noqa: E402
from noteworthy.security.passwords import hash_password  # noqa: E402
from noteworthy.security.tokens import TokenService  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"

_password_hash_cache = {}


def password_hash() -> str:
    """bcrypt is slow on purpose; hash the shared test password once."""
    if TEST_PASSWORD not in _password_hash_cache:
        _password_hash_cache[TEST_PASSWORD] = hash_password(TEST_PASSWORD)
    return _password_hash_cache[TEST_PASSWORD]


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """Fresh schema per test; pooled connections are dropped afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    async with async_session_factory() as session:
        yield session
        await session.rollback()


async def create_user(session, email, full_name=None, is_active=True) -> User:
    user = User(
        email=email,
        password_hash=password_hash(),
        full_name=full_name,
        is_active=is_active,
    )
    session.add(user)
    await session.flush()
    return user


@pytest_asyncio.fixture
async def user(db_session) -> User:
    return await create_user(db_session, "alice@example.com", "Alice")


@pytest_asyncio.fixture
async def other_user(db_session) -> User:
    return await create_user(db_session, "bob@example.com", "Bob")


@pytest.fixture
def identity(user) -> Authenticated:
    return Authenticated(user_id=user.id)


@pytest.fixture
def other_identity(other_user) -> Authenticated:
    return Authenticated(user_id=other_user.id)


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_anonymous(mock_db_session):
            with pytest.raises(AuthenticationError):
                await note_service.create_note(mock_db_session, ANONYMOUS, "x")
            mock_db_session.execute.assert_not_called()
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.scalar = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def hashed_password() -> str:
    return password_hash()


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret=settings.jwt_secret)


@pytest_asyncio.fixture
async def test_client(db_engine, token_service):
    """
    Provides an async HTTP test client for endpoint testing.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from noteworthy.main import create_app

    app = create_app(token_service=token_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
