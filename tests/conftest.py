import os
from unittest.mock import AsyncMock, MagicMock

# Point the app at SQLite before any src module builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

import src.models  # noqa: E402,F401
from src.db import session as db_session_module  # noqa: E402
from src.db.session import Base  # noqa: E402
from src.models.user_model import User  # noqa: E402
from src.utils.security import create_jwt_token  # noqa: E402


@pytest.fixture
def mock_db_session():
    """Create a properly configured mock database session"""
    session = AsyncMock(spec=AsyncSession)

    # Configure execute to return a mock result
    mock_result = MagicMock()
    session.execute = AsyncMock(return_value=mock_result)

    # Configure other session methods
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.flush = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()

    # Mock savepoint context manager
    session.begin_nested = MagicMock()
    session.begin_nested.return_value.__aenter__ = AsyncMock(return_value=session)
    session.begin_nested.return_value.__aexit__ = AsyncMock(return_value=None)

    return session


@pytest.fixture
def mock_user():
    """Create a mock user with all required attributes"""
    return User(
        id="test_user_id",
        email="test@example.com",
        username="tester",
        name="Test User",
        is_active=True,
    )


# ── Real database (SQLite file per test) ──────────────────────


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Async engine on a throwaway SQLite file with every table created"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hittags.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine, monkeypatch):
    """Session factory the app, middleware and background tasks all use"""
    factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    monkeypatch.setattr(db_session_module, "SessionLocal", factory)
    return factory


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """Async HTTP client running the full app, gateway middleware included"""
    from src.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create_user(factory, user_id: str, email: str) -> User:
    async with factory() as session:
        user = User(id=user_id, email=email, username=user_id, name=user_id, is_active=True)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def user(session_factory):
    return await _create_user(session_factory, "user_alice", "alice@example.com")


@pytest_asyncio.fixture
async def other_user(session_factory):
    return await _create_user(session_factory, "user_bob", "bob@example.com")


@pytest.fixture
def auth_headers(user):
    """Dashboard session for ``user``"""
    return {"Authorization": f"Bearer {create_jwt_token(user.id, user.email)}"}


@pytest.fixture
def other_auth_headers(other_user):
    return {"Authorization": f"Bearer {create_jwt_token(other_user.id, other_user.email)}"}


@pytest.fixture
def key_headers():
    """Build public API headers from a key id and secret"""

    def _headers(key_id: str, secret: str) -> dict:
        return {"Authorization": f"Bearer {key_id}:{secret}"}

    return _headers


@pytest.fixture
def create_key(client, auth_headers):
    """Create an API key through the developer endpoint and return its payload"""

    async def _create(scopes, headers=None, **fields) -> dict:
        response = await client.post(
            "/developer/api-keys",
            json={"name": "test key", "scopes": scopes, **fields},
            headers=headers or auth_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create
