"""Test fixtures — a fresh in-memory SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine on an in-memory SQLite database.
   StaticPool keeps the single connection alive, so every session the
   app opens sees the same database.
2. get_db is overridden to hand out sessions from that engine.
3. Nothing is mocked above the database: requests carry real JWTs and
   go through the real auth dependencies and middleware.
"""

import uuid
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backoffice.auth import password
from backoffice.auth.jwt import issue_access_token
from backoffice.auth.password import hash_password
from backoffice.db.engine import get_db
from backoffice.db.models import Base, Role, User
from backoffice.main import create_app
from backoffice.middleware.rate_limit import FixedWindowRateLimiter

DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Minimum bcrypt cost; 12 rounds per hash would dominate the suite."""
    monkeypatch.setattr(password, "BCRYPT_ROUNDS", 4)


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """A session for arranging and inspecting data outside of requests."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def app(session_factory):
    app = create_app(rate_limiter=FixedWindowRateLimiter(window_seconds=900))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(session_factory):
    """Factory: insert a user directly and return it."""

    async def _make(
        role: str = Role.STAFF.value,
        email: Optional[str] = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
        first_name: str = "Test",
        last_name: str = "User",
        department: Optional[str] = None,
    ) -> User:
        user = User(
            email=email or f"{role}-{uuid.uuid4().hex[:8]}@example.com",
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=is_active,
            department=department,
        )
        async with session_factory() as session:
            session.add(user)
            await session.commit()
        return user

    return _make


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token(user)}"}


@pytest_asyncio.fixture()
async def super_admin(make_user):
    return await make_user(role=Role.SUPER_ADMIN.value, first_name="Super", last_name="Admin")


@pytest_asyncio.fixture()
async def admin(make_user):
    return await make_user(role=Role.ADMIN.value, first_name="Ada", last_name="Admin")


@pytest_asyncio.fixture()
async def staff(make_user):
    return await make_user(role=Role.STAFF.value, first_name="Sam", last_name="Staff")


@pytest.fixture()
def auth():
    """auth(user) -> headers carrying a freshly issued access token."""
    return auth_headers
