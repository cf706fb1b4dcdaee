"""
Shared test fixtures for the guest check-in kiosk test suite.

Every test gets its own in-memory SQLite database (aiosqlite) wired into
the app through the ``get_db`` dependency override.
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
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["ENVIRONMENT"] = "testing"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="kiosk-uploads-")
# No real outbound channels during tests
for _var in ("SMTP_HOST", "SMTP_USER", "FROM_EMAIL", "SLACK_BOT_TOKEN",
             "SLACK_DEFAULT_CHANNEL", "TEAMS_WEBHOOK_URL"):
    os.environ[_var] = ""

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (AsyncSession, async_sessionmaker,
                                    create_async_engine)
from sqlalchemy.pool import StaticPool

from kiosk.api.deps import get_db
from kiosk.core.security import create_access_token, get_password_hash
from kiosk.db.base import Base
from kiosk.db.session import enable_sqlite_foreign_keys
from kiosk.main import app
from kiosk.models.employee import Employee
from kiosk.models.user import User


@pytest.fixture(autouse=True)
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create a fresh database for each test and point the app at it."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine.sync_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield factory

    app.dependency_overrides.pop(get_db, None)
    await test_engine.dispose()


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


# ── Users & tokens ──────────────────────────────────────────────────
async def _make_user(session_factory, username: str, role: str, password: str = "Passw0rd") -> User:
    async with session_factory() as session:
        user = User(username=username, hashed_password=get_password_hash(password), role=role)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.username, user.role)}"}


@pytest.fixture
async def admin_user(session_factory) -> User:
    return await _make_user(session_factory, "admin_test", "admin")


@pytest.fixture
async def staff_user(session_factory) -> User:
    return await _make_user(session_factory, "staff_test", "employee")


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return bearer(admin_user)


@pytest.fixture
def staff_headers(staff_user: User) -> dict[str, str]:
    return bearer(staff_user)


# ── Directory data ──────────────────────────────────────────────────
@pytest.fixture
def make_employee(session_factory):
    """Factory inserting an employee row directly."""

    async def _make(**fields) -> Employee:
        fields.setdefault("name", "Jane Doe")
        fields.setdefault("department", "Engineering")
        async with session_factory() as session:
            employee = Employee(**fields)
            session.add(employee)
            await session.commit()
            await session.refresh(employee)
            return employee

    return _make
