"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hr_portal.admins.models import Admin
from hr_portal.auth.models import UserAccount
from hr_portal.auth.service import create_session, hash_password
from hr_portal.common.constants import EmployeeStatus, UserRole
from hr_portal.common.rate_limit import limiter
from hr_portal.config import Settings
from hr_portal.database import Base
from hr_portal.employees.models import Employee
from hr_portal.main import create_app

# Importing create_app pulls in every router and therefore every model module
import hr_portal.attendance.models  # noqa: F401
import hr_portal.common.audit  # noqa: F401
import hr_portal.leave.models  # noqa: F401
import hr_portal.tasks.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"
TEST_JWT_SECRET = "test-secret-for-ci-do-not-use-in-production"
TEST_PASSWORD = "password123"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    limiter.reset()
    yield


# ── Settings / app / client ─────────────────────────────────────────

@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=TEST_DATABASE_URL,
        JWT_SECRET=TEST_JWT_SECRET,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        LOG_LEVEL="warning",
    )


@pytest.fixture
async def app(settings):
    """Create a fresh app whose sessions come from the shared test engine."""
    application = create_app(settings)
    application.state.session_factory = TestSessionFactory
    yield application
    await application.state.engine.dispose()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

@pytest.fixture
def make_employee(db):
    """Return a coroutine that inserts an employee with a login account."""

    async def _make(
        *,
        name: str = "Asha Rao",
        email: Optional[str] = None,
        employee_id: Optional[str] = None,
        department: str = "Engineering",
        position: str = "Developer",
        status: EmployeeStatus = EmployeeStatus.active,
        casual: float = 6,
        sick: float = 6,
        earned: float = 12,
    ) -> Employee:
        suffix = uuid.uuid4().hex[:8]
        email = email or f"emp.{suffix}@example.com"
        account = UserAccount(
            email=email,
            password_hash=hash_password(TEST_PASSWORD),
            role=UserRole.employee,
        )
        employee = Employee(
            employee_id=employee_id or f"T-{suffix}",
            account=account,
            name=name,
            email=email,
            phone="+91 98200 00000",
            department=department,
            position=position,
            status=status,
            join_date=date(2024, 1, 15),
            casual_leave=casual,
            sick_leave=sick,
            earned_leave=earned,
        )
        db.add_all([account, employee])
        await db.commit()
        return employee

    return _make


@pytest.fixture
def make_admin(db):
    """Return a coroutine that inserts an admin with a login account."""

    async def _make(*, name: str = "Priya Shah", email: Optional[str] = None) -> Admin:
        email = email or f"admin.{uuid.uuid4().hex[:8]}@example.com"
        account = UserAccount(
            email=email,
            password_hash=hash_password(TEST_PASSWORD),
            role=UserRole.admin,
        )
        admin = Admin(account=account, name=name, email=email)
        db.add_all([account, admin])
        await db.commit()
        return admin

    return _make


@pytest.fixture
async def employee(make_employee) -> Employee:
    return await make_employee()


@pytest.fixture
async def admin(make_admin) -> Admin:
    return await make_admin()


# ── Auth helpers ────────────────────────────────────────────────────

@pytest.fixture
def headers_for(db, settings):
    """Return a coroutine issuing Bearer headers backed by a persisted session."""

    async def _headers(profile) -> dict[str, str]:
        token, _ = await create_session(db, settings, profile.account)
        await db.commit()
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def employee_headers(headers_for, employee) -> dict[str, str]:
    return await headers_for(employee)


@pytest.fixture
async def admin_headers(headers_for, admin) -> dict[str, str]:
    return await headers_for(admin)
