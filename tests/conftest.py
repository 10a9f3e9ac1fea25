"""Shared test fixtures — async DB, client, auth helpers, seeded team.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leavebot.common.constants import UserRole
from leavebot.common.rate_limit import limiter
from leavebot.database import Base, get_db
from leavebot.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import leavebot.common.audit  # noqa: F401
import leavebot.leave.models  # noqa: F401
import leavebot.teams.models  # noqa: F401
import leavebot.users.models  # noqa: F401

from tests.factories import TEST_PASSWORD, make_team, make_user

# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test; all tables created up front."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    limiter.reset()
    yield


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app(session_factory):
    """Create a fresh app instance with DB dependency overridden."""

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


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
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.commit()


# ── Seeded team ─────────────────────────────────────────────────────
#
# "Support" team: a leader, one applicant and three teammates, with the
# concurrent-leave limit switched on at 3 people and no advance notice.

SUPPORT_POLICY = {
    "min_advance_notice_days": 0,
    "concurrent_leave": {"enabled": True, "max_per_team": 3},
}


@pytest.fixture
async def team(db):
    return await make_team(db, name="Support", settings=SUPPORT_POLICY)


@pytest.fixture
async def leader(db, team):
    user = await make_user(db, username="lead", role=UserRole.leader, team=team)
    team.leader_id = user.id
    await db.commit()
    return user


@pytest.fixture
async def member(db, team, leader):
    return await make_user(db, username="member", team=team)


@pytest.fixture
async def teammates(db, team, leader):
    return [
        await make_user(db, username=f"mate{i}", team=team)
        for i in range(3)
    ]


@pytest.fixture
async def admin(db):
    return await make_user(db, username="admin", role=UserRole.admin)


@pytest.fixture
def leader_password() -> str:
    return TEST_PASSWORD
