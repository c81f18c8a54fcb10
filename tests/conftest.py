"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

os.environ.setdefault("PACT_JWT_SECRET", "pact-test-secret-0123456789abcdef0123456789")
os.environ.setdefault("PACT_LOG_FORMAT", "console")

from pactnexus.config import get_settings  # noqa: E402
from pactnexus.database import close_db, create_schema, init_db, session_scope  # noqa: E402
from pactnexus.db.models import Goal, Pact, Rank  # noqa: E402
from pactnexus.progression.catalog import seed_achievements  # noqa: E402

get_settings.cache_clear()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_USER_ID = "5f0c2a8e-2d4b-4c43-9a51-0d6f3b1e7a10"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database with the achievement catalog seeded."""
    await init_db(TEST_DATABASE_URL, poolclass=StaticPool)
    await create_schema()

    async with session_scope() as session:
        await seed_achievements(session)
        yield session

    await close_db()


@pytest.fixture
def user_id() -> str:
    return TEST_USER_ID


@pytest.fixture
def redis_mock() -> MagicMock:
    """Stand-in for the Redis client; only publish() is used."""
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


def make_token(user_id: str) -> str:
    settings = get_settings()
    return jwt.encode({"sub": user_id}, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated HTTP client bound to the test database."""
    from pactnexus.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user_id: str) -> AsyncClient:
    client.headers["Authorization"] = f"Bearer {make_token(user_id)}"
    return client


@pytest_asyncio.fixture
async def pact_with_goals(db_session: AsyncSession, user_id: str) -> Pact:
    """A pact with a small ladder of ranks and a mix of goal states."""
    created = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    pact = Pact(user_id=user_id, name="Forge", project_start_date=None, project_end_date=None)
    db_session.add(pact)
    await db_session.flush()

    db_session.add_all([
        Goal(pact_id=pact.id, name="Run a marathon", difficulty="hard", status="fully_completed",
             total_steps=4, validated_steps=4, potential_score=100, created_at=created),
        Goal(pact_id=pact.id, name="Learn Rust", difficulty="medium", status="in_progress",
             total_steps=4, validated_steps=3, potential_score=200, created_at=created, is_focus=True),
        Goal(pact_id=pact.id, name="Write a novel", difficulty="extreme", status="not_started",
             total_steps=10, validated_steps=0, potential_score=50, created_at=created),
    ])
    db_session.add_all([
        Rank(user_id=user_id, name="Novice", min_points=0),
        Rank(user_id=user_id, name="Adept", min_points=150),
        Rank(user_id=user_id, name="Master", min_points=300),
    ])
    await db_session.commit()
    return pact
