"""Record store: async SQLAlchemy engine, session factory and session scopes."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pactnexus.db import models  # noqa: F401
from pactnexus.db.base import Base

# asyncpg behind PgBouncer cannot use prepared statement caching
_POSTGRES_ENGINE_DEFAULTS: dict[str, object] = {
    "pool_size": 20,
    "max_overflow": 10,
    "connect_args": {"statement_cache_size": 0},
}

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str, **engine_kwargs: object) -> None:
    """Create the engine and session factory.

    PostgreSQL URLs get a sized pool; any other backend (the SQLite test store)
    uses ``engine_kwargs`` as given.
    """
    global _engine, _session_factory  # noqa: PLW0603
    if make_url(url).get_backend_name() == "postgresql":
        for key, value in _POSTGRES_ENGINE_DEFAULTS.items():
            engine_kwargs.setdefault(key, value)
    _engine = create_async_engine(url, pool_pre_ping=True, **engine_kwargs)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)


async def create_schema() -> None:
    """Create every table from the ORM metadata. Deployed databases use Alembic instead."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """A session outside a request: startup seeding, scripts, tests."""
    if _session_factory is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    async with _session_factory() as session:
        yield session


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with session_scope() as session:
        yield session
