"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pactnexus.config import get_settings
from pactnexus.database import close_db, init_db, session_scope
from pactnexus.health.router import router as health_router
from pactnexus.middleware import setup_middleware
from pactnexus.progression.catalog import seed_achievements
from pactnexus.progression.router import router as progression_router
from pactnexus.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed the achievement catalog (idempotent)
    try:
        async with session_scope() as db:
            await seed_achievements(db)
    except Exception:
        logger.warning("Achievement seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Pact Nexus API",
        description="Progression and insight engine: achievements, rank XP, pact analysis and streaks",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progression_router)

    return app


app = create_app()
