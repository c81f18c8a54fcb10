"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.config import get_settings
from pactnexus.database import get_session
from pactnexus.db.models import AchievementDefinition
from pactnexus.dependencies import get_redis_dep

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: object | None = Depends(get_redis_dep),  # noqa: B008
) -> dict[str, object]:
    """Ready when the store answers and the achievement catalog is seeded.

    Redis only carries toasts, so a missing pool degrades the status without
    failing the probe.
    """
    checks: dict[str, object] = {}
    ready = True

    try:
        definitions = await db.scalar(select(func.count()).select_from(AchievementDefinition))
        checks["database"] = "ok"
        checks["catalog"] = definitions or 0
        if not definitions:
            ready = False
    except Exception as exc:
        checks["database"] = f"error: {exc}"
        ready = False

    if redis is None:
        checks["redis"] = "unavailable"
    else:
        try:
            await redis.ping()  # type: ignore[attr-defined]
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        state = "unavailable"
    elif checks["redis"] != "ok":
        state = "degraded"
    else:
        state = "ready"
    return {"status": state, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
