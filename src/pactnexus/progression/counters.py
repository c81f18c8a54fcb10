"""Counter store: atomic increments and flag sets on the per-user tracking row."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.db.models import DIFFICULTIES, AchievementTracking
from pactnexus.errors import InvalidCounterDeltaError, UnknownCounterError, require_user

logger = logging.getLogger(__name__)

COUNTER_FIELDS: frozenset[str] = frozenset(
    {
        "consecutive_login_days",
        "logins_at_same_hour_streak",
        "midnight_logins_count",
        "total_goals_created",
        "goals_completed_total",
        "steps_completed_total",
        "current_rank_tier",
    }
    | {f"{d}_goals_created" for d in DIFFICULTIES}
    | {f"{d}_goals_completed" for d in DIFFICULTIES}
)

FLAG_FIELDS: frozenset[str] = frozenset({"has_pact", "has_edited_pact", "last_login_date", "usual_login_hour"})


async def get_or_create_tracking(db: AsyncSession, user_id: str) -> AchievementTracking:
    """Get or create the tracking row for a user, all counters at zero."""
    tracking = await read_tracking(db, user_id)
    if tracking is not None:
        return tracking

    now = datetime.now(timezone.utc)
    db.add(AchievementTracking(user_id=user_id, created_at=now, updated_at=now))
    try:
        await db.commit()
    except IntegrityError:
        # Another client created the row first
        await db.rollback()

    tracking = await read_tracking(db, user_id)
    if tracking is None:  # pragma: no cover - only on a broken store
        msg = f"Tracking row for {user_id} could not be created"
        raise RuntimeError(msg)
    return tracking


async def read_tracking(db: AsyncSession, user_id: str | None) -> AchievementTracking | None:
    """Point-in-time read of the tracking row (bypasses the identity map)."""
    user_id = require_user(user_id)
    result = await db.execute(
        select(AchievementTracking)
        .where(AchievementTracking.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def increment_counter(db: AsyncSession, user_id: str | None, field: str, delta: int = 1) -> None:
    """Atomically add ``delta`` to a counter.

    Runs as a single ``UPDATE ... SET field = field + :delta`` so concurrent
    increments from other clients are never lost.
    """
    user_id = require_user(user_id)
    if field not in COUNTER_FIELDS:
        raise UnknownCounterError(f"Unknown counter field: {field}")
    if delta < 1:
        raise InvalidCounterDeltaError(f"Counter {field} can only grow, got delta {delta}")

    await get_or_create_tracking(db, user_id)
    column = getattr(AchievementTracking, field)
    await db.execute(
        update(AchievementTracking)
        .where(AchievementTracking.user_id == user_id)
        .values({field: column + delta, "updated_at": datetime.now(timezone.utc)})
    )
    await db.commit()
    logger.debug("Incremented %s by %d for %s", field, delta, user_id)


async def set_counter(db: AsyncSession, user_id: str | None, field: str, value: int) -> None:
    """Overwrite a counter (streak resets)."""
    user_id = require_user(user_id)
    if field not in COUNTER_FIELDS:
        raise UnknownCounterError(f"Unknown counter field: {field}")
    await _set_fields(db, user_id, {field: value})


async def set_flag(db: AsyncSession, user_id: str | None, field: str, value: bool | date | int | None) -> None:
    """Set a boolean or date field on the tracking row."""
    user_id = require_user(user_id)
    if field not in FLAG_FIELDS:
        raise UnknownCounterError(f"Unknown flag field: {field}")
    await _set_fields(db, user_id, {field: value})


async def raise_counter_to(db: AsyncSession, user_id: str | None, field: str, value: int) -> None:
    """Set a counter to ``max(current, value)`` in one statement."""
    user_id = require_user(user_id)
    if field not in COUNTER_FIELDS:
        raise UnknownCounterError(f"Unknown counter field: {field}")

    await get_or_create_tracking(db, user_id)
    column = getattr(AchievementTracking, field)
    await db.execute(
        update(AchievementTracking)
        .where(AchievementTracking.user_id == user_id, column < value)
        .values({field: value, "updated_at": datetime.now(timezone.utc)})
    )
    await db.commit()


async def _set_fields(db: AsyncSession, user_id: str, values: dict[str, Any]) -> None:
    await get_or_create_tracking(db, user_id)
    await db.execute(
        update(AchievementTracking)
        .where(AchievementTracking.user_id == user_id)
        .values({**values, "updated_at": datetime.now(timezone.utc)})
    )
    await db.commit()


async def claim_login_day(db: AsyncSession, user_id: str | None, today: date) -> bool:
    """Mark ``today`` as the last login day in one conditional ``UPDATE``.

    Returns False when another client already claimed the day, so only one of
    several near-simultaneous first logins advances the login counters.
    """
    user_id = require_user(user_id)
    await get_or_create_tracking(db, user_id)
    result = await db.execute(
        update(AchievementTracking)
        .where(
            AchievementTracking.user_id == user_id,
            or_(AchievementTracking.last_login_date.is_(None), AchievementTracking.last_login_date != today),
        )
        .values(last_login_date=today, updated_at=datetime.now(timezone.utc))
    )
    await db.commit()
    return result.rowcount == 1
