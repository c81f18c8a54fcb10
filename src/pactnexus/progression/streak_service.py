"""Daily check-in streaks: pure transition plus persistence and milestone notices."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.db.models import HealthStreak
from pactnexus.errors import require_user
from pactnexus.notifications import emit_notification
from pactnexus.redis_client import publish_json

logger = logging.getLogger(__name__)

# Fired on exact equality, so each milestone is celebrated once per run.
STREAK_MILESTONES: dict[int, str] = {
    7: "7-day streak! You're on fire!",
    30: "30-day streak! Wellness Warrior!",
    100: "100-day streak! Legendary!",
}


@dataclass(frozen=True)
class StreakState:
    current_streak: int
    longest_streak: int
    last_checkin_date: date | None
    total_checkins: int


def advance_streak(state: StreakState | None, today: date) -> tuple[StreakState, bool]:
    """Apply one check-in on ``today``. Returns (new_state, changed).

    Same-day repeats are no-ops; the day after the last check-in extends the
    streak; any other gap restarts it at 1.
    """
    if state is None:
        return StreakState(current_streak=1, longest_streak=1, last_checkin_date=today, total_checkins=1), True

    if state.last_checkin_date == today:
        return state, False

    if state.last_checkin_date is not None and state.last_checkin_date == today - timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    return replace(
        state,
        current_streak=current,
        longest_streak=max(current, state.longest_streak),
        last_checkin_date=today,
        total_checkins=state.total_checkins + 1,
    ), True


def milestone_for(previous: StreakState | None, new: StreakState, changed: bool) -> int | None:
    """The milestone reached by this transition, if any."""
    if not changed or new.current_streak not in STREAK_MILESTONES:
        return None
    if previous is not None and previous.current_streak == new.current_streak:
        return None
    return new.current_streak


def _to_state(row: HealthStreak) -> StreakState:
    return StreakState(
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_checkin_date=row.last_checkin_date,
        total_checkins=row.total_checkins,
    )


async def get_streak(db: AsyncSession, user_id: str | None) -> HealthStreak | None:
    """Fetch the user's streak row, if any."""
    user_id = require_user(user_id)
    result = await db.execute(
        select(HealthStreak)
        .where(HealthStreak.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def has_checked_in_today(db: AsyncSession, user_id: str | None, today: date | None = None) -> bool:
    streak = await get_streak(db, user_id)
    if streak is None or streak.last_checkin_date is None:
        return False
    return streak.last_checkin_date == (today or date.today())


async def record_check_in(
    db: AsyncSession,
    redis: object | None,
    user_id: str | None,
    today: date | None = None,
) -> HealthStreak:
    """Record a check-in for ``today`` (host-local calendar day by default)."""
    user_id = require_user(user_id)
    if today is None:
        today = date.today()

    row = await get_streak(db, user_id)
    previous = _to_state(row) if row is not None else None
    new, changed = advance_streak(previous, today)
    if not changed and row is not None:
        return row

    now = datetime.now(timezone.utc)
    if row is None:
        row = HealthStreak(user_id=user_id, created_at=now)
        db.add(row)
    row.current_streak = new.current_streak
    row.longest_streak = new.longest_streak
    row.last_checkin_date = new.last_checkin_date
    row.total_checkins = new.total_checkins
    row.updated_at = now

    try:
        await db.commit()
    except IntegrityError:
        # Another client created the row first; apply this check-in on top of it
        await db.rollback()
        logger.debug("Streak row for %s created concurrently, retrying", user_id)
        return await record_check_in(db, redis, user_id, today)

    milestone = milestone_for(previous, new, changed)
    if milestone is not None:
        await _emit_streak_milestone(db, redis, user_id, milestone)

    return row


async def _emit_streak_milestone(db: AsyncSession, redis: object | None, user_id: str, milestone: int) -> None:
    """Celebrate a streak milestone via DB + WebSocket."""
    await emit_notification(
        db,
        redis,
        user_id,
        type="health",
        subtype="streak_milestone",
        title=STREAK_MILESTONES[milestone],
        description=f"{milestone} consecutive check-in days",
        action_url="/health",
    )

    await publish_json(redis, "pubsub:streak_update", {
        "user_id": user_id,
        "event": "streak_milestone",
        "streak_length": milestone,
    })
