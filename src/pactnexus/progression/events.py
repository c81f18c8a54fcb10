"""Tracking event facade.

Every behavioral side effect (login, goal and step progress, pact changes,
rank changes) goes through ``record_event``, which maps the event onto
counter updates and then re-evaluates the achievement catalog.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.db.models import DIFFICULTIES
from pactnexus.errors import InvalidEventError, require_user
from pactnexus.progression.conditions import CompletionContext
from pactnexus.progression.counters import (
    claim_login_day,
    get_or_create_tracking,
    increment_counter,
    raise_counter_to,
    set_counter,
    set_flag,
)
from pactnexus.progression.rule_engine import AchievementRuleEngine

logger = logging.getLogger(__name__)

# A login within this many minutes past the usual hour still counts as "same hour"
SAME_HOUR_GRACE_MINUTES = 15
# 00:00 - 00:05 counts as a midnight login
MIDNIGHT_WINDOW_MINUTES = 5


class EventKind(str, Enum):
    """All supported tracking events."""

    LOGIN = "login"
    GOAL_CREATED = "goal_created"
    GOAL_COMPLETED = "goal_completed"
    STEP_COMPLETED = "step_completed"
    PACT_CREATED = "pact_created"
    PACT_EDITED = "pact_edited"
    RANK_REACHED = "rank_reached"


def _difficulty(payload: dict[str, Any]) -> str:
    difficulty = str(payload.get("difficulty", "")).lower()
    if difficulty not in DIFFICULTIES:
        raise InvalidEventError(f"Unknown difficulty: {payload.get('difficulty')!r}")
    return difficulty


def _step_count(payload: dict[str, Any]) -> int:
    raw = payload.get("count", 1)
    if isinstance(raw, bool):
        raise InvalidEventError(f"Invalid step count: {raw!r}")
    try:
        count = int(raw)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidEventError(f"Invalid step count: {raw!r}") from exc
    if count < 1:
        raise InvalidEventError(f"Invalid step count: {count}, must be positive")
    return count


def _parse_ts(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError as exc:
            raise InvalidEventError(f"Invalid timestamp for {field}: {value!r}") from exc
    raise InvalidEventError(f"Missing timestamp: {field}")


async def _record_login(db: AsyncSession, user_id: str, now: datetime) -> bool:
    """Update the connection counters. Returns False for a repeat login on the same day."""
    tracking = await get_or_create_tracking(db, user_id)
    today: date = now.date()
    last_login = tracking.last_login_date
    usual_hour = tracking.usual_login_hour

    if last_login == today:
        return False
    # Another tab may have logged in since the read above
    if not await claim_login_day(db, user_id, today):
        return False

    if last_login == today - timedelta(days=1):
        await increment_counter(db, user_id, "consecutive_login_days")
    else:
        await set_counter(db, user_id, "consecutive_login_days", 1)

    if usual_hour is not None and usual_hour == now.hour and now.minute <= SAME_HOUR_GRACE_MINUTES:
        await increment_counter(db, user_id, "logins_at_same_hour_streak")
    else:
        await set_counter(db, user_id, "logins_at_same_hour_streak", 1)
        await set_flag(db, user_id, "usual_login_hour", now.hour)

    if now.hour == 0 and now.minute <= MIDNIGHT_WINDOW_MINUTES:
        await increment_counter(db, user_id, "midnight_logins_count")

    return True


async def record_event(
    db: AsyncSession,
    redis: object | None,
    user_id: str | None,
    kind: EventKind | str,
    payload: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> list[str]:
    """Apply a tracking event and return the achievement keys it unlocked."""
    user_id = require_user(user_id)
    try:
        kind = EventKind(kind)
    except ValueError as exc:
        raise InvalidEventError(f"Unknown event kind: {kind!r}") from exc
    payload = payload or {}
    if now is None:
        now = datetime.now().astimezone()

    completion: CompletionContext | None = None

    if kind is EventKind.LOGIN:
        if not await _record_login(db, user_id, now):
            return []

    elif kind is EventKind.GOAL_CREATED:
        difficulty = _difficulty(payload)
        await increment_counter(db, user_id, "total_goals_created")
        await increment_counter(db, user_id, f"{difficulty}_goals_created")

    elif kind is EventKind.GOAL_COMPLETED:
        difficulty = _difficulty(payload)
        created_at = _parse_ts(payload.get("created_at"), "created_at")
        completed_at = _parse_ts(payload.get("completed_at") or now.astimezone(timezone.utc), "completed_at")
        await increment_counter(db, user_id, "goals_completed_total")
        await increment_counter(db, user_id, f"{difficulty}_goals_completed")
        completion = CompletionContext(difficulty=difficulty, created_at=created_at, completed_at=completed_at)

    elif kind is EventKind.STEP_COMPLETED:
        await increment_counter(db, user_id, "steps_completed_total", _step_count(payload))

    elif kind is EventKind.PACT_CREATED:
        await set_flag(db, user_id, "has_pact", True)

    elif kind is EventKind.PACT_EDITED:
        await set_flag(db, user_id, "has_edited_pact", True)

    elif kind is EventKind.RANK_REACHED:
        try:
            tier = int(payload["tier"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidEventError("rank_reached requires an integer tier") from exc
        await raise_counter_to(db, user_id, "current_rank_tier", tier)

    engine = AchievementRuleEngine(db, redis)
    return await engine.evaluate(user_id, completion=completion)


async def track_event(
    db: AsyncSession,
    redis: object | None,
    user_id: str | None,
    kind: EventKind | str,
    payload: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> list[str]:
    """Fire-and-forget wrapper around ``record_event``.

    Store failures are logged and swallowed so they never break the user action
    that triggered them. A missing user still fails fast.
    """
    user_id = require_user(user_id)
    try:
        return await record_event(db, redis, user_id, kind, payload, now)
    except Exception:
        logger.exception("Failed to track %s event for %s", kind, user_id)
        try:
            await db.rollback()
        except Exception:
            logger.warning("Rollback after failed tracking event also failed", exc_info=True)
        return []
