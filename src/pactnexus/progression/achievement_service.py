"""Achievement unlock service with duplicate prevention and toast notification."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.db.models import AchievementDefinition, UserAchievement
from pactnexus.errors import require_user
from pactnexus.notifications import emit_notification
from pactnexus.redis_client import publish_json

logger = logging.getLogger(__name__)


class AchievementLike(Protocol):
    """Catalog row or parsed catalog entry; only these fields are needed to toast."""

    key: str
    name: str
    rarity: str


def rarity_label(rarity: str) -> str:
    """'legendary' -> 'Legendary'."""
    return rarity[:1].upper() + rarity[1:]


async def get_definition_by_key(db: AsyncSession, key: str) -> AchievementDefinition | None:
    """Fetch a catalog entry by key."""
    result = await db.execute(
        select(AchievementDefinition).where(AchievementDefinition.key == key)
    )
    return result.scalar_one_or_none()


async def load_catalog(db: AsyncSession) -> list[AchievementDefinition]:
    """All catalog entries in display order."""
    result = await db.execute(
        select(AchievementDefinition).order_by(AchievementDefinition.sort_order, AchievementDefinition.key)
    )
    return list(result.scalars())


async def get_unlocked_keys(db: AsyncSession, user_id: str) -> set[str]:
    result = await db.execute(
        select(UserAchievement.achievement_key).where(UserAchievement.user_id == user_id)
    )
    return set(result.scalars())


async def has_achievement(db: AsyncSession, user_id: str, key: str) -> bool:
    """Check if the user already unlocked a specific achievement."""
    result = await db.execute(
        select(UserAchievement.id).where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_key == key,
        )
    )
    return result.scalar_one_or_none() is not None


async def unlock_achievement(
    db: AsyncSession,
    redis: object | None,
    user_id: str | None,
    key: str,
    definition: AchievementLike | None = None,
) -> bool:
    """Unlock an achievement for a user.

    Returns True if newly unlocked, False if it was already unlocked (including
    losing an insert race against another client).
    """
    user_id = require_user(user_id)

    if await has_achievement(db, user_id, key):
        return False

    db.add(UserAchievement(
        user_id=user_id,
        achievement_key=key,
        unlocked_at=datetime.now(timezone.utc),
        seen=False,
    ))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.debug("Achievement %s already unlocked for %s (race)", key, user_id)
        return False

    if definition is None:
        definition = await get_definition_by_key(db, key)
    if definition is not None:
        await _emit_achievement_unlocked(db, redis, user_id, definition)

    logger.info("Unlocked achievement %s for %s", key, user_id)
    return True


async def _emit_achievement_unlocked(
    db: AsyncSession,
    redis: object | None,
    user_id: str,
    definition: AchievementLike,
) -> None:
    """Toast via notification feed + raw pub/sub broadcast."""
    await emit_notification(
        db,
        redis,
        user_id,
        type="gamification",
        subtype="achievement_unlocked",
        title="Achievement Unlocked!",
        description=f"{definition.name} ({rarity_label(definition.rarity)})",
        action_url="/achievements",
        action_label="View Achievement",
    )

    await publish_json(redis, "pubsub:achievement_unlocked", {
        "user_id": user_id,
        "achievement_key": definition.key,
        "name": definition.name,
        "rarity": definition.rarity,
    })


async def get_user_achievements(db: AsyncSession, user_id: str | None) -> list[dict]:
    """Every catalog entry annotated with the user's unlock state."""
    user_id = require_user(user_id)
    definitions = await load_catalog(db)

    result = await db.execute(
        select(UserAchievement).where(UserAchievement.user_id == user_id)
    )
    unlocked = {ua.achievement_key: ua for ua in result.scalars()}

    items = []
    for d in definitions:
        ua = unlocked.get(d.key)
        items.append({
            "key": d.key,
            "name": d.name,
            "description": d.description,
            "flavor_text": d.flavor_text,
            "category": d.category,
            "rarity": d.rarity,
            "icon_key": d.icon_key,
            "is_hidden": d.is_hidden,
            "unlocked": ua is not None,
            "unlocked_at": ua.unlocked_at if ua else None,
            "seen": ua.seen if ua else False,
        })
    return items


async def mark_achievements_seen(db: AsyncSession, user_id: str | None) -> int:
    """Mark all unseen unlocks as seen. Returns count updated."""
    user_id = require_user(user_id)
    result = await db.execute(
        update(UserAchievement)
        .where(UserAchievement.user_id == user_id, UserAchievement.seen.is_(False))
        .values(seen=True)
    )
    await db.commit()
    return result.rowcount

async def get_achievement_stats(db: AsyncSession, user_id: str | None) -> dict:
    """Totals, completion percentage, unlocks per rarity and the 5 most recent unlocks."""
    achievements = await get_user_achievements(db, user_id)
    unlocked = [a for a in achievements if a["unlocked"]]

    by_rarity: dict[str, int] = {}
    for a in unlocked:
        by_rarity[a["rarity"]] = by_rarity.get(a["rarity"], 0) + 1

    total = len(achievements)
    recent = sorted(unlocked, key=lambda a: _sort_ts(a["unlocked_at"]), reverse=True)[:5]
    return {
        "total": total,
        "unlocked": len(unlocked),
        "percentage": round(len(unlocked) / total * 100) if total else 0,
        "by_rarity": by_rarity,
        "recent": recent,
    }


def _sort_ts(value: datetime | None) -> datetime:
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
