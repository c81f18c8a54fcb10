"""Achievement rule engine: evaluates the catalog against a user's counters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import SimpleNamespace

from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.db.models import AchievementTracking
from pactnexus.errors import require_user
from pactnexus.progression.achievement_service import get_unlocked_keys, load_catalog, unlock_achievement
from pactnexus.progression.conditions import CompletionContext, Condition, parse_condition
from pactnexus.progression.counters import get_or_create_tracking

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    key: str
    name: str
    rarity: str
    condition: Condition


def tracking_values(tracking: AchievementTracking) -> SimpleNamespace:
    """Detach the counters from the ORM row so evaluation never triggers a reload."""
    return SimpleNamespace(**{
        column.key: getattr(tracking, column.key)
        for column in AchievementTracking.__table__.columns
    })


class AchievementRuleEngine:
    """Evaluates achievement conditions for tracking events."""

    def __init__(self, db: AsyncSession, redis: object | None) -> None:
        self.db = db
        self.redis = redis
        self._catalog_cache: list[CatalogEntry] | None = None

    async def _load_catalog(self) -> list[CatalogEntry]:
        """Load and cache the parsed catalog."""
        if self._catalog_cache is None:
            self._catalog_cache = [
                CatalogEntry(
                    key=d.key,
                    name=d.name,
                    rarity=d.rarity,
                    condition=parse_condition(d.conditions),
                )
                for d in await load_catalog(self.db)
            ]
        return self._catalog_cache

    async def evaluate(self, user_id: str | None, completion: CompletionContext | None = None) -> list[str]:
        """Unlock every satisfied, not-yet-unlocked achievement.

        ``completion`` carries the goal completion being processed; without it,
        duration conditions are never satisfied.

        Returns the keys unlocked by this call (may be empty).
        """
        user_id = require_user(user_id)
        tracking = tracking_values(await get_or_create_tracking(self.db, user_id))
        catalog = await self._load_catalog()
        already = await get_unlocked_keys(self.db, user_id)

        awarded: list[str] = []
        for entry in catalog:
            if entry.key in already:
                continue
            if not entry.condition.is_satisfied(tracking, completion):
                continue
            if await unlock_achievement(self.db, self.redis, user_id, entry.key, definition=entry):
                awarded.append(entry.key)

        if awarded:
            logger.info("Unlocked achievements for %s: %s", user_id, awarded)
        return awarded
