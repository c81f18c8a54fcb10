"""Achievement catalog seed data."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.db.models import AchievementDefinition

logger = logging.getLogger(__name__)

RARITIES: tuple[str, ...] = ("common", "uncommon", "rare", "epic", "legendary", "mythic")

ACHIEVEMENT_SEED_DATA: list[dict] = [
    # Connection
    {
        "key": "first_light",
        "name": "First Light",
        "description": "Log in two days in a row",
        "category": "Connection",
        "rarity": "common",
        "icon_key": "sunrise",
        "conditions": {"type": "consecutive_login_days", "value": 2},
        "sort_order": 1,
    },
    {
        "key": "steady_signal",
        "name": "Steady Signal",
        "description": "Log in 7 consecutive days",
        "category": "Connection",
        "rarity": "uncommon",
        "icon_key": "signal",
        "conditions": {"type": "consecutive_login_days", "value": 7},
        "sort_order": 2,
    },
    {
        "key": "unbroken_chain",
        "name": "Unbroken Chain",
        "description": "Log in 30 consecutive days",
        "category": "Connection",
        "rarity": "epic",
        "icon_key": "chain",
        "conditions": {"type": "consecutive_login_days", "value": 30},
        "sort_order": 3,
    },
    {
        "key": "creature_of_habit",
        "name": "Creature of Habit",
        "description": "Log in at the same hour 5 times in a row",
        "category": "Connection",
        "rarity": "rare",
        "icon_key": "clock",
        "conditions": {"type": "logins_at_same_hour_streak", "value": 5},
        "sort_order": 4,
    },
    # Goal creation
    {
        "key": "first_directive",
        "name": "First Directive",
        "description": "Create your first goal",
        "category": "GoalsCreation",
        "rarity": "common",
        "icon_key": "target",
        "conditions": {"type": "total_goals_created", "value": 1},
        "sort_order": 10,
    },
    {
        "key": "architect",
        "name": "Architect",
        "description": "Create 10 goals",
        "category": "GoalsCreation",
        "rarity": "uncommon",
        "icon_key": "blueprint",
        "conditions": {"type": "total_goals_created", "value": 10},
        "sort_order": 11,
    },
    {
        "key": "full_spectrum",
        "name": "Full Spectrum",
        "description": "Create a goal of every difficulty",
        "category": "GoalsCreation",
        "rarity": "rare",
        "icon_key": "prism",
        "conditions": {"type": "all_difficulties_created"},
        "sort_order": 12,
    },
    # Difficulty
    {
        "key": "easy_does_it",
        "name": "Easy Does It",
        "description": "Complete 5 easy goals",
        "category": "Difficulty",
        "rarity": "common",
        "icon_key": "feather",
        "conditions": {"type": "easy_goals_completed", "value": 5},
        "sort_order": 20,
    },
    {
        "key": "hard_earned",
        "name": "Hard Earned",
        "description": "Complete a hard goal",
        "category": "Difficulty",
        "rarity": "uncommon",
        "icon_key": "anvil",
        "conditions": {"type": "hard_goals_completed", "value": 1},
        "sort_order": 21,
    },
    {
        "key": "beyond_limits",
        "name": "Beyond Limits",
        "description": "Complete an extreme goal",
        "category": "Difficulty",
        "rarity": "epic",
        "icon_key": "flame",
        "conditions": {"type": "extreme_goals_completed", "value": 1},
        "sort_order": 22,
    },
    {
        "key": "the_impossible",
        "name": "The Impossible",
        "description": "Complete an impossible goal",
        "category": "Difficulty",
        "rarity": "legendary",
        "icon_key": "crown",
        "conditions": {"type": "impossible_goals_completed", "value": 1},
        "sort_order": 23,
    },
    # Series
    {
        "key": "momentum",
        "name": "Momentum",
        "description": "Complete 10 goals",
        "category": "Series",
        "rarity": "rare",
        "icon_key": "wave",
        "conditions": {"type": "goals_completed_total", "value": 10},
        "sort_order": 30,
    },
    {
        "key": "first_step",
        "name": "First Step",
        "description": "Complete your first step",
        "category": "Series",
        "rarity": "common",
        "icon_key": "footprint",
        "conditions": {"type": "steps_completed_total", "value": 1},
        "sort_order": 31,
    },
    {
        "key": "hundred_steps",
        "name": "A Hundred Steps",
        "description": "Complete 100 steps",
        "category": "Series",
        "rarity": "epic",
        "icon_key": "road",
        "conditions": {"type": "steps_completed_total", "value": 100},
        "sort_order": 32,
    },
    # Pact
    {
        "key": "the_sealed_pact",
        "name": "The Sealed Pact",
        "description": "Create your pact",
        "category": "Pact",
        "rarity": "common",
        "icon_key": "seal",
        "conditions": {"type": "has_pact"},
        "sort_order": 40,
    },
    {
        "key": "keeper_of_the_oath",
        "name": "Keeper of the Oath",
        "description": "Revise your pact",
        "category": "Pact",
        "rarity": "uncommon",
        "icon_key": "quill",
        "conditions": {"type": "has_edited_pact"},
        "sort_order": 41,
    },
    {
        "key": "ascension",
        "name": "Ascension",
        "description": "Reach your second rank",
        "category": "Pact",
        "rarity": "rare",
        "icon_key": "ladder",
        "conditions": {"type": "rank_up", "value": 1},
        "sort_order": 42,
    },
    # Time
    {
        "key": "cut_through_time",
        "name": "Cut Through Time",
        "description": "Complete an impossible goal in under 30 days",
        "category": "Time",
        "rarity": "mythic",
        "icon_key": "hourglass",
        "conditions": {"type": "completed_within_duration", "difficulty": "impossible", "max_hours": 720},
        "sort_order": 50,
    },
    {
        "key": "warping_path",
        "name": "Warping Path",
        "description": "Complete an extreme goal in under 72 hours",
        "category": "Time",
        "rarity": "epic",
        "icon_key": "vortex",
        "conditions": {"type": "completed_within_duration", "difficulty": "extreme", "max_hours": 72},
        "sort_order": 51,
    },
    {
        "key": "blood_of_resolve",
        "name": "Blood of Resolve",
        "description": "Complete an extreme goal in under 48 hours",
        "category": "Time",
        "rarity": "legendary",
        "icon_key": "droplet",
        "conditions": {"type": "completed_within_duration", "difficulty": "extreme", "max_hours": 48},
        "sort_order": 52,
    },
    # Hidden
    {
        "key": "echo_breaker",
        "name": "Echo Breaker",
        "description": "Complete a goal within 3 minutes of creating it",
        "category": "Hidden",
        "rarity": "rare",
        "icon_key": "echo",
        "is_hidden": True,
        "conditions": {"type": "completed_within_duration", "max_hours": 0.05},
        "sort_order": 60,
    },
    {
        "key": "midnight_oath",
        "name": "Midnight Oath",
        "description": "Log in at the stroke of midnight",
        "category": "Hidden",
        "rarity": "rare",
        "icon_key": "moon",
        "is_hidden": True,
        "conditions": {"type": "midnight_logins_count", "value": 1},
        "sort_order": 61,
    },
]


async def seed_achievements(db: AsyncSession) -> int:
    """Upsert every catalog entry by key. Returns number of definitions seeded."""
    result = await db.execute(select(AchievementDefinition))
    existing = {d.key: d for d in result.scalars()}

    seeded = 0
    for data in ACHIEVEMENT_SEED_DATA:
        definition = existing.get(data["key"])
        if definition is None:
            db.add(AchievementDefinition(**data))
        else:
            for field, value in data.items():
                setattr(definition, field, value)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d achievement definitions", seeded)
    return seeded
