"""Achievement rule engine: unlocking, idempotency, races and notifications."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from pactnexus.db.models import AchievementDefinition, Notification, UserAchievement
from pactnexus.progression import achievement_service, rule_engine
from pactnexus.progression.achievement_service import (
    get_achievement_stats,
    get_user_achievements,
    mark_achievements_seen,
    unlock_achievement,
)
from pactnexus.progression.conditions import CompletionContext
from pactnexus.progression.counters import increment_counter, set_flag
from pactnexus.progression.rule_engine import AchievementRuleEngine


async def _unlock_rows(db, user_id):
    return await db.scalar(
        select(func.count()).select_from(UserAchievement).where(UserAchievement.user_id == user_id)
    )


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_nothing_to_unlock(self, db_session, user_id):
        assert await AchievementRuleEngine(db_session, None).evaluate(user_id) == []

    @pytest.mark.asyncio
    async def test_unlocks_satisfied_conditions(self, db_session, user_id):
        await increment_counter(db_session, user_id, "total_goals_created")
        await set_flag(db_session, user_id, "has_pact", True)

        unlocked = await AchievementRuleEngine(db_session, None).evaluate(user_id)
        assert unlocked == ["first_directive", "the_sealed_pact"]

    @pytest.mark.asyncio
    async def test_second_evaluation_is_a_no_op(self, db_session, user_id):
        await increment_counter(db_session, user_id, "total_goals_created")
        engine = AchievementRuleEngine(db_session, None)

        assert await engine.evaluate(user_id) == ["first_directive"]
        assert await engine.evaluate(user_id) == []
        assert await _unlock_rows(db_session, user_id) == 1

    @pytest.mark.asyncio
    async def test_duration_needs_completion_context(self, db_session, user_id):
        engine = AchievementRuleEngine(db_session, None)
        assert await engine.evaluate(user_id) == []

        start = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        completion = CompletionContext("extreme", start, start + timedelta(hours=50))
        assert await engine.evaluate(user_id, completion=completion) == ["warping_path"]

    @pytest.mark.asyncio
    async def test_unknown_condition_type_is_skipped(self, db_session, user_id):
        db_session.add_all([
            AchievementDefinition(
                key="savings_streak", name="Savings Streak", description="d", category="Finance",
                rarity="epic", conditions={"type": "months_without_negative_balance", "value": 0},
                sort_order=100,
            ),
            AchievementDefinition(
                key="welcome", name="Welcome", description="d", category="Connection",
                rarity="common", conditions={"type": "total_goals_created", "value": 0},
                sort_order=101,
            ),
        ])
        await db_session.commit()

        assert await AchievementRuleEngine(db_session, None).evaluate(user_id) == ["welcome"]


class TestUnlockRace:
    @pytest.mark.asyncio
    async def test_losing_the_insert_race_is_silent(self, db_session, user_id, redis_mock, monkeypatch):
        await increment_counter(db_session, user_id, "total_goals_created")
        # Another client already inserted the unlock row
        db_session.add(UserAchievement(user_id=user_id, achievement_key="first_directive"))
        await db_session.commit()

        async def _never(*_args, **_kwargs):
            return False

        async def _nothing_unlocked(*_args, **_kwargs):
            return set()

        monkeypatch.setattr(achievement_service, "has_achievement", _never)
        monkeypatch.setattr(rule_engine, "get_unlocked_keys", _nothing_unlocked)

        assert await AchievementRuleEngine(db_session, redis_mock).evaluate(user_id) == []
        assert await _unlock_rows(db_session, user_id) == 1
        redis_mock.publish.assert_not_called()

    @pytest.mark.asyncio
    async def test_unlock_twice(self, db_session, user_id):
        assert await unlock_achievement(db_session, None, user_id, "first_step") is True
        assert await unlock_achievement(db_session, None, user_id, "first_step") is False


class TestNotifications:
    @pytest.mark.asyncio
    async def test_unlock_emits_toast(self, db_session, user_id, redis_mock):
        await increment_counter(db_session, user_id, "total_goals_created")
        await AchievementRuleEngine(db_session, redis_mock).evaluate(user_id)

        notification = await db_session.scalar(select(Notification).where(Notification.user_id == user_id))
        assert notification.title == "Achievement Unlocked!"
        assert notification.description == "First Directive (Common)"
        assert notification.subtype == "achievement_unlocked"

        channels = [c.args[0] for c in redis_mock.publish.await_args_list]
        assert channels == [f"ws:user:{user_id}", "pubsub:achievement_unlocked"]
        broadcast = json.loads(redis_mock.publish.await_args_list[1].args[1])
        assert broadcast["achievement_key"] == "first_directive"

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_undo_unlock(self, db_session, user_id, redis_mock):
        redis_mock.publish.side_effect = ConnectionError("redis down")
        await increment_counter(db_session, user_id, "total_goals_created")

        assert await AchievementRuleEngine(db_session, redis_mock).evaluate(user_id) == ["first_directive"]
        assert await _unlock_rows(db_session, user_id) == 1


class TestQueries:
    @pytest.mark.asyncio
    async def test_user_achievements_and_stats(self, db_session, user_id):
        await unlock_achievement(db_session, None, user_id, "first_step")
        await unlock_achievement(db_session, None, user_id, "the_sealed_pact")

        items = await get_user_achievements(db_session, user_id)
        total = await db_session.scalar(select(func.count()).select_from(AchievementDefinition))
        assert len(items) == total
        assert {i["key"] for i in items if i["unlocked"]} == {"first_step", "the_sealed_pact"}

        stats = await get_achievement_stats(db_session, user_id)
        assert stats["total"] == total
        assert stats["unlocked"] == 2
        assert stats["percentage"] == round(2 / total * 100)
        assert sum(stats["by_rarity"].values()) == 2
        assert len(stats["recent"]) == 2

    @pytest.mark.asyncio
    async def test_mark_seen(self, db_session, user_id):
        await unlock_achievement(db_session, None, user_id, "first_step")
        await unlock_achievement(db_session, None, "someone-else", "first_step")

        items = await get_user_achievements(db_session, user_id)
        assert next(i for i in items if i["key"] == "first_step")["seen"] is False
        assert not any(i["seen"] for i in items if not i["unlocked"])

        assert await mark_achievements_seen(db_session, user_id) == 1
        assert await mark_achievements_seen(db_session, user_id) == 0

        items = await get_user_achievements(db_session, user_id)
        assert next(i for i in items if i["key"] == "first_step")["seen"] is True
        others = await get_user_achievements(db_session, "someone-else")
        assert next(i for i in others if i["key"] == "first_step")["seen"] is False
