"""Health streak persistence and milestone notifications."""

import json
from datetime import date, timedelta

import pytest
from sqlalchemy import select

from pactnexus.db.models import Notification
from pactnexus.errors import NotAuthenticatedError
from pactnexus.progression.streak_service import get_streak, has_checked_in_today, record_check_in

DAY_ONE = date(2024, 1, 1)


async def _milestones(db, user_id):
    result = await db.execute(
        select(Notification).where(Notification.user_id == user_id, Notification.subtype == "streak_milestone")
    )
    return list(result.scalars())


class TestRecordCheckIn:
    @pytest.mark.asyncio
    async def test_no_streak_yet(self, db_session, user_id):
        assert await get_streak(db_session, user_id) is None
        assert await has_checked_in_today(db_session, user_id, DAY_ONE) is False

    @pytest.mark.asyncio
    async def test_first_check_in(self, db_session, user_id):
        streak = await record_check_in(db_session, None, user_id, DAY_ONE)
        assert streak.current_streak == 1
        assert streak.longest_streak == 1
        assert streak.total_checkins == 1
        assert await has_checked_in_today(db_session, user_id, DAY_ONE)
        assert not await has_checked_in_today(db_session, user_id, DAY_ONE + timedelta(days=1))

    @pytest.mark.asyncio
    async def test_repeat_same_day(self, db_session, user_id):
        await record_check_in(db_session, None, user_id, DAY_ONE)
        streak = await record_check_in(db_session, None, user_id, DAY_ONE)
        assert streak.current_streak == 1
        assert streak.total_checkins == 1

    @pytest.mark.asyncio
    async def test_consecutive_then_gap(self, db_session, user_id):
        for offset in range(3):
            await record_check_in(db_session, None, user_id, DAY_ONE + timedelta(days=offset))
        streak = await record_check_in(db_session, None, user_id, DAY_ONE + timedelta(days=10))

        assert streak.current_streak == 1
        assert streak.longest_streak == 3
        assert streak.total_checkins == 4

    @pytest.mark.asyncio
    async def test_requires_user(self, db_session):
        with pytest.raises(NotAuthenticatedError):
            await record_check_in(db_session, None, None, DAY_ONE)


class TestMilestones:
    @pytest.mark.asyncio
    async def test_seventh_day_celebrated_once(self, db_session, user_id, redis_mock):
        for offset in range(7):
            await record_check_in(db_session, redis_mock, user_id, DAY_ONE + timedelta(days=offset))
        # repeat on day 7 and continue to day 8
        await record_check_in(db_session, redis_mock, user_id, DAY_ONE + timedelta(days=6))
        streak = await record_check_in(db_session, redis_mock, user_id, DAY_ONE + timedelta(days=7))

        assert streak.current_streak == 8
        [notification] = await _milestones(db_session, user_id)
        assert notification.title == "7-day streak! You're on fire!"

        updates = [
            json.loads(c.args[1]) for c in redis_mock.publish.await_args_list if c.args[0] == "pubsub:streak_update"
        ]
        assert updates == [{"user_id": user_id, "event": "streak_milestone", "streak_length": 7}]

    @pytest.mark.asyncio
    async def test_no_milestone_before_seven(self, db_session, user_id, redis_mock):
        for offset in range(6):
            await record_check_in(db_session, redis_mock, user_id, DAY_ONE + timedelta(days=offset))
        assert await _milestones(db_session, user_id) == []
        redis_mock.publish.assert_not_called()
