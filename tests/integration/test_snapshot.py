"""Snapshot loading and rank/XP for a stored pact."""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import InvalidRequestError

from pactnexus.db.models import Goal, Pact, Step
from pactnexus.errors import NotAuthenticatedError
from pactnexus.progression.rank_xp import compute_rank_xp_for_user
from pactnexus.progression.snapshot import load_snapshot


class TestLoadSnapshot:
    @pytest.mark.asyncio
    async def test_no_pact(self, db_session, user_id):
        snapshot = await load_snapshot(db_session, user_id)
        assert snapshot.pact is None
        assert snapshot.goals == ()
        assert snapshot.ranks == ()

    @pytest.mark.asyncio
    async def test_requires_user(self, db_session):
        with pytest.raises(NotAuthenticatedError):
            await load_snapshot(db_session, None)

    @pytest.mark.asyncio
    async def test_pact_goals_and_ranks(self, db_session, user_id, pact_with_goals):
        snapshot = await load_snapshot(db_session, user_id)

        assert snapshot.pact.id == pact_with_goals.id
        assert {g.name for g in snapshot.goals} == {"Run a marathon", "Learn Rust", "Write a novel"}
        assert [r.min_points for r in snapshot.ranks] == [0, 150, 300]
        rust = next(g for g in snapshot.goals if g.name == "Learn Rust")
        assert rust.is_focus
        assert rust.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_goals_are_never_lazy_loaded_from_a_pact(self, db_session, user_id, pact_with_goals):
        pact = await db_session.scalar(
            select(Pact).where(Pact.id == pact_with_goals.id).execution_options(populate_existing=True)
        )
        with pytest.raises(InvalidRequestError):
            pact.goals  # noqa: B018

    @pytest.mark.asyncio
    async def test_step_rows_override_counts(self, db_session, user_id, pact_with_goals):
        goal = Goal(pact_id=pact_with_goals.id, name="Read", total_steps=99, validated_steps=50)
        db_session.add(goal)
        await db_session.flush()
        db_session.add_all([
            Step(goal_id=goal.id, title="one", status="completed", order=1),
            Step(goal_id=goal.id, title="two", status="pending", order=2),
        ])
        await db_session.commit()

        snapshot = await load_snapshot(db_session, user_id)
        read = next(g for g in snapshot.goals if g.name == "Read")
        assert (read.total_steps, read.validated_steps) == (2, 1)

    @pytest.mark.asyncio
    async def test_latest_pact_wins(self, db_session, user_id, pact_with_goals):
        newer = Pact(
            user_id=user_id,
            name="Second wind",
            project_start_date=date(2026, 4, 1),
            created_at=datetime(2030, 1, 1, tzinfo=timezone.utc),
        )
        db_session.add(newer)
        await db_session.commit()

        snapshot = await load_snapshot(db_session, user_id)
        assert snapshot.pact.name == "Second wind"
        assert snapshot.goals == ()

    @pytest.mark.asyncio
    async def test_other_users_are_invisible(self, db_session, pact_with_goals):
        snapshot = await load_snapshot(db_session, "someone-else")
        assert snapshot.pact is None
        assert snapshot.ranks == ()


class TestRankXPForUser:
    @pytest.mark.asyncio
    async def test_stored_pact(self, db_session, user_id, pact_with_goals):
        data = await compute_rank_xp_for_user(db_session, user_id)
        # 100 completed + floor(200 * 3/4 * 0.5)
        assert data.current_xp == 175
        assert data.total_max_xp == 350
        assert data.current_rank.name == "Adept"
        assert data.next_rank.name == "Master"
