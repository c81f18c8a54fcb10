"""Progress snapshot reader.

Loads a user's pact, goals (with step counts) and rank ladder into frozen
pydantic models. Rank/XP and insight computations only ever see these
snapshots, never the ORM session.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pactnexus.db.models import COMPLETED_STATUSES, Goal, Pact, Rank
from pactnexus.errors import require_user


class GoalSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str | None = None
    difficulty: str = "medium"
    goal_type: str = "standard"
    status: str = "not_started"
    total_steps: int = 0
    validated_steps: int = 0
    potential_score: int = 0
    is_focus: bool = False
    created_at: datetime | None = None
    completion_date: datetime | None = None
    habit_duration_days: int | None = None
    habit_checks: tuple[bool, ...] = ()

    @property
    def is_habit(self) -> bool:
        return self.goal_type == "habit"

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES


class PactSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    mantra: str | None = None
    symbol: str | None = None
    project_start_date: date | None = None
    project_end_date: date | None = None


class RankSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    min_points: int


class ProgressSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    pact: PactSnapshot | None = None
    goals: tuple[GoalSnapshot, ...] = ()
    ranks: tuple[RankSnapshot, ...] = ()


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _goal_sort_key(goal: Goal) -> datetime:
    return _as_utc(goal.created_at) or datetime.min.replace(tzinfo=timezone.utc)


def goal_to_snapshot(goal: Goal) -> GoalSnapshot:
    """Normalize a Goal row. Step rows, when present, win over the denormalized counts."""
    if goal.steps:
        total_steps = len(goal.steps)
        validated_steps = sum(1 for s in goal.steps if s.status == "completed")
    else:
        total_steps = goal.total_steps or 0
        validated_steps = goal.validated_steps or 0

    return GoalSnapshot(
        id=goal.id,
        name=goal.name,
        category=goal.category,
        difficulty=goal.difficulty,
        goal_type=goal.goal_type,
        status=goal.status,
        total_steps=max(0, total_steps),
        validated_steps=max(0, validated_steps),
        potential_score=max(0, goal.potential_score or 0),
        is_focus=bool(goal.is_focus),
        created_at=_as_utc(goal.created_at),
        completion_date=_as_utc(goal.completion_date),
        habit_duration_days=goal.habit_duration_days,
        habit_checks=tuple(bool(c) for c in (goal.habit_checks or [])),
    )


async def load_ranks(db: AsyncSession, user_id: str) -> tuple[RankSnapshot, ...]:
    """Load the user's rank ladder, ascending by min_points."""
    result = await db.execute(
        select(Rank).where(Rank.user_id == user_id).order_by(Rank.min_points.asc())
    )
    return tuple(
        RankSnapshot(id=r.id, name=r.name, min_points=r.min_points)
        for r in result.scalars()
    )


async def load_goals(db: AsyncSession, pact_id: str) -> tuple[GoalSnapshot, ...]:
    """Load a pact's goals with their steps, oldest first."""
    result = await db.execute(
        select(Goal)
        .where(Goal.pact_id == pact_id)
        .options(selectinload(Goal.steps))
        .execution_options(populate_existing=True)
    )
    return tuple(goal_to_snapshot(g) for g in sorted(result.scalars(), key=_goal_sort_key))


async def load_snapshot(db: AsyncSession, user_id: str | None) -> ProgressSnapshot:
    """Read the user's most recent pact, its goals and the rank ladder."""
    user_id = require_user(user_id)

    result = await db.execute(
        select(Pact)
        .where(Pact.user_id == user_id)
        .order_by(Pact.created_at.desc())
        .limit(1)
    )
    pact = result.scalar_one_or_none()

    pact_snapshot: PactSnapshot | None = None
    goals: tuple[GoalSnapshot, ...] = ()
    if pact is not None:
        pact_snapshot = PactSnapshot(
            id=pact.id,
            name=pact.name,
            mantra=pact.mantra,
            symbol=pact.symbol,
            project_start_date=pact.project_start_date,
            project_end_date=pact.project_end_date,
        )
        goals = await load_goals(db, pact.id)

    return ProgressSnapshot(
        user_id=user_id,
        pact=pact_snapshot,
        goals=goals,
        ranks=await load_ranks(db, user_id),
    )
