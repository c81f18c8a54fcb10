"""Rank and XP computation from goal state.

XP is derived, never stored: completed/validated goals are worth their full
``potential_score``; in-progress goals earn damped partial credit for their
completed steps.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.errors import require_user
from pactnexus.progression.snapshot import GoalSnapshot, RankSnapshot, load_ranks, load_snapshot

# In-progress goals are worth at most half their potential until explicitly completed.
# Tunable policy value.
PARTIAL_CREDIT_FACTOR = 0.5


class RankXPData(BaseModel):
    ranks: list[RankSnapshot]
    current_rank: RankSnapshot | None = None
    next_rank: RankSnapshot | None = None
    current_xp: int = 0
    total_max_xp: int = 0
    xp_to_next_rank: int = 0
    progress_in_current_rank: float = 0.0
    global_progress: float = 0.0


def goal_xp(goal: GoalSnapshot) -> int:
    """XP earned by a single goal, never more than its potential_score."""
    potential = max(0, goal.potential_score)
    if goal.is_completed:
        return potential
    if goal.is_habit or goal.status != "in_progress":
        return 0

    total = goal.total_steps if goal.total_steps > 0 else 1
    completed = min(max(0, goal.validated_steps), total)
    return math.floor(potential * (completed / total) * PARTIAL_CREDIT_FACTOR)


def locate_rank(
    ranks: Sequence[RankSnapshot], current_xp: int
) -> tuple[RankSnapshot | None, RankSnapshot | None]:
    """Return (current, next) for a ladder sorted ascending by min_points."""
    current: RankSnapshot | None = None
    nxt: RankSnapshot | None = None
    for i, rank in enumerate(ranks):
        if current_xp < rank.min_points:
            break
        current = rank
        nxt = ranks[i + 1] if i + 1 < len(ranks) else None
    if current is None and ranks:
        # Below the first threshold: no current rank, the first one is next
        nxt = ranks[0]
    return current, nxt


def compute_rank_xp(ranks: Iterable[RankSnapshot], goals: Iterable[GoalSnapshot]) -> RankXPData:
    """Compute XP, rank placement and progress ratios. Pure; safe to call repeatedly."""
    ladder = sorted(ranks, key=lambda r: r.min_points)
    goals = list(goals)

    total_max_xp = sum(max(0, g.potential_score) for g in goals)
    current_xp = sum(goal_xp(g) for g in goals)
    current_xp = min(max(0, current_xp), total_max_xp)

    current_rank, next_rank = locate_rank(ladder, current_xp)

    if next_rank is not None:
        xp_to_next_rank = max(0, next_rank.min_points - current_xp)
    else:
        xp_to_next_rank = 0

    if current_rank is None:
        progress_in_current_rank = 0.0
    elif next_rank is None:
        progress_in_current_rank = 100.0
    else:
        band = next_rank.min_points - current_rank.min_points
        if band <= 0:
            progress_in_current_rank = 100.0
        else:
            progress_in_current_rank = min(100.0, (current_xp - current_rank.min_points) / band * 100)

    global_progress = current_xp / total_max_xp * 100 if total_max_xp > 0 else 0.0

    return RankXPData(
        ranks=ladder,
        current_rank=current_rank,
        next_rank=next_rank,
        current_xp=current_xp,
        total_max_xp=total_max_xp,
        xp_to_next_rank=xp_to_next_rank,
        progress_in_current_rank=progress_in_current_rank,
        global_progress=global_progress,
    )


async def compute_rank_xp_for_user(
    db: AsyncSession,
    user_id: str | None,
    goals: Iterable[GoalSnapshot] | None = None,
) -> RankXPData:
    """Load the user's ranks (and goals, unless given) and compute their XP."""
    user_id = require_user(user_id)
    if goals is None:
        snapshot = await load_snapshot(db, user_id)
        return compute_rank_xp(snapshot.ranks, snapshot.goals)
    return compute_rank_xp(await load_ranks(db, user_id), goals)
