"""Pact analysis: prioritized natural-language insights from pact and goal state.

Each rule looks at the same snapshot and fires zero or more insights. The
merged list is stable-sorted by level (critical, warning, info, success) and
cut to ``MAX_INSIGHTS``. Rules never do I/O; callers pass the snapshot in.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from datetime import date, datetime, timezone
from typing import Literal

from pydantic import BaseModel

from pactnexus.progression.snapshot import GoalSnapshot, PactSnapshot

InsightLevel = Literal["critical", "warning", "info", "success"]
SystemStatus = Literal["optimal", "attention", "critical"]

LEVEL_PRIORITY: dict[str, int] = {"critical": 0, "warning": 1, "info": 2, "success": 3}

MAX_INSIGHTS = 3

# Tunable policy values
STAGNANT_DAYS = 10
STAGNANT_STEP_RATIO = 0.1
HABIT_DANGER_RATIO = 0.4
HABIT_MIN_CHECKS = 3
DEADLINE_CRITICAL_PCT = 85
DEADLINE_WARNING_PCT = 50
MOMENTUM_COMPLETED_GOALS = 3
FOCUS_SUCCESS_PCT = 70

SCAN_PHASES: tuple[str, ...] = (
    "Initializing Nexus core…",
    "Scanning Pact parameters…",
    "Evaluating focus targets…",
    "Analyzing goal trajectories…",
    "Cross-referencing habit data…",
    "Compiling strategic insights…",
    "Analysis complete.",
)

SCAN_PHASE_DURATION_MS = 420


class PactInsight(BaseModel):
    id: str
    level: InsightLevel
    title: str
    body: str
    goal_id: str | None = None
    goal_name: str | None = None
    action_label: str | None = None
    action_route: str | None = None


class _Context:
    """Goal partitions shared by every rule."""

    def __init__(self, pact: PactSnapshot, goals: Sequence[GoalSnapshot], today: date) -> None:
        self.pact = pact
        self.goals = list(goals)
        self.today = today
        self.non_habit = [g for g in self.goals if not g.is_habit]
        self.habits = [g for g in self.goals if g.is_habit]
        self.focus = [g for g in self.non_habit if g.is_focus]
        self.open_focus = [g for g in self.focus if not g.is_completed]
        self.in_progress = [g for g in self.non_habit if g.status == "in_progress"]
        self.completed = [g for g in self.non_habit if g.is_completed]

    def age_days(self, goal: GoalSnapshot) -> int:
        if goal.created_at is None:
            return 0
        return max(0, (self.today - goal.created_at.date()).days)


def _round(value: float) -> int:
    """Round half up, as percentages are displayed."""
    return math.floor(value + 0.5)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def elapsed_pct(start: date | None, end: date | None, today: date) -> int | None:
    """Percentage of the pact timeline elapsed, clamped to 0-100. None without both dates."""
    if start is None or end is None:
        return None
    total = (end - start).days
    if total <= 0:
        return 100
    elapsed = (today - start).days
    return min(100, max(0, _round(elapsed / total * 100)))


# --- rules -------------------------------------------------------------------


def _deadline_rule(ctx: _Context) -> list[PactInsight]:
    pct = elapsed_pct(ctx.pact.project_start_date, ctx.pact.project_end_date, ctx.today)
    remaining = len(ctx.open_focus)
    if pct is None or remaining == 0:
        return []

    if pct >= DEADLINE_CRITICAL_PCT:
        verb = "remain" if remaining > 1 else "remains"
        return [PactInsight(
            id="pact-deadline-critical",
            level="critical",
            title="Pact deadline imminent",
            body=f"{pct}% of timeline elapsed. {_plural(remaining, 'critical Focus Goal')} {verb}.",
            action_label="View goals",
            action_route="/goals",
        )]
    if pct >= DEADLINE_WARNING_PCT:
        return [PactInsight(
            id="pact-deadline-warning",
            level="warning",
            title="Pact timeline advancing",
            body=f"{pct}% elapsed, {_plural(remaining, 'Focus Goal')} still open. Consider reprioritizing.",
        )]
    return []


def is_stagnant(goal: GoalSnapshot, age_days: int) -> bool:
    """Old enough and either untouched or barely moving."""
    if goal.is_habit or goal.is_completed or age_days < STAGNANT_DAYS:
        return False
    untouched = goal.validated_steps == 0 and goal.status == "not_started"
    total = goal.total_steps if goal.total_steps > 0 else 1
    barely_moving = goal.status == "in_progress" and goal.validated_steps < total * STAGNANT_STEP_RATIO
    return untouched or barely_moving


def _stagnation_rule(ctx: _Context) -> list[PactInsight]:
    stagnant = [g for g in ctx.non_habit if is_stagnant(g, ctx.age_days(g))]
    if not stagnant:
        return []

    # max() keeps the first goal among equally old ones
    worst = max(stagnant, key=ctx.age_days)
    days = ctx.age_days(worst)
    suffix = f"(+{len(stagnant) - 1} more)" if len(stagnant) > 1 else "Action required."
    return [PactInsight(
        id=f"stagnant-{worst.id}",
        level="warning",
        title="Stagnation detected",
        body=f'"{worst.name}" inactive for {_plural(days, "day")}. {suffix}',
        goal_id=worst.id,
        goal_name=worst.name,
        action_label="Tackle now",
        action_route=f"/goals/{worst.id}",
    )]


def _habit_rule(ctx: _Context) -> list[PactInsight]:
    insights = []
    for habit in ctx.habits:
        total = len(habit.habit_checks)
        if total < HABIT_MIN_CHECKS:
            continue
        done = sum(1 for c in habit.habit_checks if c)
        ratio = done / total
        if ratio < HABIT_DANGER_RATIO:
            insights.append(PactInsight(
                id=f"habit-danger-{habit.id}",
                level="warning",
                title="Habit streak in danger",
                body=(
                    f'"{habit.name}": only {_round(ratio * 100)}% completion ({done}/{total}). '
                    "Rebuild momentum now."
                ),
                goal_id=habit.id,
                goal_name=habit.name,
                action_label="Check in",
                action_route=f"/goals/{habit.id}",
            ))
    return insights


def _momentum_rule(ctx: _Context) -> list[PactInsight]:
    completed = len(ctx.completed)
    if completed >= MOMENTUM_COMPLETED_GOALS:
        return [PactInsight(
            id="momentum-high",
            level="success",
            title="Strong momentum",
            body=f"{_plural(completed, 'goal')} completed. Operational efficiency is high. Keep pushing.",
        )]
    if completed > 0 and ctx.in_progress:
        return [PactInsight(
            id="momentum-building",
            level="info",
            title="Progress tracked",
            body=f"{completed} completed, {len(ctx.in_progress)} in progress. Systems nominal.",
        )]
    return []


def _focus_rule(ctx: _Context) -> list[PactInsight]:
    active = ctx.open_focus
    if not active:
        return []
    total_steps = sum(g.total_steps for g in active)
    done_steps = sum(g.validated_steps for g in active)
    pct = _round(done_steps / total_steps * 100) if total_steps > 0 else 0
    return [PactInsight(
        id="focus-progress",
        level="success" if pct >= FOCUS_SUCCESS_PCT else "info",
        title="Focus targets",
        body=f"{_plural(len(active), 'active focus goal')}: {done_steps}/{total_steps} steps ({pct}%).",
        action_label="View focus",
        action_route="/goals",
    )]


def _empty_state_rule(ctx: _Context) -> list[PactInsight]:
    if ctx.goals:
        return []
    return [PactInsight(
        id="empty-state",
        level="info",
        title="Awaiting directives",
        body="No goals detected. Initialize your first objective to activate the Nexus.",
        action_label="Create goal",
        action_route="/goals/new",
    )]


RULES: tuple[Callable[[_Context], list[PactInsight]], ...] = (
    _deadline_rule,
    _stagnation_rule,
    _habit_rule,
    _momentum_rule,
    _focus_rule,
    _empty_state_rule,
)


def generate_insights(
    pact: PactSnapshot | None,
    goals: Sequence[GoalSnapshot],
    now: datetime | date | None = None,
) -> list[PactInsight]:
    """Run every rule, order by level (stable) and keep the first ``MAX_INSIGHTS``."""
    if pact is None:
        return []
    if now is None:
        today = datetime.now(timezone.utc).date()
    elif isinstance(now, datetime):
        today = now.date()
    else:
        today = now

    ctx = _Context(pact, goals, today)
    insights: list[PactInsight] = []
    for rule in RULES:
        insights.extend(rule(ctx))

    insights.sort(key=lambda i: LEVEL_PRIORITY[i.level])
    return insights[:MAX_INSIGHTS]


def system_status(insights: Sequence[PactInsight]) -> SystemStatus:
    """Overall status light for the analysis panel."""
    if any(i.level == "critical" for i in insights):
        return "critical"
    if any(i.level == "warning" for i in insights):
        return "attention"
    return "optimal"
