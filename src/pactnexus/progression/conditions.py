"""Achievement condition variants.

Catalog rows store a single ``{"type": ..., "value": ...}`` predicate. It is
parsed once into one of the frozen variants below; each variant knows how to
check itself against the tracking row and, for duration conditions, against
the goal completion being processed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from pactnexus.db.models import DIFFICULTIES

logger = logging.getLogger(__name__)

THRESHOLD_TYPES: frozenset[str] = frozenset(
    {
        "consecutive_login_days",
        "logins_at_same_hour_streak",
        "midnight_logins_count",
        "total_goals_created",
        "goals_completed_total",
        "steps_completed_total",
    }
    | {f"{d}_goals_completed" for d in DIFFICULTIES}
    | {f"{d}_goals_created" for d in DIFFICULTIES}
)

FLAG_TYPES: frozenset[str] = frozenset({"has_pact", "has_edited_pact"})


@dataclass(frozen=True)
class CompletionContext:
    """A goal completion being processed, for duration conditions."""

    difficulty: str
    created_at: datetime
    completed_at: datetime

    @property
    def hours(self) -> float:
        created = _as_utc(self.created_at)
        completed = _as_utc(self.completed_at)
        return (completed - created).total_seconds() / 3600


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _counter(tracking: object, field: str) -> int:
    return getattr(tracking, field, 0) or 0


@dataclass(frozen=True)
class CounterAtLeast:
    field: str
    value: int

    def is_satisfied(self, tracking: object, completion: CompletionContext | None = None) -> bool:
        return _counter(tracking, self.field) >= self.value


@dataclass(frozen=True)
class FlagSet:
    field: str

    def is_satisfied(self, tracking: object, completion: CompletionContext | None = None) -> bool:
        return bool(getattr(tracking, self.field, False))


@dataclass(frozen=True)
class AllDifficultiesCreated:
    """Every one of the six per-difficulty creation counters is non-zero."""

    def is_satisfied(self, tracking: object, completion: CompletionContext | None = None) -> bool:
        return all(_counter(tracking, f"{d}_goals_created") > 0 for d in DIFFICULTIES)


@dataclass(frozen=True)
class RankAbove:
    tier: int = 1

    def is_satisfied(self, tracking: object, completion: CompletionContext | None = None) -> bool:
        return (getattr(tracking, "current_rank_tier", None) or 1) > self.tier


@dataclass(frozen=True)
class CompletedWithinDuration:
    """A goal (optionally of one difficulty) completed in under ``max_hours``.

    Only a completion event can satisfy it. Zero or negative durations (clock
    skew) never count.
    """

    difficulty: str | None
    max_hours: float

    def is_satisfied(self, tracking: object, completion: CompletionContext | None = None) -> bool:
        if completion is None:
            return False
        if self.difficulty is not None and completion.difficulty != self.difficulty:
            return False
        hours = completion.hours
        return 0 < hours < self.max_hours


@dataclass(frozen=True)
class Unsatisfiable:
    type: str

    def is_satisfied(self, tracking: object, completion: CompletionContext | None = None) -> bool:
        return False


Condition = (
    CounterAtLeast | FlagSet | AllDifficultiesCreated | RankAbove | CompletedWithinDuration | Unsatisfiable
)


def _parse_threshold(raw: Mapping[str, Any]) -> Condition:
    return CounterAtLeast(field=raw["type"], value=int(raw["value"]))


def _parse_flag(raw: Mapping[str, Any]) -> Condition:
    return FlagSet(field=raw["type"])


def _parse_rank_up(raw: Mapping[str, Any]) -> Condition:
    return RankAbove(tier=int(raw.get("value") or 1))


def _parse_duration(raw: Mapping[str, Any]) -> Condition:
    difficulty = raw.get("difficulty")
    if difficulty is not None and difficulty not in DIFFICULTIES:
        return Unsatisfiable(type=raw["type"])
    return CompletedWithinDuration(difficulty=difficulty, max_hours=float(raw["max_hours"]))


_PARSERS: dict[str, Callable[[Mapping[str, Any]], Condition]] = {
    **{t: _parse_threshold for t in THRESHOLD_TYPES},
    **{t: _parse_flag for t in FLAG_TYPES},
    "all_difficulties_created": lambda _raw: AllDifficultiesCreated(),
    "rank_up": _parse_rank_up,
    "completed_within_duration": _parse_duration,
}


def parse_condition(raw: Mapping[str, Any] | None) -> Condition:
    """Turn a catalog predicate into a condition variant.

    Unknown types and malformed values become ``Unsatisfiable`` instead of raising.
    """
    if not raw or not isinstance(raw, Mapping):
        return Unsatisfiable(type="")
    condition_type = str(raw.get("type", ""))
    parser = _PARSERS.get(condition_type)
    if parser is None:
        return Unsatisfiable(type=condition_type)
    try:
        return parser(raw)
    except (KeyError, TypeError, ValueError):
        logger.warning("Malformed achievement condition: %r", dict(raw))
        return Unsatisfiable(type=condition_type)
