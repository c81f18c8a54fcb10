"""ORM models for pacts, goals, ranks, achievements, tracking counters and streaks."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pactnexus.db.base import Base, JSONType

DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard", "extreme", "impossible", "custom")
GOAL_TYPES: tuple[str, ...] = ("standard", "habit", "super")
GOAL_STATUSES: tuple[str, ...] = ("not_started", "in_progress", "fully_completed", "validated", "paused")
COMPLETED_STATUSES: frozenset[str] = frozenset({"fully_completed", "validated"})


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Pacts, goals, steps
# ---------------------------------------------------------------------------


class Pact(Base):
    """The user's top-level container: identity plus project timeline."""

    __tablename__ = "pacts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    mantra: Mapped[str | None] = mapped_column(Text, nullable=True)
    symbol: Mapped[str | None] = mapped_column(String(32), nullable=True)
    project_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    project_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    goals: Mapped[list[Goal]] = relationship("Goal", back_populates="pact", lazy="raise")


class Goal(Base):
    """A goal inside a pact. total_steps/validated_steps are denormalized counts."""

    __tablename__ = "goals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    pact_id: Mapped[str] = mapped_column(String(36), ForeignKey("pacts.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="medium")
    goal_type: Mapped[str] = mapped_column(String(16), nullable=False, default="standard")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="not_started")
    total_steps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    validated_steps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    potential_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_focus: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    habit_duration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    habit_checks: Mapped[list[bool] | None] = mapped_column(JSONType, nullable=True)

    pact: Mapped[Pact] = relationship("Pact", back_populates="goals")
    steps: Mapped[list[Step]] = relationship("Step", back_populates="goal", lazy="selectin", order_by="Step.order")


class Step(Base):
    """A discrete step of a goal; `order` is unique per goal."""

    __tablename__ = "steps"
    __table_args__ = (UniqueConstraint("goal_id", "order", name="steps_goal_id_order_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    goal_id: Mapped[str] = mapped_column(String(36), ForeignKey("goals.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    order: Mapped[int] = mapped_column("order", Integer, nullable=False)
    completion_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    goal: Mapped[Goal] = relationship("Goal", back_populates="steps")


# ---------------------------------------------------------------------------
# Ranks
# ---------------------------------------------------------------------------


class Rank(Base):
    """A user-defined XP threshold tier. min_points is unique per user."""

    __tablename__ = "ranks"
    __table_args__ = (UniqueConstraint("user_id", "min_points", name="ranks_user_id_min_points_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    min_points: Mapped[int] = mapped_column(Integer, nullable=False)
    quote: Mapped[str | None] = mapped_column(Text, nullable=True)


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class AchievementDefinition(Base):
    """Catalog entry. `conditions` holds a single {type, value, ...} predicate."""

    __tablename__ = "achievement_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    flavor_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    icon_key: Mapped[str] = mapped_column(String(64), nullable=False, default="trophy")
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    conditions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserAchievement(Base):
    """Unlocked achievements. UNIQUE(user_id, achievement_key) makes unlocking idempotent."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_key", name="user_achievements_user_id_key_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_key: Mapped[str] = mapped_column(String(64), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    seen: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class AchievementTracking(Base):
    """Raw behavioral counters, single row per user."""

    __tablename__ = "achievement_tracking"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Connection
    consecutive_login_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    logins_at_same_hour_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    usual_login_hour: Mapped[int | None] = mapped_column(Integer, nullable=True)
    midnight_logins_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Goal creation
    total_goals_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    easy_goals_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    medium_goals_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hard_goals_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extreme_goals_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impossible_goals_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    custom_goals_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Goal completion
    goals_completed_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    easy_goals_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    medium_goals_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hard_goals_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extreme_goals_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    impossible_goals_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    custom_goals_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    steps_completed_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Pact / rank
    has_pact: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_edited_pact: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    current_rank_tier: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Streaks & notifications
# ---------------------------------------------------------------------------


class HealthStreak(Base):
    """Daily health check-in streak, single row per user."""

    __tablename__ = "health_streaks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_checkin_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_checkins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Notification(Base):
    """In-app notification feed (achievement toasts, streak milestones)."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    subtype: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_url: Mapped[str | None] = mapped_column(String(256), nullable=True)
    action_label: Mapped[str | None] = mapped_column(String(64), nullable=True)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
