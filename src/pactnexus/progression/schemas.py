"""Pydantic request/response models for progression endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from pactnexus.progression.events import EventKind
from pactnexus.progression.insights import PactInsight


# --- Events ---


class TrackEventRequest(BaseModel):
    kind: EventKind
    payload: dict[str, Any] = Field(default_factory=dict)


class UnlockedResponse(BaseModel):
    unlocked: list[str]


# --- Achievements ---


class AchievementResponse(BaseModel):
    key: str
    name: str
    description: str
    flavor_text: str | None = None
    category: str
    rarity: str
    icon_key: str
    is_hidden: bool = False
    unlocked: bool = False
    unlocked_at: datetime | None = None
    seen: bool = False


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]


class AchievementStatsResponse(BaseModel):
    total: int
    unlocked: int
    percentage: int
    by_rarity: dict[str, int]
    recent: list[AchievementResponse]


# --- Insights ---


class InsightsResponse(BaseModel):
    insights: list[PactInsight]
    system_status: str
    scan_phases: list[str]
    scan_phase_duration_ms: int


# --- Streak ---


class HealthStreakResponse(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    last_checkin_date: date | None = None
    total_checkins: int = 0
    checked_in_today: bool = False
