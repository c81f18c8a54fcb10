"""Progression API endpoints: events, achievements, rank/XP, insights, streaks."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pactnexus.auth.dependencies import get_current_user_id
from pactnexus.database import get_session
from pactnexus.dependencies import get_redis_dep
from pactnexus.progression.achievement_service import (
    get_achievement_stats,
    get_user_achievements,
    mark_achievements_seen,
)
from pactnexus.progression.events import record_event
from pactnexus.progression.insights import SCAN_PHASE_DURATION_MS, SCAN_PHASES, generate_insights, system_status
from pactnexus.progression.rank_xp import RankXPData, compute_rank_xp
from pactnexus.progression.rule_engine import AchievementRuleEngine
from pactnexus.progression.schemas import (
    AchievementListResponse,
    AchievementResponse,
    AchievementStatsResponse,
    HealthStreakResponse,
    InsightsResponse,
    TrackEventRequest,
    UnlockedResponse,
)
from pactnexus.progression.snapshot import load_snapshot
from pactnexus.progression.streak_service import get_streak, has_checked_in_today, record_check_in

router = APIRouter(prefix="/api/v1", tags=["Progression"])


# ── Tracking ──


@router.post("/events", response_model=UnlockedResponse)
async def track(
    body: TrackEventRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Record a tracking event and return newly unlocked achievements."""
    unlocked = await record_event(db, redis, user_id, body.kind, body.payload)
    return UnlockedResponse(unlocked=unlocked)


@router.post("/achievements/evaluate", response_model=UnlockedResponse)
async def evaluate_achievements(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Re-evaluate the full catalog against the current counters."""
    engine = AchievementRuleEngine(db, redis)
    return UnlockedResponse(unlocked=await engine.evaluate(user_id))


# ── Achievements ──


@router.get("/achievements", response_model=AchievementListResponse)
async def list_achievements(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Catalog with the caller's unlock state."""
    items = await get_user_achievements(db, user_id)
    return AchievementListResponse(achievements=[AchievementResponse(**a) for a in items])


@router.post("/achievements/seen", status_code=200)
async def mark_seen(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Acknowledge every unlock shown to the user."""
    count = await mark_achievements_seen(db, user_id)
    return {"detail": f"Marked {count} achievements as seen"}


@router.get("/achievements/stats", response_model=AchievementStatsResponse)
async def achievement_stats(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    stats = await get_achievement_stats(db, user_id)
    return AchievementStatsResponse(
        total=stats["total"],
        unlocked=stats["unlocked"],
        percentage=stats["percentage"],
        by_rarity=stats["by_rarity"],
        recent=[AchievementResponse(**a) for a in stats["recent"]],
    )


# ── Rank / XP / insights ──


@router.get("/rank-xp", response_model=RankXPData)
async def rank_xp(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Current XP, rank placement and progress ratios."""
    snapshot = await load_snapshot(db, user_id)
    return compute_rank_xp(snapshot.ranks, snapshot.goals)


@router.get("/insights", response_model=InsightsResponse)
async def insights(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Pact analysis: up to three prioritized insights."""
    snapshot = await load_snapshot(db, user_id)
    items = generate_insights(snapshot.pact, snapshot.goals)
    return InsightsResponse(
        insights=items,
        system_status=system_status(items),
        scan_phases=list(SCAN_PHASES),
        scan_phase_duration_ms=SCAN_PHASE_DURATION_MS,
    )


# ── Health streak ──


@router.post("/health/check-in", response_model=HealthStreakResponse)
async def check_in(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Record today's check-in. Repeat check-ins on the same day change nothing."""
    streak = await record_check_in(db, redis, user_id)
    return HealthStreakResponse(
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_checkin_date=streak.last_checkin_date,
        total_checkins=streak.total_checkins,
        checked_in_today=True,
    )


@router.get("/health/streak", response_model=HealthStreakResponse)
async def get_health_streak(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    streak = await get_streak(db, user_id)
    if streak is None:
        return HealthStreakResponse()
    return HealthStreakResponse(
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_checkin_date=streak.last_checkin_date,
        total_checkins=streak.total_checkins,
        checked_in_today=await has_checked_in_today(db, user_id),
    )
