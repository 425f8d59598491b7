"""Gamification API endpoints for XP, levels, achievements, leaderboards, and avatar mood."""

import logging
from datetime import date
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.api.deps import get_analytics_service, get_gamification_service
from hardlevel.core.config import settings
from hardlevel.core.database import get_db
from hardlevel.schemas.analytics import TimeRange
from hardlevel.schemas.gamification import (
    AchievementSummary,
    AvatarMoodState,
    GamificationStats,
    Leaderboard,
    XPCalculationResult,
    XPHistoryEntry,
)
from hardlevel.services.analytics import AnalyticsService
from hardlevel.services.avatar import AvatarService
from hardlevel.services.gamification import (
    AchievementService,
    GamificationService,
    LeaderboardService,
    achievement_summary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gamification", tags=["gamification"])


# =============================================================================
# REQUEST / RESPONSE SCHEMAS
# =============================================================================

class DailyXPRequest(BaseModel):
    """Award XP for a day. Without a percentage, the day's logged completion is used."""
    date: date
    completion_percentage: float | None = Field(default=None, ge=0, le=100)
    check_achievements: bool = True


class AchievementCheckResponse(BaseModel):
    """Achievements unlocked by a check."""
    achievements: list[AchievementSummary]
    xp_reward_total: int


class AvatarMoodRequest(BaseModel):
    completion_rate: float = Field(ge=0)
    streak_length: int = Field(ge=0)
    recent_achievements: int = Field(default=0, ge=0)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/{user_id}/daily-xp", response_model=XPCalculationResult)
async def award_daily_xp(
    user_id: str,
    request: DailyXPRequest,
    service: GamificationService = Depends(get_gamification_service),
    analytics: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
) -> XPCalculationResult:
    """Award XP for one day's completion, update the level, and check achievements."""
    completion = request.completion_percentage
    stats = None
    if completion is None or request.check_achievements:
        snapshot = await analytics.get_user_analytics(user_id, TimeRange.MONTH, end_date=request.date)
        if request.check_achievements:
            stats = snapshot.period_stats
        if completion is None:
            points = [p for p in snapshot.completion_trend.points if p.date == request.date]
            completion = points[0].value if points else 0

    result = await service.calculate_daily_xp(user_id, request.date, completion, stats)
    await db.commit()
    return result


@router.post("/{user_id}/achievements/check", response_model=AchievementCheckResponse)
async def check_achievements(
    user_id: str,
    time_range: TimeRange = Query(default=TimeRange.MONTH),
    end_date: date | None = Query(default=None),
    analytics: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Check for and unlock any newly earned achievements."""
    snapshot = await analytics.get_user_analytics(user_id, time_range, end_date=end_date)
    newly_unlocked = await AchievementService(db).check_achievements(user_id, snapshot.period_stats)
    await db.commit()

    return {
        "achievements": [achievement_summary(a) for a in newly_unlocked],
        "xp_reward_total": sum(a.xp_reward for a in newly_unlocked),
    }


@router.get("/leaderboard", response_model=Leaderboard)
async def get_leaderboard(
    type: Literal["global", "friends", "local", "weekly", "monthly"] = Query(default="global"),
    time_range: TimeRange = Query(default=TimeRange.ALL),
    limit: int | None = Query(default=None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> Leaderboard:
    """Get the top users by total XP."""
    service = LeaderboardService(db)
    return await service.get_leaderboard(
        type=type,
        time_range=time_range.value,
        limit=limit or settings.leaderboard_limit,
    )


@router.get("/{user_id}/stats", response_model=GamificationStats)
async def get_stats(
    user_id: str,
    service: GamificationService = Depends(get_gamification_service),
) -> GamificationStats:
    """Get a user's XP, level, rank, achievements and streaks."""
    if await service.get_user_level(user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User has no XP yet")
    return await service.get_gamification_stats(user_id)


@router.get("/{user_id}/xp-history", response_model=list[XPHistoryEntry])
async def get_xp_history(
    user_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    service: GamificationService = Depends(get_gamification_service),
) -> list[XPHistoryEntry]:
    """Get recent XP ledger entries for a user."""
    return await service.get_xp_history(user_id, limit)


@router.post("/{user_id}/avatar-mood", response_model=AvatarMoodState)
async def update_avatar_mood(
    user_id: str,
    request: AvatarMoodRequest,
    db: AsyncSession = Depends(get_db),
) -> AvatarMoodState:
    """Recompute and store the avatar's mood."""
    state = await AvatarService(db).update_avatar_mood(
        user_id,
        request.completion_rate,
        request.streak_length,
        request.recent_achievements,
    )
    await db.commit()
    return state


@router.get("/{user_id}/avatar-mood", response_model=AvatarMoodState)
async def get_avatar_mood(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> AvatarMoodState:
    """Get the avatar's last computed mood."""
    state = await AvatarService(db).get_avatar_mood(user_id)
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No avatar mood recorded")
    return state
