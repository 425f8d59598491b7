"""Weight and fasting stats endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from hardlevel.api.deps import get_health_stats_service
from hardlevel.schemas.health import FastingPattern, FastingStats, WeightStats
from hardlevel.services.health_stats import HealthStatsService, parse_fasting_pattern

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/fasting-patterns/{pattern}", response_model=FastingPattern)
async def describe_fasting_pattern(pattern: str) -> FastingPattern:
    """Describe a pattern such as 16:8."""
    return parse_fasting_pattern(pattern)


@router.get("/{user_id}/weight-stats", response_model=WeightStats)
async def get_weight_stats(
    user_id: str,
    days: int = Query(default=30, ge=1, le=365),
    service: HealthStatsService = Depends(get_health_stats_service),
) -> WeightStats:
    """Current weight, change and moving averages over the last `days` days."""
    stats = await service.get_weight_stats(user_id, days)
    if stats is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No weight entries in range")
    return stats


@router.get("/{user_id}/fasting-stats", response_model=FastingStats)
async def get_fasting_stats(
    user_id: str,
    days: int = Query(default=30, ge=1, le=365),
    service: HealthStatsService = Depends(get_health_stats_service),
) -> FastingStats:
    """Fasting streaks, success rate and average hours over the last `days` days."""
    return await service.get_fasting_stats(user_id, days)
