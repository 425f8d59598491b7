"""Tracking API endpoints for feeding day logs, weigh-ins and fasts."""

import logging
from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.api.deps import get_health_stats_service, get_tracking_repository
from hardlevel.core.database import get_db
from hardlevel.schemas.analytics import TaskCompletionData
from hardlevel.services.analytics import transform_to_completion_data
from hardlevel.services.health_stats import HealthStatsService
from hardlevel.services.tracking import TrackingRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tracking", tags=["tracking"])


# =============================================================================
# REQUEST / RESPONSE SCHEMAS
# =============================================================================

class DayLogRequest(BaseModel):
    """Task flags for one day. Missing tasks count as not done."""
    tasks: dict[str, bool] = Field(default_factory=dict)


class DayLogResponse(BaseModel):
    user_id: str
    date: date
    tasks: dict[str, bool]
    completion: TaskCompletionData


class WeightRequest(BaseModel):
    date: date
    weight: float = Field(gt=0)
    unit: Literal["kg", "lbs"] = "kg"


class FastRequest(BaseModel):
    date: date
    start_time: datetime
    end_time: datetime | None = None
    target_hours: float = Field(gt=0, le=72)
    pattern: str | None = None


class EntryCreatedResponse(BaseModel):
    id: int
    status: str = "created"


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.put("/{user_id}/logs/{day}", response_model=DayLogResponse)
async def upsert_day_log(
    user_id: str,
    day: date,
    request: DayLogRequest,
    repository: TrackingRepository = Depends(get_tracking_repository),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Create or replace the checklist for a day."""
    log = await repository.upsert_day_log(user_id, day, request.tasks)
    await db.commit()

    return {
        "user_id": user_id,
        "date": day,
        "tasks": log.tasks,
        "completion": transform_to_completion_data([log])[0],
    }


@router.post("/{user_id}/weight", response_model=EntryCreatedResponse, status_code=201)
async def log_weight(
    user_id: str,
    request: WeightRequest,
    service: HealthStatsService = Depends(get_health_stats_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Record a weigh-in."""
    entry = await service.log_weight(user_id, request.date, request.weight, request.unit)
    await db.commit()
    return {"id": entry.id}


@router.post("/{user_id}/fasting", response_model=EntryCreatedResponse, status_code=201)
async def log_fast(
    user_id: str,
    request: FastRequest,
    service: HealthStatsService = Depends(get_health_stats_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Record a fast; leave end_time empty for one still in progress."""
    entry = await service.log_fast(
        user_id,
        request.date,
        request.start_time,
        request.target_hours,
        end_time=request.end_time,
        pattern=request.pattern,
    )
    await db.commit()
    return {"id": entry.id}
