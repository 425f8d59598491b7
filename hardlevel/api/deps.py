from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.core.config import settings
from hardlevel.core.database import get_db
from hardlevel.services.analytics import AnalyticsService
from hardlevel.services.export import LocalFileStorage
from hardlevel.services.gamification import GamificationService
from hardlevel.services.health_stats import HealthStatsService
from hardlevel.services.tracking import TrackingRepository


def get_tracking_repository(db: AsyncSession = Depends(get_db)) -> TrackingRepository:
    return TrackingRepository(db)


def get_analytics_service(
    repository: TrackingRepository = Depends(get_tracking_repository),
) -> AnalyticsService:
    return AnalyticsService(repository, settings.analytics_config())


def get_gamification_service(
    db: AsyncSession = Depends(get_db),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> GamificationService:
    return GamificationService(db, settings.gamification_config(), analytics=analytics)


def get_health_stats_service(
    repository: TrackingRepository = Depends(get_tracking_repository),
) -> HealthStatsService:
    return HealthStatsService(repository)


@lru_cache
def get_file_storage() -> LocalFileStorage:
    return LocalFileStorage(settings.export_directory)
