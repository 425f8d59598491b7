"""Analytics API endpoints for snapshots, period comparisons, and exports."""

import logging
from datetime import date

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from hardlevel.api.deps import get_analytics_service, get_file_storage
from hardlevel.core.config import settings
from hardlevel.schemas.analytics import ComparisonStats, ExportType, TimeRange, UserAnalytics
from hardlevel.services.analytics import AnalyticsService
from hardlevel.services.export import (
    BatchExportResult,
    ExportError,
    ExportOptions,
    ExportResult,
    ExportService,
    LocalFileStorage,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analytics"])


class BatchExportRequest(BaseModel):
    """Request to export several users into one file."""
    user_ids: list[str] = Field(min_length=1)
    time_range: TimeRange = TimeRange.MONTH
    format: ExportType = ExportType.CSV
    options: ExportOptions = Field(default_factory=ExportOptions)


@router.get("/analytics/{user_id}", response_model=UserAnalytics)
async def get_user_analytics(
    user_id: str,
    time_range: TimeRange = Query(default=TimeRange.MONTH),
    end_date: date | None = Query(default=None, description="Last day of the window, defaults to today"),
    service: AnalyticsService = Depends(get_analytics_service),
) -> UserAnalytics:
    """Get stats, trends and insights for a user over a time range."""
    return await service.get_user_analytics(user_id, time_range, end_date=end_date)


@router.get("/analytics/{user_id}/comparison", response_model=ComparisonStats)
async def get_comparison(
    user_id: str,
    time_range: TimeRange = Query(default=TimeRange.WEEK),
    end_date: date | None = Query(default=None),
    service: AnalyticsService = Depends(get_analytics_service),
) -> ComparisonStats:
    """Compare the current window with the one just before it."""
    return await service.get_comparison_analytics(user_id, time_range, end_date=end_date)


@router.post("/analytics/{user_id}/export", response_model=ExportResult)
async def export_analytics(
    user_id: str,
    format: ExportType = Query(default=ExportType.CSV),
    time_range: TimeRange = Query(default=TimeRange.MONTH),
    end_date: date | None = Query(default=None),
    options: ExportOptions | None = Body(default=None),
    service: AnalyticsService = Depends(get_analytics_service),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> ExportResult:
    """Write a CSV or JSON export for a user and return its download URL."""
    exporter = ExportService(service, storage, concurrency=settings.export_concurrency)
    try:
        return await exporter.export(user_id, time_range, format, options, end_date=end_date)
    except ExportError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )


@router.post("/analytics/export/batch", response_model=BatchExportResult)
async def batch_export_analytics(
    request: BatchExportRequest,
    service: AnalyticsService = Depends(get_analytics_service),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> BatchExportResult:
    """Export several users into a single file."""
    exporter = ExportService(service, storage, concurrency=settings.export_concurrency)
    try:
        return await exporter.batch_export(request.user_ids, request.time_range, request.format, request.options)
    except ExportError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )


@router.get("/exports/{file_id}")
async def download_export(
    file_id: str,
    storage: LocalFileStorage = Depends(get_file_storage),
) -> FileResponse:
    """Download a previously written export file."""
    path = storage.resolve(file_id)
    if path is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Export not found")

    media_type = "text/csv" if path.suffix == ".csv" else "application/json"
    return FileResponse(path, media_type=media_type, filename=path.name)
