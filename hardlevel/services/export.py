"""Analytics export to CSV and JSON files."""

import asyncio
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Literal, Protocol

from pydantic import BaseModel

from hardlevel.schemas.analytics import (
    AnalyticsExportData,
    CamelModel,
    DateRange,
    ExportMetadata,
    ExportType,
    TaskCompletionData,
    TimeRange,
)
from hardlevel.services.analytics import AnalyticsService

logger = logging.getLogger(__name__)

CSV_HEADERS = [
    "Date",
    "Workout1",
    "Workout2",
    "Diet",
    "Water",
    "Reading",
    "Photo",
    "Completion%",
    "Completed Tasks",
]

REQUIRED_EXPORT_FIELDS = ("userId", "exportType", "timeRange", "data", "metadata")


class ExportError(Exception):
    """Raised when an export cannot be produced or stored."""


class ExportOptions(BaseModel):
    include_metadata: bool = False
    include_headers: bool = True
    date_format: Literal["iso", "readable"] = "iso"
    delimiter: str = ","


class ExportResult(CamelModel):
    success: bool
    filename: str
    download_url: str
    format: ExportType
    metadata: ExportMetadata
    size: int


class BatchExportMetadata(CamelModel):
    exported_at: datetime
    total_users: int
    time_range: TimeRange


class BatchExportResult(CamelModel):
    success: bool
    export_count: int
    filename: str
    download_url: str
    format: ExportType
    metadata: BatchExportMetadata


# =============================================================================
# FILE STORAGE
# =============================================================================

class FileStorage(Protocol):
    async def write_file(self, filename: str, content: str) -> str:
        """Store content and return a file id."""
        ...

    async def generate_download_url(self, file_id: str) -> str:
        ...


class LocalFileStorage:
    """Writes exports to a local directory; the file id is the filename."""

    def __init__(self, directory: str | Path, url_prefix: str = "/api/v1/exports"):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.url_prefix = url_prefix.rstrip("/")

    async def write_file(self, filename: str, content: str) -> str:
        path = self.directory / filename
        path.write_text(content, encoding="utf-8")
        return filename

    async def generate_download_url(self, file_id: str) -> str:
        return f"{self.url_prefix}/{file_id}"

    def resolve(self, file_id: str) -> Path | None:
        """Path of a stored export, or None if it is missing or outside the directory."""
        path = (self.directory / file_id).resolve()
        if path.parent != self.directory.resolve() or not path.is_file():
            return None
        return path


# =============================================================================
# FORMATTING
# =============================================================================

def format_date(value: date, date_format: str = "iso") -> str:
    if date_format == "readable":
        return f"{value.month}/{value.day}/{value.year}"
    return value.isoformat()


def _flag(value: bool) -> str:
    return "1" if value else "0"


def format_as_csv(export_data: AnalyticsExportData, options: ExportOptions | None = None) -> str:
    options = options or ExportOptions()
    sep = options.delimiter
    lines = []

    if options.include_metadata:
        meta = export_data.metadata
        lines += [
            "# Export Metadata",
            f"# User ID: {export_data.user_id}",
            f"# Time Range: {export_data.time_range.value}",
            f"# Exported At: {meta.exported_at.isoformat()}",
            f"# Total Records: {meta.total_records}",
            f"# Date Range: {meta.date_range.start_date.isoformat()} to {meta.date_range.end_date.isoformat()}",
            "#",
        ]

    if options.include_headers:
        lines.append(sep.join(CSV_HEADERS))

    for row in export_data.data:
        lines.append(sep.join([
            format_date(row.date, options.date_format),
            _flag(row.workout1),
            _flag(row.workout2),
            _flag(row.diet),
            _flag(row.water),
            _flag(row.reading),
            _flag(row.photo),
            str(row.completion_percentage),
            str(row.completed_tasks),
        ]))

    return "".join(line + "\n" for line in lines)


def format_as_json(export_data: AnalyticsExportData, options: ExportOptions | None = None) -> str:
    options = options or ExportOptions()
    payload = export_data.model_dump(mode="json", by_alias=True)
    if options.date_format == "readable":
        for raw, row in zip(export_data.data, payload["data"]):
            row["date"] = format_date(raw.date, "readable")
    return json.dumps(payload, indent=2)


def format_task_completion_for_export(data: list[TaskCompletionData], export_type: ExportType) -> str:
    """Bare rows without metadata, as used for size estimates."""
    if export_type == ExportType.CSV:
        lines = ["Date,Workout1,Workout2,Diet,Water,Reading,Photo,Completion%"]
        for row in data:
            lines.append(",".join([
                row.date.isoformat(),
                _flag(row.workout1),
                _flag(row.workout2),
                _flag(row.diet),
                _flag(row.water),
                _flag(row.reading),
                _flag(row.photo),
                str(row.completion_percentage),
            ]))
        return "".join(line + "\n" for line in lines)
    return json.dumps([row.model_dump(mode="json", by_alias=True) for row in data], indent=2)


def validate_export_format(export_format: str) -> bool:
    return export_format in (ExportType.CSV.value, ExportType.JSON.value)


def calculate_export_size(export_data: AnalyticsExportData, export_type: ExportType) -> int:
    """Size in bytes of the exported content."""
    if export_type == ExportType.CSV:
        content = format_task_completion_for_export(export_data.data, ExportType.CSV)
    else:
        content = json.dumps(export_data.model_dump(mode="json", by_alias=True), indent=2)
    return len(content.encode("utf-8"))


def validate_export_data(data: Any) -> bool:
    """True when all required top-level export fields are present."""
    if isinstance(data, BaseModel):
        data = data.model_dump(by_alias=True)
    if not isinstance(data, dict):
        return False
    return all(field in data for field in REQUIRED_EXPORT_FIELDS)


def _timestamp(now: datetime) -> str:
    return now.strftime("%Y%m%d_%H%M%S")


def generate_filename(
    user_id: str,
    time_range: TimeRange,
    export_type: ExportType,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    ms = now.microsecond // 1000
    return (
        f"90hard_analytics_{user_id}_{time_range.value}_{_timestamp(now)}_{ms:03d}"
        f".{export_type.value.lower()}"
    )


def generate_batch_filename(
    user_count: int,
    time_range: TimeRange,
    export_type: ExportType,
    now: datetime | None = None,
) -> str:
    now = now or datetime.now(timezone.utc)
    return f"90hard_batch_{user_count}users_{time_range.value}_{_timestamp(now)}.{export_type.value.lower()}"


def _render(export_data: AnalyticsExportData, export_type: ExportType, options: ExportOptions) -> str:
    if export_type == ExportType.CSV:
        return format_as_csv(export_data, options)
    return format_as_json(export_data, options)


# =============================================================================
# EXPORT SERVICE
# =============================================================================

class ExportService:
    """Renders analytics exports and hands them to file storage."""

    def __init__(self, analytics: AnalyticsService, storage: FileStorage, concurrency: int = 4):
        self.analytics = analytics
        self.storage = storage
        self.concurrency = concurrency

    async def export(
        self,
        user_id: str,
        time_range: TimeRange,
        export_type: ExportType,
        options: ExportOptions | None = None,
        end_date: date | None = None,
    ) -> ExportResult:
        options = options or ExportOptions()
        try:
            export_data = await self.analytics.export_analytics_data(
                user_id, time_range, export_type, end_date=end_date,
            )
            if not validate_export_data(export_data):
                raise ValueError("Invalid export data received")

            content = _render(export_data, export_type, options)
            filename = generate_filename(user_id, time_range, export_type)
            file_id = await self.storage.write_file(filename, content)
            download_url = await self.storage.generate_download_url(file_id)
        except Exception as e:
            logger.error("Export failed for user %s: %s", user_id, e)
            raise ExportError(f"Export failed: {e}") from e

        logger.info(
            "Exported %d %s records for user %s to %s",
            export_data.metadata.total_records, export_type.value, user_id, filename,
        )
        return ExportResult(
            success=True,
            filename=filename,
            download_url=download_url,
            format=export_type,
            metadata=export_data.metadata,
            size=len(content),
        )

    async def export_to_csv(self, user_id: str, time_range: TimeRange, options: ExportOptions | None = None) -> ExportResult:
        return await self.export(user_id, time_range, ExportType.CSV, options)

    async def export_to_json(self, user_id: str, time_range: TimeRange, options: ExportOptions | None = None) -> ExportResult:
        return await self.export(user_id, time_range, ExportType.JSON, options)

    async def batch_export(
        self,
        user_ids: list[str],
        time_range: TimeRange,
        export_type: ExportType,
        options: ExportOptions | None = None,
        end_date: date | None = None,
    ) -> BatchExportResult:
        """Export several users into one file, rows in the order of user_ids."""
        options = options or ExportOptions()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def fetch(user_id: str) -> AnalyticsExportData:
            async with semaphore:
                return await self.analytics.export_analytics_data(
                    user_id, time_range, export_type, end_date=end_date,
                )

        try:
            if not user_ids:
                raise ValueError("No users to export")

            all_data = await asyncio.gather(*(fetch(user_id) for user_id in user_ids))
            now = datetime.now(timezone.utc)

            combined = AnalyticsExportData(
                user_id="batch",
                export_type=export_type,
                time_range=time_range,
                data=[row for data in all_data for row in data.data],
                metadata=ExportMetadata(
                    exported_at=now,
                    total_records=sum(len(data.data) for data in all_data),
                    date_range=DateRange(
                        start_date=min(data.metadata.date_range.start_date for data in all_data),
                        end_date=max(data.metadata.date_range.end_date for data in all_data),
                    ),
                ),
            )

            content = _render(combined, export_type, options)
            filename = generate_batch_filename(len(user_ids), time_range, export_type, now)
            file_id = await self.storage.write_file(filename, content)
            download_url = await self.storage.generate_download_url(file_id)
        except Exception as e:
            logger.error("Batch export of %d users failed: %s", len(user_ids), e)
            raise ExportError(f"Batch export failed: {e}") from e

        logger.info("Exported %d users to %s", len(user_ids), filename)
        return BatchExportResult(
            success=True,
            export_count=len(user_ids),
            filename=filename,
            download_url=download_url,
            format=export_type,
            metadata=BatchExportMetadata(
                exported_at=now,
                total_users=len(user_ids),
                time_range=time_range,
            ),
        )
