"""Analytics value types. Serialized with camelCase keys for clients and exports."""

import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


TASKS: tuple[str, ...] = ("workout1", "workout2", "diet", "water", "reading", "photo")
TOTAL_TASKS = len(TASKS)


class CamelModel(BaseModel):
    """Base model that accepts snake_case and emits camelCase with by_alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeRange(str, Enum):
    """Supported analytics windows."""
    WEEK = "7D"
    MONTH = "30D"
    QUARTER = "90D"
    ALL = "ALL"

    @property
    def days(self) -> int:
        return TIME_RANGE_DAYS[self]


TIME_RANGE_DAYS = {
    TimeRange.WEEK: 7,
    TimeRange.MONTH: 30,
    TimeRange.QUARTER: 90,
    TimeRange.ALL: 365,
}


class ExportType(str, Enum):
    CSV = "CSV"
    JSON = "JSON"


class DateRange(CamelModel):
    start_date: datetime.date
    end_date: datetime.date


class TaskCompletionData(CamelModel):
    """One day's completion, derived from a raw day log."""

    date: datetime.date
    workout1: bool = False
    workout2: bool = False
    diet: bool = False
    water: bool = False
    reading: bool = False
    photo: bool = False
    completion_percentage: int = 0
    total_tasks: int = TOTAL_TASKS
    completed_tasks: int = 0

    def task_done(self, task: str) -> bool:
        return bool(getattr(self, task))


class PeriodStats(CamelModel):
    total_days: int = 0
    active_days: int = 0
    average_completion: int = 0
    perfect_days: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    task_breakdown: dict[str, int] = Field(default_factory=lambda: {task: 0 for task in TASKS})


class Improvements(CamelModel):
    average_completion: int = 0
    perfect_days: int = 0
    current_streak: int = 0


class ComparisonStats(CamelModel):
    current: PeriodStats
    previous: PeriodStats
    improvements: Improvements


class ChartDataPoint(CamelModel):
    date: datetime.date
    value: float
    label: str | None = None
    metadata: dict[str, Any] | None = None


class TrendData(CamelModel):
    points: list[ChartDataPoint] = Field(default_factory=list)
    trend: Literal["up", "down", "stable"] = "stable"
    trend_percentage: float = 0
    moving_average: list[float] = Field(default_factory=list)


class AnalyticsInsight(CamelModel):
    id: str
    type: Literal["achievement", "warning", "suggestion", "milestone"]
    priority: Literal["high", "medium", "low"]
    title: str
    description: str
    actionable: bool
    action_text: str | None = None
    created_at: datetime.datetime


class UserAnalytics(CamelModel):
    """Full analytics snapshot for one user and window."""

    user_id: str
    time_range: TimeRange
    date_range: DateRange
    period_stats: PeriodStats
    completion_trend: TrendData
    task_trends: dict[str, TrendData]
    insights: list[AnalyticsInsight]
    last_updated: datetime.datetime


class ExportMetadata(CamelModel):
    exported_at: datetime.datetime
    total_records: int
    date_range: DateRange


class AnalyticsExportData(CamelModel):
    user_id: str
    export_type: ExportType
    time_range: TimeRange
    data: list[TaskCompletionData]
    metadata: ExportMetadata
