"""Analytics service - completion data, period stats, insights, and comparisons."""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable

from hardlevel.core.numbers import round_half_up
from hardlevel.schemas.analytics import (
    TASKS,
    TOTAL_TASKS,
    AnalyticsExportData,
    AnalyticsInsight,
    ComparisonStats,
    DateRange,
    ExportMetadata,
    ExportType,
    Improvements,
    PeriodStats,
    TaskCompletionData,
    TimeRange,
    UserAnalytics,
)
from hardlevel.schemas.config import AnalyticsConfig
from hardlevel.services import trends
from hardlevel.services.tracking import DayLogRepository

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSFORMATION
# =============================================================================

def _log_field(log: Any, name: str) -> Any:
    if isinstance(log, dict):
        return log.get(name)
    return getattr(log, name, None)


def transform_to_completion_data(logs: Iterable[Any]) -> list[TaskCompletionData]:
    """Turn raw day logs (ORM rows, dicts, or any object with date/tasks) into completion data."""
    data = []
    for log in logs:
        tasks = _log_field(log, "tasks") or {}
        flags = {task: bool(tasks.get(task)) for task in TASKS}
        completed = sum(flags.values())
        data.append(
            TaskCompletionData(
                date=_log_field(log, "date"),
                **flags,
                completion_percentage=round_half_up(completed / TOTAL_TASKS * 100),
                total_tasks=TOTAL_TASKS,
                completed_tasks=completed,
            )
        )
    return data


# =============================================================================
# PERIOD STATS
# =============================================================================

def calculate_streaks(data: list[TaskCompletionData]) -> tuple[int, int]:
    """Return (current_streak, longest_streak) over days with any completion.

    The current streak counts back from the most recent supplied day, so a
    missing day is not a break but a logged day at 0% is.
    """
    longest = 0
    running = 0
    for day in sorted(data, key=lambda d: d.date):
        if day.completion_percentage > 0:
            running += 1
            longest = max(longest, running)
        else:
            running = 0

    current = 0
    for day in sorted(data, key=lambda d: d.date, reverse=True):
        if day.completion_percentage <= 0:
            break
        current += 1

    return current, longest


def calculate_task_breakdown(data: list[TaskCompletionData]) -> dict[str, int]:
    return {task: sum(1 for day in data if day.task_done(task)) for task in TASKS}


def calculate_period_stats(data: list[TaskCompletionData], total_days: int) -> PeriodStats:
    if not data:
        return PeriodStats(total_days=total_days)

    current_streak, longest_streak = calculate_streaks(data)
    average = sum(day.completion_percentage for day in data) / len(data)

    return PeriodStats(
        total_days=total_days,
        active_days=sum(1 for day in data if day.completed_tasks > 0),
        average_completion=round_half_up(average),
        perfect_days=sum(1 for day in data if day.completion_percentage == 100),
        current_streak=current_streak,
        longest_streak=longest_streak,
        task_breakdown=calculate_task_breakdown(data),
    )


# =============================================================================
# INSIGHTS
# =============================================================================

def find_weakest_tasks(
    task_breakdown: dict[str, int],
    total_days: int,
    ratio: float = 0.5,
    limit: int = 2,
) -> list[str]:
    """Tasks done on fewer than `ratio` of the window's days, weakest first."""
    threshold = total_days * ratio
    weak = [(task, count) for task, count in task_breakdown.items() if count < threshold]
    weak.sort(key=lambda item: item[1])
    return [task for task, _ in weak[:limit]]


def generate_insights(
    stats: PeriodStats,
    config: AnalyticsConfig | None = None,
    now: datetime | None = None,
) -> list[AnalyticsInsight]:
    config = config or AnalyticsConfig()
    now = now or datetime.now(timezone.utc)
    stamp = int(now.timestamp() * 1000)
    insights = []

    if stats.current_streak >= config.streak_insight_days:
        insights.append(AnalyticsInsight(
            id=f"streak-{stamp}",
            type="achievement",
            priority="high",
            title=f"Amazing {stats.current_streak}-day streak!",
            description=f"You've maintained a {stats.current_streak}-day completion streak. Keep it up!",
            actionable=False,
            created_at=now,
        ))

    if stats.perfect_days > 0:
        insights.append(AnalyticsInsight(
            id=f"perfect-{stamp}",
            type="achievement",
            priority="medium",
            title=f"{stats.perfect_days} Perfect Days",
            description=f"You completed all tasks on {stats.perfect_days} days this period.",
            actionable=False,
            created_at=now,
        ))

    if stats.average_completion < config.low_completion_threshold:
        insights.append(AnalyticsInsight(
            id=f"low-completion-{stamp}",
            type="warning",
            priority="high",
            title="Low completion rate",
            description=(
                f"Your completion rate is {stats.average_completion}%. "
                "Consider focusing on 1-2 key tasks."
            ),
            actionable=True,
            action_text="Review your priorities",
            created_at=now,
        ))

    weakest = find_weakest_tasks(
        stats.task_breakdown,
        stats.total_days,
        config.weak_task_ratio,
        config.max_weak_tasks,
    )
    if weakest:
        insights.append(AnalyticsInsight(
            id=f"suggestion-{stamp}",
            type="suggestion",
            priority="medium",
            title="Focus areas identified",
            description=f"Consider prioritizing: {', '.join(weakest)}",
            actionable=True,
            action_text="Create action plan",
            created_at=now,
        ))

    return insights


# =============================================================================
# DATE WINDOWS AND COMPARISON
# =============================================================================

def calculate_date_range(time_range: TimeRange, end_date: date) -> DateRange:
    """Inclusive window of `time_range.days` days ending on end_date."""
    return DateRange(
        start_date=end_date - timedelta(days=time_range.days - 1),
        end_date=end_date,
    )


def calculate_previous_date_range(time_range: TimeRange, end_date: date) -> DateRange:
    """The equally long window immediately before the current one."""
    current = calculate_date_range(time_range, end_date)
    return DateRange(
        start_date=current.start_date - timedelta(days=time_range.days),
        end_date=current.start_date - timedelta(days=1),
    )


def compare_period_stats(current: PeriodStats, previous: PeriodStats) -> ComparisonStats:
    return ComparisonStats(
        current=current,
        previous=previous,
        improvements=Improvements(
            average_completion=current.average_completion - previous.average_completion,
            perfect_days=current.perfect_days - previous.perfect_days,
            current_streak=current.current_streak - previous.current_streak,
        ),
    )


def _today() -> date:
    return datetime.now(timezone.utc).date()


# =============================================================================
# ANALYTICS SERVICE
# =============================================================================

class AnalyticsService:
    """Builds analytics snapshots from a day-log repository."""

    def __init__(self, repository: DayLogRepository, config: AnalyticsConfig | None = None):
        self.repository = repository
        self.config = config or AnalyticsConfig()

    async def _completion_data(self, user_id: str, date_range: DateRange) -> list[TaskCompletionData]:
        logs = await self.repository.get_range(date_range.start_date, date_range.end_date, user_id)
        return transform_to_completion_data(logs)

    async def get_user_analytics(
        self,
        user_id: str,
        time_range: TimeRange,
        end_date: date | None = None,
    ) -> UserAnalytics:
        date_range = calculate_date_range(time_range, end_date or _today())
        data = await self._completion_data(user_id, date_range)
        logger.debug(
            "Building %s analytics for user %s from %d logged days",
            time_range.value, user_id, len(data),
        )

        stats = calculate_period_stats(data, time_range.days)
        window = self.config.moving_average_window
        threshold = self.config.trend_stability_threshold

        return UserAnalytics(
            user_id=user_id,
            time_range=time_range,
            date_range=date_range,
            period_stats=stats,
            completion_trend=trends.completion_trend(data, window, threshold),
            task_trends=trends.task_trends(data, window, threshold),
            insights=generate_insights(stats, self.config),
            last_updated=datetime.now(timezone.utc),
        )

    async def get_comparison_analytics(
        self,
        user_id: str,
        time_range: TimeRange,
        end_date: date | None = None,
    ) -> ComparisonStats:
        end_date = end_date or _today()
        current_range = calculate_date_range(time_range, end_date)
        previous_range = calculate_previous_date_range(time_range, end_date)

        current_data, previous_data = await asyncio.gather(
            self._completion_data(user_id, current_range),
            self._completion_data(user_id, previous_range),
        )

        total_days = time_range.days
        return compare_period_stats(
            calculate_period_stats(current_data, total_days),
            calculate_period_stats(previous_data, total_days),
        )

    async def export_analytics_data(
        self,
        user_id: str,
        time_range: TimeRange,
        export_type: ExportType,
        end_date: date | None = None,
    ) -> AnalyticsExportData:
        """Raw completion rows for a window, wrapped with export metadata."""
        date_range = calculate_date_range(time_range, end_date or _today())
        data = await self._completion_data(user_id, date_range)

        return AnalyticsExportData(
            user_id=user_id,
            export_type=export_type,
            time_range=time_range,
            data=data,
            metadata=ExportMetadata(
                exported_at=datetime.now(timezone.utc),
                total_records=len(data),
                date_range=date_range,
            ),
        )
