"""Trend lines over chart points: moving averages and up/down/stable direction."""

from typing import Sequence

from hardlevel.core.numbers import round_half_up
from hardlevel.schemas.analytics import TASKS, ChartDataPoint, TaskCompletionData, TrendData


def moving_average(values: Sequence[float], window: int = 3) -> list[float]:
    """Trailing mean of up to `window` values ending at each position, 2 decimals."""
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")
    averages = []
    for i in range(len(values)):
        chunk = values[max(0, i - window + 1):i + 1]
        averages.append(round_half_up(sum(chunk) / len(chunk), 2))
    return averages


def determine_trend(points: Sequence[ChartDataPoint], threshold: float = 5.0) -> tuple[str, float]:
    """Compare the first and last point.

    Returns (trend, trend_percentage). Changes within +/- threshold percent are
    "stable" but still report their percentage.
    """
    if len(points) < 2:
        return "stable", 0

    first = points[0].value
    last = points[-1].value

    if first == 0 and last == 0:
        return "stable", 0
    if first == 0:
        change = 100.0
    else:
        change = (last - first) / first * 100

    if abs(change) <= threshold:
        return "stable", round_half_up(change, 2)
    return ("up" if change > 0 else "down"), round_half_up(change, 2)


def build_trend(
    points: list[ChartDataPoint],
    window: int = 3,
    threshold: float = 5.0,
) -> TrendData:
    points = sorted(points, key=lambda p: p.date)
    trend, percentage = determine_trend(points, threshold)
    return TrendData(
        points=points,
        trend=trend,
        trend_percentage=percentage,
        moving_average=moving_average([p.value for p in points], window),
    )


def completion_trend(
    data: list[TaskCompletionData],
    window: int = 3,
    threshold: float = 5.0,
) -> TrendData:
    """Trend of daily completion percentage."""
    points = [
        ChartDataPoint(
            date=day.date,
            value=day.completion_percentage,
            label=f"{day.completed_tasks}/{day.total_tasks} tasks",
        )
        for day in data
    ]
    return build_trend(points, window, threshold)


def task_trends(
    data: list[TaskCompletionData],
    window: int = 3,
    threshold: float = 5.0,
) -> dict[str, TrendData]:
    """Per-task trend where each day scores 100 if the task was done, else 0."""
    return {
        task: build_trend(
            [ChartDataPoint(date=day.date, value=100 if day.task_done(task) else 0) for day in data],
            window,
            threshold,
        )
        for task in TASKS
    }
