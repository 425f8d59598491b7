"""Weight and fasting statistics."""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Sequence

from hardlevel.core.numbers import round_half_up
from hardlevel.schemas.health import FastingPattern, FastingStats, WeightStats
from hardlevel.services.tracking import TrackingRepository

logger = logging.getLogger(__name__)

LBS_PER_KG = 2.2046226218
WEIGHT_TREND_THRESHOLD = 0.5

_PATTERN_RE = re.compile(r"^(\d+):(\d+)$")


# =============================================================================
# WEIGHT
# =============================================================================

def kg_to_lbs(kg: float) -> float:
    return round_half_up(kg * LBS_PER_KG, 1)


def lbs_to_kg(lbs: float) -> float:
    return round_half_up(lbs / LBS_PER_KG, 1)


def calculate_weight_delta(current: float, previous: float | None = None) -> float:
    """Positive for a gain, negative for a loss, 0 without a previous weigh-in."""
    if previous is None:
        return 0
    return round_half_up(current - previous, 1)


def weight_moving_average(entries: Sequence[Any], count: int) -> float:
    """Mean of the last `count` entries of a chronologically sorted list."""
    if not entries:
        return 0
    recent = entries[-count:]
    return round_half_up(sum(entry.weight for entry in recent) / len(recent), 1)


def determine_weight_trend(entries: Sequence[Any]) -> str:
    if len(entries) < 2:
        return "stable"
    difference = entries[-1].weight - entries[0].weight
    if abs(difference) < WEIGHT_TREND_THRESHOLD:
        return "stable"
    return "up" if difference > 0 else "down"


def calculate_weight_stats(entries: Sequence[Any]) -> WeightStats | None:
    """Summary of weigh-ins, or None when there are none."""
    if not entries:
        return None

    entries = sorted(entries, key=lambda entry: entry.date)
    current = entries[-1]
    previous = entries[-2] if len(entries) > 1 else None

    return WeightStats(
        current_weight=current.weight,
        current_unit=current.unit,
        previous_weight=previous.weight if previous else None,
        delta=calculate_weight_delta(current.weight, previous.weight if previous else None),
        moving_average_7_day=weight_moving_average(entries, 7),
        moving_average_30_day=weight_moving_average(entries, 30),
        trend=determine_weight_trend(entries),
    )


# =============================================================================
# FASTING
# =============================================================================

def calculate_fasting_duration(
    start_time: datetime,
    end_time: datetime | None = None,
    now: datetime | None = None,
) -> float:
    """Hours fasted to 1 decimal. Ongoing fasts are measured up to `now`."""
    end = end_time or now or datetime.now(timezone.utc)
    if end < start_time:
        return 0
    return round_half_up((end - start_time).total_seconds() / 3600, 1)


def is_active_fast(entry: Any) -> bool:
    return entry.end_time is None


def _met_target(entry: Any) -> bool:
    return bool(entry.actual_hours) and entry.actual_hours >= entry.target_hours


def calculate_fasting_stats(entries: Sequence[Any]) -> FastingStats:
    if not entries:
        return FastingStats()

    completed = [entry for entry in entries if entry.actual_hours is not None]
    successful = [entry for entry in completed if entry.actual_hours >= entry.target_hours]

    success_rate = 0
    weekly_average = 0
    if completed:
        success_rate = round_half_up(len(successful) / len(completed) * 100, 1)
        weekly_average = round_half_up(sum(entry.actual_hours for entry in completed) / len(completed), 1)

    ordered = sorted(entries, key=lambda entry: entry.date)
    longest = 0
    running = 0
    for entry in ordered:
        if _met_target(entry):
            running += 1
            longest = max(longest, running)
        else:
            running = 0

    current = 0
    for entry in reversed(ordered):
        if not _met_target(entry):
            break
        current += 1

    return FastingStats(
        current_streak=current,
        longest_streak=longest,
        weekly_average=weekly_average,
        success_rate=success_rate,
        total_fasts=len(entries),
        completed_fasts=len(completed),
    )


def parse_fasting_pattern(pattern: str | None) -> FastingPattern:
    """Parse "16:8"-style patterns. Anything not summing to 24 hours is unknown."""
    match = _PATTERN_RE.match(pattern or "")
    if not match:
        return FastingPattern()

    fasting_hours = int(match.group(1))
    eating_hours = int(match.group(2))
    if fasting_hours + eating_hours != 24:
        return FastingPattern()

    return FastingPattern(
        fasting_hours=fasting_hours,
        eating_hours=eating_hours,
        description=f"{fasting_hours} hour fast, {eating_hours} hour eating window",
    )


# =============================================================================
# HEALTH STATS SERVICE
# =============================================================================

class HealthStatsService:
    """Loads weight and fasting entries for a trailing window and summarizes them."""

    def __init__(self, repository: TrackingRepository):
        self.repository = repository

    @staticmethod
    def _window(days: int, end_date: date | None) -> tuple[date, date]:
        end_date = end_date or datetime.now(timezone.utc).date()
        return end_date - timedelta(days=days), end_date

    async def log_weight(self, user_id: str, day: date, weight: float, unit: str = "kg") -> Any:
        return await self.repository.add_weight_entry(user_id, day, weight, unit)

    async def log_fast(
        self,
        user_id: str,
        day: date,
        start_time: datetime,
        target_hours: float,
        end_time: datetime | None = None,
        pattern: str | None = None,
    ) -> Any:
        """Record a fast. Finished fasts get their actual hours from start and end."""
        actual_hours = None
        if end_time is not None:
            actual_hours = calculate_fasting_duration(start_time, end_time)
        return await self.repository.add_fasting_entry(
            user_id,
            day,
            start_time,
            target_hours,
            end_time=end_time,
            actual_hours=actual_hours,
            pattern=pattern,
        )

    async def get_weight_stats(self, user_id: str, days: int = 30, end_date: date | None = None) -> WeightStats | None:
        start, end = self._window(days, end_date)
        entries = await self.repository.get_weight_entries(user_id, start, end)
        logger.debug("Loaded %d weight entries for user %s", len(entries), user_id)
        return calculate_weight_stats(entries)

    async def get_fasting_stats(self, user_id: str, days: int = 30, end_date: date | None = None) -> FastingStats:
        start, end = self._window(days, end_date)
        entries = await self.repository.get_fasting_entries(user_id, start, end)
        logger.debug("Loaded %d fasting entries for user %s", len(entries), user_id)
        return calculate_fasting_stats(entries)
