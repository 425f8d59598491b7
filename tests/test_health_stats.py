"""Tests for weight and fasting statistics.

Covers:
  - kg/lbs conversion, deltas, moving averages, weight trend
  - Fasting duration, success rate, streaks, weekly average
  - Fasting pattern parsing
  - HealthStatsService windows over the test database
"""
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from hardlevel.services.health_stats import (
    HealthStatsService,
    calculate_fasting_duration,
    calculate_fasting_stats,
    calculate_weight_delta,
    calculate_weight_stats,
    determine_weight_trend,
    is_active_fast,
    kg_to_lbs,
    lbs_to_kg,
    parse_fasting_pattern,
    weight_moving_average,
)
from hardlevel.services.tracking import TrackingRepository

from tests.factories import END_DATE, days_before


def weigh_ins(*weights, unit="kg"):
    return [
        SimpleNamespace(date=day, weight=w, unit=unit)
        for day, w in zip(days_before(END_DATE, len(weights)), weights)
    ]


def fasts(*pairs):
    """(actual_hours, target_hours) pairs on consecutive days; None actual means ongoing."""
    start = datetime(2025, 1, 1, 20, tzinfo=timezone.utc)
    return [
        SimpleNamespace(
            date=day,
            start_time=start + timedelta(days=i),
            end_time=None if actual is None else start + timedelta(days=i, hours=actual),
            actual_hours=actual,
            target_hours=target,
        )
        for i, (day, (actual, target)) in enumerate(zip(days_before(END_DATE, len(pairs)), pairs))
    ]


# =============================================================================
# WEIGHT
# =============================================================================

class TestWeightHelpers:
    def test_conversions(self):
        assert kg_to_lbs(100) == 220.5
        assert lbs_to_kg(220.5) == 100.0

    def test_delta(self):
        assert calculate_weight_delta(79.0, 79.5) == -0.5
        assert calculate_weight_delta(80.3, 80.0) == 0.3
        assert calculate_weight_delta(80.0) == 0

    def test_moving_average_uses_last_entries(self):
        entries = weigh_ins(90, 80, 79, 78)
        assert weight_moving_average(entries, 3) == 79.0
        assert weight_moving_average(entries, 30) == 81.8
        assert weight_moving_average([], 7) == 0

    def test_trend(self):
        assert determine_weight_trend(weigh_ins(80.0, 79.0)) == "down"
        assert determine_weight_trend(weigh_ins(80.0, 81.0)) == "up"
        assert determine_weight_trend(weigh_ins(80.0, 80.4)) == "stable"
        assert determine_weight_trend(weigh_ins(80.0)) == "stable"


class TestWeightStats:
    def test_summary(self):
        stats = calculate_weight_stats(weigh_ins(80.0, 79.5, 79.0))

        assert stats.current_weight == 79.0
        assert stats.current_unit == "kg"
        assert stats.previous_weight == 79.5
        assert stats.delta == -0.5
        assert stats.moving_average_7_day == 79.5
        assert stats.trend == "down"

    def test_sorts_by_date(self):
        stats = calculate_weight_stats(list(reversed(weigh_ins(80.0, 79.5, 79.0))))
        assert stats.current_weight == 79.0

    def test_single_entry(self):
        stats = calculate_weight_stats(weigh_ins(82.0))
        assert stats.previous_weight is None
        assert stats.delta == 0
        assert stats.trend == "stable"

    def test_no_entries(self):
        assert calculate_weight_stats([]) is None

    def test_camel_case(self):
        dumped = calculate_weight_stats(weigh_ins(80.0)).model_dump(by_alias=True)
        assert "movingAverage7Day" in dumped
        assert "currentWeight" in dumped


# =============================================================================
# FASTING
# =============================================================================

class TestFastingDuration:
    def test_completed(self):
        start = datetime(2025, 1, 1, 20, tzinfo=timezone.utc)
        assert calculate_fasting_duration(start, start + timedelta(hours=16, minutes=30)) == 16.5

    def test_ongoing_measured_to_now(self):
        start = datetime(2025, 1, 1, 20, tzinfo=timezone.utc)
        now = start + timedelta(hours=10, minutes=6)
        assert calculate_fasting_duration(start, None, now=now) == 10.1

    def test_end_before_start(self):
        start = datetime(2025, 1, 1, 20, tzinfo=timezone.utc)
        assert calculate_fasting_duration(start, start - timedelta(hours=1)) == 0

    def test_is_active(self):
        ongoing, done = fasts((None, 16), (16, 16))
        assert is_active_fast(ongoing) is True
        assert is_active_fast(done) is False


class TestFastingStats:
    """Success rate is over completed fasts; streaks need the target met."""

    def test_missed_last_fast(self):
        stats = calculate_fasting_stats(fasts((16, 16), (18, 18), (14, 16)))

        assert stats.success_rate == 66.7
        assert stats.current_streak == 0
        assert stats.longest_streak == 2
        assert stats.weekly_average == 16.0
        assert stats.total_fasts == 3
        assert stats.completed_fasts == 3

    def test_current_streak(self):
        stats = calculate_fasting_stats(fasts((12, 16), (16, 16), (20, 18)))
        assert stats.current_streak == 2
        assert stats.longest_streak == 2
        assert stats.success_rate == 66.7

    def test_ongoing_fast_excluded_from_rate(self):
        stats = calculate_fasting_stats(fasts((16, 16), (None, 16)))
        assert stats.success_rate == 100
        assert stats.completed_fasts == 1
        assert stats.total_fasts == 2
        assert stats.current_streak == 0

    def test_empty(self):
        stats = calculate_fasting_stats([])
        assert stats.total_fasts == 0
        assert stats.success_rate == 0


class TestFastingPattern:
    @pytest.mark.parametrize("pattern,fasting,eating", [
        ("16:8", 16, 8),
        ("18:6", 18, 6),
        ("20:4", 20, 4),
        ("23:1", 23, 1),
    ])
    def test_known_patterns(self, pattern, fasting, eating):
        parsed = parse_fasting_pattern(pattern)
        assert parsed.fasting_hours == fasting
        assert parsed.eating_hours == eating
        assert parsed.description == f"{fasting} hour fast, {eating} hour eating window"

    @pytest.mark.parametrize("pattern", ["16:6", "abc", "16-8", "", None])
    def test_unknown_patterns(self, pattern):
        parsed = parse_fasting_pattern(pattern)
        assert parsed.fasting_hours == 0
        assert parsed.eating_hours == 0
        assert parsed.description == "Unknown fasting pattern"


# =============================================================================
# SERVICE
# =============================================================================

class TestHealthStatsService:
    """Windows are [end - days, end]."""

    async def test_weight_window(self, db):
        service = HealthStatsService(TrackingRepository(db))
        await service.log_weight("u1", END_DATE - timedelta(days=40), 90.0)
        await service.log_weight("u1", END_DATE - timedelta(days=30), 81.0)
        await service.log_weight("u1", END_DATE, 80.0)
        await service.log_weight("u2", END_DATE, 60.0)

        stats = await service.get_weight_stats("u1", days=30, end_date=END_DATE)

        assert stats.current_weight == 80.0
        assert stats.previous_weight == 81.0
        assert stats.delta == -1.0
        assert stats.trend == "down"

    async def test_no_weight_entries(self, db):
        service = HealthStatsService(TrackingRepository(db))
        assert await service.get_weight_stats("u1", end_date=END_DATE) is None

    async def test_log_fast_computes_hours(self, db):
        service = HealthStatsService(TrackingRepository(db))
        start = datetime(2025, 1, 12, 20, tzinfo=timezone.utc)

        done = await service.log_fast("u1", date(2025, 1, 12), start, 16, end_time=start + timedelta(hours=17))
        ongoing = await service.log_fast("u1", END_DATE, start + timedelta(days=1), 16, pattern="16:8")

        assert done.actual_hours == 17.0
        assert ongoing.actual_hours is None
        assert ongoing.pattern == "16:8"

    async def test_fasting_stats(self, db):
        service = HealthStatsService(TrackingRepository(db))
        start = datetime(2025, 1, 10, 20, tzinfo=timezone.utc)
        for i, hours in enumerate([16, 18, 14]):
            day = date(2025, 1, 10) + timedelta(days=i)
            begin = start + timedelta(days=i)
            await service.log_fast("u1", day, begin, 16, end_time=begin + timedelta(hours=hours))

        stats = await service.get_fasting_stats("u1", days=30, end_date=END_DATE)

        assert stats.total_fasts == 3
        assert stats.success_rate == 66.7
        assert stats.longest_streak == 2
        assert stats.current_streak == 0
        assert stats.weekly_average == 16.0
