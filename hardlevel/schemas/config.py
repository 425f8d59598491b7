"""Immutable engine configuration injected into the analytics and gamification services."""

from pydantic import BaseModel, ConfigDict, Field

from hardlevel.models.gamification import Rank


class GamificationConfig(BaseModel):
    """XP, level and rank tuning. Frozen so one instance can be shared safely."""

    model_config = ConfigDict(frozen=True)

    perfect_day_bonus: int = 10
    max_daily_xp: int = 200
    xp_per_level: int = 100
    # Checked highest-first; anything below the last entry is DEFAULT_RANK
    rank_thresholds: tuple[tuple[int, Rank], ...] = (
        (50, Rank.S),
        (40, Rank.A),
        (30, Rank.B),
        (20, Rank.C),
        (2, Rank.D),
    )
    default_rank: Rank = Rank.E


class AnalyticsConfig(BaseModel):
    """Trend and insight tuning."""

    model_config = ConfigDict(frozen=True)

    moving_average_window: int = Field(default=3, ge=1)
    trend_stability_threshold: float = 5.0  # percent
    streak_insight_days: int = 5
    low_completion_threshold: int = 30
    weak_task_ratio: float = 0.5
    max_weak_tasks: int = 2
