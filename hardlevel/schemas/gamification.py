"""Gamification value types: achievement requirements, XP results, leaderboards."""

import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from hardlevel.models.gamification import Mood, Pose, Rank
from hardlevel.schemas.analytics import CamelModel, PeriodStats


# =============================================================================
# ACHIEVEMENT REQUIREMENTS
# =============================================================================

class _Requirement(BaseModel):
    """Requirement parsed from an achievement's category and requirements JSON."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def stat_value(self, stats: PeriodStats) -> float:
        """The statistic this requirement is measured against."""
        return 0

    def threshold(self) -> float:
        return 0

    def is_met(self, stats: PeriodStats) -> bool:
        return self.stat_value(stats) >= self.threshold()


class StreakRequirement(_Requirement):
    category: Literal["streak"] = "streak"
    streak_days: int = Field(default=0, alias="streakDays")

    def stat_value(self, stats: PeriodStats) -> float:
        return stats.current_streak

    def threshold(self) -> float:
        return self.streak_days


class CompletionRequirement(_Requirement):
    category: Literal["completion"] = "completion"
    completion_rate: float = Field(default=0, alias="completionRate")

    def stat_value(self, stats: PeriodStats) -> float:
        return stats.average_completion

    def threshold(self) -> float:
        return self.completion_rate


class PerfectDaysRequirement(_Requirement):
    category: Literal["milestone"] = "milestone"
    perfect_days: int = Field(default=0, alias="perfectDays")

    def stat_value(self, stats: PeriodStats) -> float:
        return stats.perfect_days

    def threshold(self) -> float:
        return self.perfect_days


class UnsupportedRequirement(_Requirement):
    """Weight, fasting and special achievements are not evaluated from period stats."""

    category: Literal["weight", "fasting", "special"]

    def is_met(self, stats: PeriodStats) -> bool:
        return False


AchievementRequirement = Annotated[
    Union[StreakRequirement, CompletionRequirement, PerfectDaysRequirement, UnsupportedRequirement],
    Field(discriminator="category"),
]

_requirement_adapter = TypeAdapter(AchievementRequirement)


def parse_requirement(category: str, requirements: dict[str, Any] | None) -> AchievementRequirement:
    """Build the typed requirement for a stored achievement row."""
    return _requirement_adapter.validate_python({**(requirements or {}), "category": category})


# =============================================================================
# XP AND LEVELS
# =============================================================================

class LevelUpdate(BaseModel):
    """Result of adding XP to a level record."""
    current_level: int
    current_xp: int
    total_xp: int
    xp_to_next_level: int
    rank: Rank
    level_up: bool


class XPBreakdown(CamelModel):
    task_completion: int = 0
    streak_bonus: int = 0
    perfect_day_bonus: int = 0
    milestone_bonus: int = 0
    achievement_bonus: int = 0


class AchievementSummary(CamelModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    type: str
    xp_reward: int


class XPCalculationResult(CamelModel):
    base_xp: int
    bonus_xp: int
    total_xp: int
    breakdown: XPBreakdown
    level_up: bool
    new_level: int | None = None
    achievements_unlocked: list[AchievementSummary] = Field(default_factory=list)


class XPHistoryEntry(CamelModel):
    id: int
    date: datetime.date
    base_xp: int
    bonus_xp: int
    total_xp: int
    source: str
    metadata: dict[str, Any] | None = None
    created_at: datetime.datetime


# =============================================================================
# LEADERBOARD, AVATAR, STATS
# =============================================================================

class LeaderboardEntry(CamelModel):
    user_id: str
    total_xp: int
    current_level: int
    rank: Rank
    current_streak: int = 0
    perfect_days_this_month: int = 0
    position: int


class Leaderboard(CamelModel):
    id: str
    type: Literal["global", "friends", "local", "weekly", "monthly"]
    time_range: str
    entries: list[LeaderboardEntry]
    last_updated: datetime.datetime
    total_participants: int


class MoodTriggers(CamelModel):
    streak_length: int
    completion_rate: float
    recent_achievements: int


class AvatarMoodState(CamelModel):
    user_id: str
    current_mood: Mood
    pose: Pose
    triggers: MoodTriggers
    last_updated: datetime.datetime


class GamificationStats(CamelModel):
    user_id: str
    total_xp: int = 0
    current_level: int = 1
    rank: Rank = Rank.E
    achievements_unlocked: int = 0
    total_achievements: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    perfect_days: int = 0
    weekly_xp: int = 0
    monthly_xp: int = 0
    leaderboard_position: int | None = None
    last_activity_date: datetime.date
