from typing import Literal

from hardlevel.schemas.analytics import CamelModel


class WeightStats(CamelModel):
    current_weight: float
    current_unit: Literal["kg", "lbs"]
    previous_weight: float | None = None
    delta: float = 0
    moving_average_7_day: float = 0
    moving_average_30_day: float = 0
    trend: Literal["up", "down", "stable"] = "stable"


class FastingStats(CamelModel):
    current_streak: int = 0
    longest_streak: int = 0
    weekly_average: float = 0
    success_rate: float = 0  # percent
    total_fasts: int = 0
    completed_fasts: int = 0


class FastingPattern(CamelModel):
    """An eating-window pattern such as 16:8."""
    fasting_hours: int = 0
    eating_hours: int = 0
    description: str = "Unknown fasting pattern"
