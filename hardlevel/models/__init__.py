from hardlevel.models.base import Base
from hardlevel.models.gamification import (
    Achievement,
    AvatarMood,
    UserAchievement,
    UserLevel,
    XPEntry,
)
from hardlevel.models.tracking import DayLog, FastingEntry, WeightEntry

__all__ = [
    "Base",
    "Achievement",
    "AvatarMood",
    "UserAchievement",
    "UserLevel",
    "XPEntry",
    "DayLog",
    "FastingEntry",
    "WeightEntry",
]
