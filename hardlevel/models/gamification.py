"""Gamification models for the XP ledger, levels, achievements, and avatar mood."""

from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hardlevel.models.base import Base, _utcnow


class Rank(str, Enum):
    """Coarse tiers derived from level."""
    E = "E"
    D = "D"
    C = "C"
    B = "B"
    A = "A"
    S = "S"


class AchievementCategory(str, Enum):
    """Achievement categories."""
    STREAK = "streak"
    COMPLETION = "completion"
    MILESTONE = "milestone"
    WEIGHT = "weight"
    FASTING = "fasting"
    SPECIAL = "special"


class AchievementType(str, Enum):
    """Achievement medal types."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class XPSource(str, Enum):
    """Where a ledger row's XP came from."""
    DAILY_COMPLETION = "daily_completion"
    STREAK_BONUS = "streak_bonus"
    PERFECT_DAY = "perfect_day"
    MILESTONE = "milestone"
    ACHIEVEMENT = "achievement"


class Mood(str, Enum):
    EXCITED = "excited"
    HAPPY = "happy"
    MOTIVATED = "motivated"
    NEUTRAL = "neutral"
    TIRED = "tired"
    SAD = "sad"


class Pose(str, Enum):
    CELEBRATING = "celebrating"
    FLEXING = "flexing"
    RUNNING = "running"
    STANDING = "standing"
    MEDITATING = "meditating"
    SLEEPING = "sleeping"


class XPEntry(Base):
    """Append-only XP ledger. Rows are inserted once and never updated or deleted."""

    __tablename__ = "xp_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), index=True)
    date: Mapped[date] = mapped_column(Date)

    base_xp: Mapped[int] = mapped_column(Integer)  # from completion percentage
    bonus_xp: Mapped[int] = mapped_column(Integer)  # perfect day, streak, milestone...
    total_xp: Mapped[int] = mapped_column(Integer)  # capped at max_daily_xp

    # Use String to avoid PostgreSQL enum mapping issues - values validated at app layer
    source: Mapped[str] = mapped_column(String(50))
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_xp_entry_user_date", "user_id", "date"),
    )


class UserLevel(Base):
    """User's level progress. total_xp only ever moves up."""

    __tablename__ = "user_levels"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), unique=True, index=True)

    current_level: Mapped[int] = mapped_column(Integer, default=1)
    current_xp: Mapped[int] = mapped_column(Integer, default=0)  # equals total_xp in this scheme
    total_xp: Mapped[int] = mapped_column(Integer, default=0)
    xp_to_next_level: Mapped[int] = mapped_column(Integer, default=0)
    rank: Mapped[str] = mapped_column(String(1), default=Rank.E.value)
    last_level_up: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_user_level_total_xp", "total_xp"),
    )


class Achievement(Base):
    """Achievement definitions - seeded once, shared by all users."""

    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # e.g., "streak_days_3"
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    icon: Mapped[str] = mapped_column(String(50))
    category: Mapped[str] = mapped_column(String(50))
    type: Mapped[str] = mapped_column(String(50), default=AchievementType.BRONZE.value)
    xp_reward: Mapped[int] = mapped_column(Integer, default=0)
    # Stored as JSON, parsed into a typed requirement by the achievement service
    requirements: Mapped[dict[str, Any]] = mapped_column(JSON)
    is_secret: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    user_achievements: Mapped[list["UserAchievement"]] = relationship(
        "UserAchievement",
        back_populates="achievement",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_achievement_category", "category"),
    )


class UserAchievement(Base):
    """Unlock record. At most one row per (user_id, achievement_id), enforced by the index."""

    __tablename__ = "user_achievements"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), index=True)
    achievement_id: Mapped[str] = mapped_column(
        ForeignKey("achievements.id", ondelete="CASCADE"),
        index=True,
    )
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    progress: Mapped[float | None] = mapped_column(Float, nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    achievement: Mapped["Achievement"] = relationship(
        "Achievement",
        back_populates="user_achievements",
    )

    __table_args__ = (
        Index("ix_user_achievement_unique", "user_id", "achievement_id", unique=True),
    )


class AvatarMood(Base):
    """Latest computed avatar mood per user. Overwritten on every recomputation."""

    __tablename__ = "avatar_moods"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    current_mood: Mapped[str] = mapped_column(String(20))
    pose: Mapped[str] = mapped_column(String(20))

    # Trigger snapshot
    streak_length: Mapped[int] = mapped_column(Integer, default=0)
    completion_rate: Mapped[float] = mapped_column(Float, default=0.0)
    recent_achievements: Mapped[int] = mapped_column(Integer, default=0)

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )
