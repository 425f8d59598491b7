"""Raw tracking records: daily task logs, weight entries, and fasts."""

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, Float, String, Index
from sqlalchemy.orm import Mapped, mapped_column

from hardlevel.models.base import Base, _utcnow


class DayLog(Base):
    """One day's checklist for a user.

    `tasks` maps task keys (workout1, workout2, diet, water, reading, photo)
    to booleans. Missing keys mean the task was not done.
    """

    __tablename__ = "day_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), index=True)
    date: Mapped[date] = mapped_column(Date)
    tasks: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("ix_day_log_user_date", "user_id", "date", unique=True),
    )


class WeightEntry(Base):
    """A weigh-in."""

    __tablename__ = "weight_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), index=True)
    date: Mapped[date] = mapped_column(Date)
    weight: Mapped[float] = mapped_column(Float)
    unit: Mapped[str] = mapped_column(String(3), default="kg")  # "kg" | "lbs"

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_weight_entry_user_date", "user_id", "date"),
    )


class FastingEntry(Base):
    """A fast. actual_hours stays NULL while the fast is ongoing."""

    __tablename__ = "fasting_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), index=True)
    date: Mapped[date] = mapped_column(Date)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    target_hours: Mapped[float] = mapped_column(Float)
    actual_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    pattern: Mapped[str | None] = mapped_column(String(10), nullable=True)  # e.g. "16:8"

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        Index("ix_fasting_entry_user_date", "user_id", "date"),
    )
