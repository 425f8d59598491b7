"""Day-log repository used by the analytics engine."""

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.models.tracking import DayLog, FastingEntry, WeightEntry
from hardlevel.schemas.analytics import TASKS

logger = logging.getLogger(__name__)


class DayLogRepository(Protocol):
    """Anything that can hand back raw day logs for a date window.

    Returned objects need a `.date` and a `.tasks` mapping.
    """

    async def get_range(self, start_date: date, end_date: date, user_id: str) -> Sequence[Any]:
        ...


class TrackingRepository:
    """SQLAlchemy-backed tracking data access.

    Callers may gather several reads at once; an AsyncSession only runs one
    statement at a time, so reads are serialized on a lock.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self._lock = asyncio.Lock()

    async def _all(self, query) -> list[Any]:
        async with self._lock:
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def get_range(self, start_date: date, end_date: date, user_id: str) -> list[DayLog]:
        """Day logs in [start_date, end_date], oldest first."""
        return await self._all(
            select(DayLog)
            .where(
                DayLog.user_id == user_id,
                DayLog.date >= start_date,
                DayLog.date <= end_date,
            )
            .order_by(DayLog.date)
        )

    async def upsert_day_log(self, user_id: str, day: date, tasks: dict[str, bool]) -> DayLog:
        """Create or replace the task map for one day.

        Unknown task keys are dropped.
        """
        tasks = {task: bool(tasks.get(task, False)) for task in TASKS}

        async with self._lock:
            result = await self.db.execute(
                select(DayLog).where(DayLog.user_id == user_id, DayLog.date == day)
            )
            log = result.scalar_one_or_none()

            if log is None:
                log = DayLog(user_id=user_id, date=day, tasks=tasks)
                self.db.add(log)
            else:
                log.tasks = tasks

            await self.db.flush()

        logger.debug("Saved day log for user %s on %s", user_id, day)
        return log

    async def add_weight_entry(self, user_id: str, day: date, weight: float, unit: str = "kg") -> WeightEntry:
        entry = WeightEntry(user_id=user_id, date=day, weight=weight, unit=unit)
        async with self._lock:
            self.db.add(entry)
            await self.db.flush()
        return entry

    async def add_fasting_entry(
        self,
        user_id: str,
        day: date,
        start_time: datetime,
        target_hours: float,
        end_time: datetime | None = None,
        actual_hours: float | None = None,
        pattern: str | None = None,
    ) -> FastingEntry:
        entry = FastingEntry(
            user_id=user_id,
            date=day,
            start_time=start_time,
            end_time=end_time,
            target_hours=target_hours,
            actual_hours=actual_hours,
            pattern=pattern,
        )
        async with self._lock:
            self.db.add(entry)
            await self.db.flush()
        return entry

    async def get_weight_entries(self, user_id: str, start_date: date, end_date: date) -> list[WeightEntry]:
        return await self._all(
            select(WeightEntry)
            .where(
                WeightEntry.user_id == user_id,
                WeightEntry.date >= start_date,
                WeightEntry.date <= end_date,
            )
            .order_by(WeightEntry.date, WeightEntry.id)
        )

    async def get_fasting_entries(self, user_id: str, start_date: date, end_date: date) -> list[FastingEntry]:
        return await self._all(
            select(FastingEntry)
            .where(
                FastingEntry.user_id == user_id,
                FastingEntry.date >= start_date,
                FastingEntry.date <= end_date,
            )
            .order_by(FastingEntry.date, FastingEntry.id)
        )
