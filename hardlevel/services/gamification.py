"""Gamification service - XP, levels, achievements, and leaderboard logic."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Sequence

from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.core.database import insert_ignore
from hardlevel.core.numbers import round_half_up
from hardlevel.models.base import _utcnow
from hardlevel.models.gamification import (
    Achievement,
    Rank,
    UserAchievement,
    UserLevel,
    XPEntry,
    XPSource,
)
from hardlevel.schemas.analytics import PeriodStats, TimeRange
from hardlevel.schemas.config import GamificationConfig
from hardlevel.schemas.gamification import (
    AchievementSummary,
    GamificationStats,
    Leaderboard,
    LeaderboardEntry,
    LevelUpdate,
    XPBreakdown,
    XPCalculationResult,
    XPHistoryEntry,
    parse_requirement,
)
from hardlevel.services.analytics import AnalyticsService
from hardlevel.services.leveling import add_xp
from hardlevel.services.tracking import TrackingRepository

logger = logging.getLogger(__name__)


# =============================================================================
# BONUS POLICY
# =============================================================================

class BonusPolicy:
    """Extra XP on top of completion XP. Subclass and override to turn bonuses on.

    Every hook defaults to 0.
    """

    async def streak_bonus(self, user_id: str, stats: PeriodStats | None) -> int:
        return 0

    async def milestone_bonus(self, completion_percentage: float) -> int:
        return 0

    async def achievement_bonus(self, user_id: str) -> int:
        return 0


def achievement_summary(achievement: Achievement) -> AchievementSummary:
    return AchievementSummary(
        id=achievement.id,
        name=achievement.name,
        description=achievement.description,
        icon=achievement.icon,
        category=achievement.category,
        type=achievement.type,
        xp_reward=achievement.xp_reward,
    )


# =============================================================================
# GAMIFICATION SERVICE
# =============================================================================

class GamificationService:
    """Service for awarding XP and tracking levels."""

    def __init__(
        self,
        db: AsyncSession,
        config: GamificationConfig | None = None,
        bonus_policy: BonusPolicy | None = None,
        analytics: AnalyticsService | None = None,
    ):
        self.db = db
        self.config = config or GamificationConfig()
        self.bonus_policy = bonus_policy or BonusPolicy()
        self.analytics = analytics or AnalyticsService(TrackingRepository(db))

    async def calculate_daily_xp(
        self,
        user_id: str,
        day: date,
        completion_percentage: float,
        stats: PeriodStats | None = None,
    ) -> XPCalculationResult:
        """Award XP for one day's completion and update the user's level.

        When period stats are supplied, achievements are checked against them
        and any new unlocks are reported in the result.
        """
        base_xp = round_half_up(completion_percentage)

        perfect_day = completion_percentage == 100
        perfect_day_bonus = self.config.perfect_day_bonus if perfect_day else 0
        streak_bonus = await self.bonus_policy.streak_bonus(user_id, stats)
        milestone_bonus = await self.bonus_policy.milestone_bonus(completion_percentage)
        achievement_bonus = await self.bonus_policy.achievement_bonus(user_id)

        bonus_xp = perfect_day_bonus + streak_bonus + milestone_bonus + achievement_bonus
        total_xp = min(base_xp + bonus_xp, self.config.max_daily_xp)

        self.db.add(XPEntry(
            user_id=user_id,
            date=day,
            base_xp=base_xp,
            bonus_xp=bonus_xp,
            total_xp=total_xp,
            source=XPSource.DAILY_COMPLETION.value,
            details={
                "completionPercentage": completion_percentage,
                "perfectDay": perfect_day,
                "streakBonus": streak_bonus,
                "milestoneBonus": milestone_bonus,
            },
        ))
        await self.db.flush()

        level = await self.update_user_level(user_id, total_xp, day)

        unlocked = []
        if stats is not None:
            unlocked = await AchievementService(self.db).check_achievements(user_id, stats)

        logger.info(
            "Awarded %d XP to user %s for %s (base=%d, bonus=%d)",
            total_xp, user_id, day, base_xp, bonus_xp,
        )

        return XPCalculationResult(
            base_xp=base_xp,
            bonus_xp=bonus_xp,
            total_xp=total_xp,
            breakdown=XPBreakdown(
                task_completion=base_xp,
                streak_bonus=streak_bonus,
                perfect_day_bonus=perfect_day_bonus,
                milestone_bonus=milestone_bonus,
                achievement_bonus=achievement_bonus,
            ),
            level_up=level.level_up,
            new_level=level.current_level,
            achievements_unlocked=[achievement_summary(a) for a in unlocked],
        )

    async def update_user_level(self, user_id: str, xp_to_add: int, day: date | None = None) -> LevelUpdate:
        """Add XP to the user's level row without losing concurrent awards.

        total_xp is only ever changed by an in-database increment. The derived
        columns are then written with a compare-and-set on the total this call
        produced; if another award got in first, its own write wins.
        """
        day = day or datetime.now(timezone.utc).date()

        first = add_xp(0, xp_to_add, existing=False, config=self.config)
        created = await self.db.execute(
            insert_ignore(
                self.db,
                UserLevel.__table__,
                user_id=user_id,
                current_level=first.current_level,
                current_xp=first.current_xp,
                total_xp=first.total_xp,
                xp_to_next_level=first.xp_to_next_level,
                rank=first.rank.value,
            )
        )
        if created.rowcount == 1:
            logger.info("Created level record for user %s with %d XP", user_id, xp_to_add)
            return first

        result = await self.db.execute(
            update(UserLevel)
            .where(UserLevel.user_id == user_id)
            .values(
                total_xp=UserLevel.total_xp + xp_to_add,
                current_xp=UserLevel.total_xp + xp_to_add,
            )
            .returning(UserLevel.total_xp, UserLevel.current_level)
        )
        new_total, stored_level = result.one()

        level = add_xp(new_total - xp_to_add, xp_to_add, current_level=stored_level, config=self.config)
        values: dict[str, Any] = {
            "current_level": level.current_level,
            "xp_to_next_level": level.xp_to_next_level,
            "rank": level.rank.value,
        }
        if level.level_up:
            values["last_level_up"] = day

        result = await self.db.execute(
            update(UserLevel)
            .where(UserLevel.user_id == user_id, UserLevel.total_xp == new_total)
            .values(**values)
        )
        if result.rowcount == 0:
            logger.debug("Level columns for user %s superseded by a newer award", user_id)
            if level.level_up:
                await self.db.execute(
                    update(UserLevel)
                    .where(UserLevel.user_id == user_id)
                    .values(last_level_up=day)
                )

        if level.level_up:
            logger.info("User %s reached level %d (rank %s)", user_id, level.current_level, level.rank.value)

        return level

    async def get_user_level(self, user_id: str) -> UserLevel | None:
        result = await self.db.execute(
            select(UserLevel).where(UserLevel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def _xp_since(self, user_id: str, start: date) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.sum(XPEntry.total_xp), 0))
            .where(XPEntry.user_id == user_id, XPEntry.date >= start)
        )
        return int(result.scalar() or 0)

    async def get_gamification_stats(self, user_id: str, as_of: date | None = None) -> GamificationStats:
        """Get complete gamification progress for a user."""
        as_of = as_of or datetime.now(timezone.utc).date()

        user_level = await self.get_user_level(user_id)

        result = await self.db.execute(
            select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user_id)
        )
        unlocked_count = result.scalar() or 0

        result = await self.db.execute(
            select(func.count(Achievement.id)).where(Achievement.is_active == True)
        )
        total_achievements = result.scalar() or 0

        analytics = await self.analytics.get_user_analytics(user_id, TimeRange.ALL, end_date=as_of)
        period = analytics.period_stats

        position = None
        if user_level is not None:
            position = await LeaderboardService(self.db).get_user_position(user_id)

        return GamificationStats(
            user_id=user_id,
            total_xp=user_level.total_xp if user_level else 0,
            current_level=user_level.current_level if user_level else 1,
            rank=Rank(user_level.rank) if user_level else self.config.default_rank,
            achievements_unlocked=unlocked_count,
            total_achievements=total_achievements,
            current_streak=period.current_streak,
            longest_streak=period.longest_streak,
            perfect_days=period.perfect_days,
            weekly_xp=await self._xp_since(user_id, as_of - timedelta(days=6)),
            monthly_xp=await self._xp_since(user_id, as_of - timedelta(days=29)),
            leaderboard_position=position,
            last_activity_date=as_of,
        )

    async def get_xp_history(self, user_id: str, limit: int = 20) -> list[XPHistoryEntry]:
        """Most recent ledger rows for a user, newest first."""
        result = await self.db.execute(
            select(XPEntry)
            .where(XPEntry.user_id == user_id)
            .order_by(XPEntry.created_at.desc(), XPEntry.id.desc())
            .limit(limit)
        )
        return [
            XPHistoryEntry(
                id=entry.id,
                date=entry.date,
                base_xp=entry.base_xp,
                bonus_xp=entry.bonus_xp,
                total_xp=entry.total_xp,
                source=entry.source,
                metadata=entry.details,
                created_at=entry.created_at,
            )
            for entry in result.scalars().all()
        ]


# =============================================================================
# ACHIEVEMENT CHECKING SERVICE
# =============================================================================

class AchievementService:
    """Service for checking and unlocking achievements."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def check_achievements(self, user_id: str, stats: PeriodStats) -> list[Achievement]:
        """
        Check all active achievements against period stats and unlock the ones now earned.
        Returns only the achievements this call actually unlocked.
        """
        result = await self.db.execute(
            select(Achievement).where(Achievement.is_active == True)
        )
        achievements = result.scalars().all()

        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        unlocked_ids = set(result.scalars().all())

        newly_unlocked = []
        for achievement in achievements:
            if achievement.id in unlocked_ids:
                continue

            try:
                requirement = parse_requirement(achievement.category, achievement.requirements)
            except ValidationError:
                logger.warning(
                    "Skipping achievement %s with unreadable requirements: %r",
                    achievement.id, achievement.requirements,
                )
                continue

            if not requirement.is_met(stats):
                continue

            # The unique (user_id, achievement_id) index decides who wins a race
            inserted = await self.db.execute(
                insert_ignore(
                    self.db,
                    UserAchievement.__table__,
                    user_id=user_id,
                    achievement_id=achievement.id,
                    unlocked_at=_utcnow(),
                    details={
                        "triggeredBy": achievement.category,
                        "value": requirement.stat_value(stats),
                    },
                )
            )
            if inserted.rowcount == 1:
                logger.info("User %s unlocked achievement %s", user_id, achievement.id)
                newly_unlocked.append(achievement)
            else:
                logger.debug("Achievement %s already unlocked for user %s", achievement.id, user_id)

        await self.db.flush()
        return newly_unlocked

    async def get_user_achievements(self, user_id: str) -> list[UserAchievement]:
        result = await self.db.execute(
            select(UserAchievement)
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.unlocked_at.desc())
        )
        return list(result.scalars().all())


# =============================================================================
# LEADERBOARD SERVICE
# =============================================================================

def rank_entries(levels: Sequence[UserLevel]) -> list[LeaderboardEntry]:
    """Assign 1-based positions in the order given."""
    return [
        LeaderboardEntry(
            user_id=level.user_id,
            total_xp=level.total_xp,
            current_level=level.current_level,
            rank=Rank(level.rank),
            position=i,
        )
        for i, level in enumerate(levels, 1)
    ]


class LeaderboardService:
    """Service for leaderboard functionality."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_leaderboard(
        self,
        type: str = "global",
        time_range: str = "ALL",
        limit: int = 100,
    ) -> Leaderboard:
        """Get top users by total XP. Ties are ordered by user id."""
        result = await self.db.execute(
            select(UserLevel)
            .order_by(UserLevel.total_xp.desc(), UserLevel.user_id.asc())
            .limit(limit)
        )
        entries = rank_entries(result.scalars().all())
        now = datetime.now(timezone.utc)

        return Leaderboard(
            id=f"{type}-{time_range}-{int(now.timestamp() * 1000)}",
            type=type,
            time_range=time_range,
            entries=entries,
            last_updated=now,
            total_participants=len(entries),
        )

    async def get_user_position(self, user_id: str) -> int | None:
        """1-based position of a user by total XP, or None without a level record."""
        result = await self.db.execute(
            select(UserLevel.total_xp).where(UserLevel.user_id == user_id)
        )
        total_xp = result.scalar_one_or_none()
        if total_xp is None:
            return None

        # Count users strictly ahead, with the same tie order as the leaderboard
        result = await self.db.execute(
            select(func.count(UserLevel.id)).where(
                (UserLevel.total_xp > total_xp)
                | ((UserLevel.total_xp == total_xp) & (UserLevel.user_id < user_id))
            )
        )
        return (result.scalar() or 0) + 1
