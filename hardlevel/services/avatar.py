"""Avatar mood selection from recent progress."""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.models.gamification import AvatarMood, Mood, Pose
from hardlevel.schemas.gamification import AvatarMoodState, MoodTriggers

logger = logging.getLogger(__name__)

# (minimum score, mood, pose), checked top-down
MOOD_TABLE: tuple[tuple[float, Mood, Pose], ...] = (
    (120, Mood.EXCITED, Pose.CELEBRATING),
    (80, Mood.HAPPY, Pose.FLEXING),
    (50, Mood.MOTIVATED, Pose.RUNNING),
    (30, Mood.NEUTRAL, Pose.STANDING),
    (20, Mood.TIRED, Pose.MEDITATING),
)
FALLBACK_MOOD = (Mood.SAD, Pose.SLEEPING)


def mood_score(completion_rate: float, streak_length: int, recent_achievements: int) -> float:
    return completion_rate + streak_length * 5 + recent_achievements * 10


def select_mood(completion_rate: float, streak_length: int, recent_achievements: int) -> tuple[Mood, Pose]:
    score = mood_score(completion_rate, streak_length, recent_achievements)
    for min_score, mood, pose in MOOD_TABLE:
        if score >= min_score:
            return mood, pose
    return FALLBACK_MOOD


class AvatarService:
    """Keeps one mood row per user, overwritten on every update."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_avatar_mood(
        self,
        user_id: str,
        completion_rate: float,
        streak_length: int,
        recent_achievements: int,
    ) -> AvatarMoodState:
        mood, pose = select_mood(completion_rate, streak_length, recent_achievements)
        now = datetime.now(timezone.utc)

        result = await self.db.execute(
            select(AvatarMood).where(AvatarMood.user_id == user_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = AvatarMood(user_id=user_id)
            self.db.add(row)

        row.current_mood = mood.value
        row.pose = pose.value
        row.streak_length = streak_length
        row.completion_rate = completion_rate
        row.recent_achievements = recent_achievements
        row.last_updated = now
        await self.db.flush()

        logger.debug("Avatar for user %s is now %s/%s", user_id, mood.value, pose.value)

        return AvatarMoodState(
            user_id=user_id,
            current_mood=mood,
            pose=pose,
            triggers=MoodTriggers(
                streak_length=streak_length,
                completion_rate=completion_rate,
                recent_achievements=recent_achievements,
            ),
            last_updated=now,
        )

    async def get_avatar_mood(self, user_id: str) -> AvatarMoodState | None:
        result = await self.db.execute(
            select(AvatarMood).where(AvatarMood.user_id == user_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return AvatarMoodState(
            user_id=row.user_id,
            current_mood=Mood(row.current_mood),
            pose=Pose(row.pose),
            triggers=MoodTriggers(
                streak_length=row.streak_length,
                completion_rate=row.completion_rate,
                recent_achievements=row.recent_achievements,
            ),
            last_updated=row.last_updated,
        )
