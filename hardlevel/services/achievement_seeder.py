"""Achievement seeder - the default achievement catalog for the 90-day challenge."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.core.database import insert_ignore
from hardlevel.models.gamification import Achievement, AchievementCategory, AchievementType

logger = logging.getLogger(__name__)

_ROMAN = (
    (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"),
    (100, "C"), (90, "XC"), (50, "L"), (40, "XL"),
    (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
)

# Per-category XP for a tier-1 bronze achievement
BASE_XP = {
    AchievementCategory.STREAK: 20,
    AchievementCategory.COMPLETION: 15,
    AchievementCategory.MILESTONE: 25,
    AchievementCategory.WEIGHT: 20,
    AchievementCategory.FASTING: 20,
    AchievementCategory.SPECIAL: 50,
}

TYPE_MULTIPLIER = {
    AchievementType.BRONZE: 1,
    AchievementType.SILVER: 2,
    AchievementType.GOLD: 3,
    AchievementType.PLATINUM: 5,
}


def roman_numeral(num: int) -> str:
    """Convert a positive integer to a Roman numeral."""
    parts = []
    for value, symbol in _ROMAN:
        count, num = divmod(num, value)
        parts.append(symbol * count)
    return "".join(parts)


def get_type(tier: int, max_tier: int) -> AchievementType:
    """Medal type from the tier's position in its line: bottom quarter is bronze."""
    position = tier / max_tier
    if position <= 0.25:
        return AchievementType.BRONZE
    elif position <= 0.50:
        return AchievementType.SILVER
    elif position <= 0.75:
        return AchievementType.GOLD
    return AchievementType.PLATINUM


def calculate_xp(category: AchievementCategory, tier: int, achievement_type: AchievementType) -> int:
    """XP reward, rounded to a multiple of 5 and never below 5."""
    raw = BASE_XP[category] * (1 + (tier - 1) * 0.5) * TYPE_MULTIPLIER[achievement_type]
    return max(5, int(raw / 5 + 0.5) * 5)


def generate_tiered_achievements(
    id_prefix: str,
    name_template: str,
    description_template: str,
    category: AchievementCategory,
    requirement_key: str,
    thresholds: list[int],
    icon: str,
) -> list[dict[str, Any]]:
    """Generate one achievement per threshold, tiers numbered from I."""
    achievements = []
    max_tier = len(thresholds)

    for tier, threshold in enumerate(thresholds, 1):
        achievement_type = get_type(tier, max_tier)
        achievements.append({
            "id": f"{id_prefix}_{threshold}",
            "name": name_template.format(tier=roman_numeral(tier)),
            "description": description_template.format(value=threshold),
            "icon": icon,
            "category": category.value,
            "type": achievement_type.value,
            "xp_reward": calculate_xp(category, tier, achievement_type),
            "requirements": {requirement_key: threshold},
            "is_secret": False,
        })

    return achievements


def generate_all_achievements() -> list[dict[str, Any]]:
    """Generate the full default catalog."""
    achievements = []

    # Consecutive days with at least one task done
    achievements.extend(generate_tiered_achievements(
        id_prefix="streak_days",
        name_template="Unbroken {tier}",
        description_template="Keep a {value}-day completion streak",
        category=AchievementCategory.STREAK,
        requirement_key="streakDays",
        thresholds=[3, 7, 14, 21, 30, 45, 60, 75, 90],
        icon="flame",
    ))

    # Average completion over the period
    achievements.extend(generate_tiered_achievements(
        id_prefix="completion_rate",
        name_template="Consistent {tier}",
        description_template="Reach a {value}% average completion rate",
        category=AchievementCategory.COMPLETION,
        requirement_key="completionRate",
        thresholds=[50, 60, 70, 80, 90, 100],
        icon="chart",
    ))

    # Days with every task done
    achievements.extend(generate_tiered_achievements(
        id_prefix="perfect_days",
        name_template="Flawless {tier}",
        description_template="Complete every task on {value} days",
        category=AchievementCategory.MILESTONE,
        requirement_key="perfectDays",
        thresholds=[1, 5, 10, 20, 30, 50, 75, 90],
        icon="star",
    ))

    # Tracked elsewhere; period stats never unlock these
    achievements.append({
        "id": "weight_first_log",
        "name": "On the Scale",
        "description": "Log your first weigh-in",
        "icon": "scale",
        "category": AchievementCategory.WEIGHT.value,
        "type": AchievementType.BRONZE.value,
        "xp_reward": calculate_xp(AchievementCategory.WEIGHT, 1, AchievementType.BRONZE),
        "requirements": {"entries": 1},
        "is_secret": False,
    })
    achievements.append({
        "id": "fasting_first_complete",
        "name": "Empty Tank",
        "description": "Complete your first fast",
        "icon": "hourglass",
        "category": AchievementCategory.FASTING.value,
        "type": AchievementType.BRONZE.value,
        "xp_reward": calculate_xp(AchievementCategory.FASTING, 1, AchievementType.BRONZE),
        "requirements": {"completedFasts": 1},
        "is_secret": False,
    })
    achievements.append({
        "id": "special_finisher",
        "name": "Ninety Hard",
        "description": "Finish all 90 days of the challenge",
        "icon": "crown",
        "category": AchievementCategory.SPECIAL.value,
        "type": AchievementType.PLATINUM.value,
        "xp_reward": 1000,
        "requirements": {"challengeDays": 90},
        "is_secret": True,
    })

    return achievements


def get_achievement_count() -> int:
    """Return the total number of achievements generated."""
    return len(generate_all_achievements())


async def seed_achievements(db: AsyncSession) -> int:
    """Insert catalog entries that are not in the database yet.

    Existing rows are left untouched. Returns how many were inserted.
    """
    inserted = 0
    for data in generate_all_achievements():
        result = await db.execute(insert_ignore(db, Achievement.__table__, is_active=True, **data))
        inserted += result.rowcount
    await db.flush()

    logger.info("Seeded %d new achievements (%d in catalog)", inserted, get_achievement_count())
    return inserted
