"""Level curve and rank table.

Level 1 spans 0-199 XP; from level 2 on each level is 100 XP wide and
starts at 100 * level (200, 300, 400, ...).
"""

from hardlevel.models.gamification import Rank
from hardlevel.schemas.config import GamificationConfig
from hardlevel.schemas.gamification import LevelUpdate

DEFAULT_CONFIG = GamificationConfig()


# =============================================================================
# LEVEL CALCULATIONS
# =============================================================================

def level_from_xp(total_xp: int, config: GamificationConfig = DEFAULT_CONFIG) -> int:
    """Calculate level from total XP."""
    return max(1, total_xp // config.xp_per_level)


def xp_required_for_level(level: int, config: GamificationConfig = DEFAULT_CONFIG) -> int:
    """Total XP at which a level starts."""
    if level <= 1:
        return 0
    return config.xp_per_level * level


def xp_to_next_level(total_xp: int, config: GamificationConfig = DEFAULT_CONFIG) -> int:
    level = level_from_xp(total_xp, config)
    return max(0, xp_required_for_level(level + 1, config) - total_xp)


def rank_for_level(level: int, config: GamificationConfig = DEFAULT_CONFIG) -> Rank:
    """Determine rank from level, highest threshold first."""
    for min_level, rank in sorted(config.rank_thresholds, key=lambda item: item[0], reverse=True):
        if level >= min_level:
            return rank
    return config.default_rank


def add_xp(
    existing_total: int,
    delta: int,
    existing: bool = True,
    current_level: int | None = None,
    config: GamificationConfig = DEFAULT_CONFIG,
) -> LevelUpdate:
    """Apply an XP award to a level record.

    A first award (existing=False) creates the record at level 1 whatever
    its size; the next award moves it to the level its total implies.
    `current_level` is the level stored on the record; level-ups are measured
    against it, falling back to the level of `existing_total`.
    """
    if not existing:
        return LevelUpdate(
            current_level=1,
            current_xp=delta,
            total_xp=delta,
            xp_to_next_level=max(0, xp_required_for_level(2, config) - delta),
            rank=rank_for_level(1, config),
            level_up=False,
        )

    new_total = existing_total + delta
    new_level = level_from_xp(new_total, config)
    if current_level is None:
        current_level = level_from_xp(existing_total, config)
    level_up = new_level > current_level

    return LevelUpdate(
        current_level=new_level,
        current_xp=new_total,
        total_xp=new_total,
        xp_to_next_level=xp_to_next_level(new_total, config),
        rank=rank_for_level(new_level, config),
        level_up=level_up,
    )
