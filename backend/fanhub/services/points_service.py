"""
Points & Levels Service

Level N costs floor(100 * 1.5 ** (N - 1)) points on top of everything
needed for the levels below it, so level 2 starts at 100 total points,
level 3 at 250, level 4 at 475.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

from fanhub.config.constants import (
    LEVEL_BADGES,
    LEVEL_BASE_POINTS,
    LEVEL_MULTIPLIER,
    LEVEL_TITLES,
    POINTS_CONFIG,
)

logger = logging.getLogger(__name__)


@dataclass
class PointsAward:
    action: str
    awarded: int
    total: int
    previous_level: int
    level: int
    leveled_up: bool
    title: str
    new_badges: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        if self.leveled_up:
            return f"Level up! You are now level {self.level} ({self.title})"
        return f"+{self.awarded} points"


def points_for_level(level: int) -> int:
    """Points needed to complete ``level``."""
    return math.floor(LEVEL_BASE_POINTS * LEVEL_MULTIPLIER ** (level - 1))


def level_threshold(level: int) -> int:
    """Total points at which ``level`` is reached."""
    return sum(points_for_level(i) for i in range(1, level))


def level_from_points(points: int) -> int:
    level = 1
    total_needed = points_for_level(level)
    while total_needed <= points:
        level += 1
        total_needed += points_for_level(level)
    return level


def level_title(level: int) -> str:
    for minimum, title in LEVEL_TITLES:
        if level >= minimum:
            return title
    return LEVEL_TITLES[-1][1]


def level_badges(level: int) -> List[str]:
    """Every level badge held at ``level``."""
    return [badge for minimum, badge in LEVEL_BADGES if level >= minimum]


def award_points(current_points: int, action: str) -> PointsAward:
    """
    Apply ``action`` to a user holding ``current_points``.

    Raises:
        ValueError: ``action`` is not in the points table
    """
    if action not in POINTS_CONFIG:
        raise ValueError(f"Invalid action: {action}")

    awarded = POINTS_CONFIG[action]
    total = current_points + awarded
    previous_level = level_from_points(current_points)
    level = level_from_points(total)
    leveled_up = level > previous_level

    held = set(level_badges(previous_level))
    new_badges = [badge for badge in level_badges(level) if badge not in held]

    if leveled_up:
        logger.info(f"[Points] {action}: level {previous_level} -> {level}, new badges {new_badges}")

    return PointsAward(
        action=action,
        awarded=awarded,
        total=total,
        previous_level=previous_level,
        level=level,
        leveled_up=leveled_up,
        title=level_title(level),
        new_badges=new_badges,
    )


def level_progress(points: int) -> Dict[str, Any]:
    level = level_from_points(points)
    points_in_level = points - level_threshold(level)
    points_needed = points_for_level(level)
    progress = min(100.0, round(points_in_level / points_needed * 100, 2))
    return {
        "points": points,
        "level": level,
        "title": level_title(level),
        "points_in_level": points_in_level,
        "points_needed": points_needed,
        "progress": progress,
    }
