"""
Level Selector Module

Picks the placement level for a column: the level whose elevation is nearest
to the reference point's z. Ties go to the lower level.
"""

import logging
from typing import Optional, Sequence

from .geometry import Point
from .host import Level

logger = logging.getLogger("LevelSelector")


def select_level(
    reference_point: Point,
    levels: Sequence[Level],
    log: Optional[logging.Logger] = None
) -> Optional[Level]:
    """
    Select the level nearest to `reference_point` in elevation.

    Args:
        reference_point: Point whose z is compared against level elevations
        levels: Candidate levels, any order
        log: Logger (module logger if omitted)

    Returns:
        Nearest level, or None when `levels` is empty
    """
    log = log or logger

    if not levels:
        log.warning("No levels found in model")
        return None

    ordered = sorted(levels, key=lambda level: level.elevation)

    best_level = ordered[0]
    min_distance = abs(best_level.elevation - reference_point.z)

    for level in ordered[1:]:
        level_distance = abs(level.elevation - reference_point.z)
        if level_distance < min_distance:
            min_distance = level_distance
            best_level = level

    log.debug(f"Selected level: {best_level.name} (elevation: {best_level.elevation:.2f})")
    return best_level
