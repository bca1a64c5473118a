"""
Rectangle Validator Module

Confirms that a closed 4-segment loop is an axis-aligned rectangle within the
configured size bounds, and measures it.

A loop passes when its 8 endpoints reduce to exactly 4 distinct corners, its
bounding box is within [min_size, max_size] in both directions, and the corners
form exactly 2 X-levels and 2 Y-levels holding 2 corners each. Parallelograms,
trapezoids and rotated rectangles fail that check. Finally every segment must
be horizontal or vertical, which rejects "bow-tie" loops that cross the box
along its diagonals.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .geometry import LineSegment, Point, points_equal

logger = logging.getLogger("RectangleValidator")

DEFAULT_TOLERANCE = 1e-6
DEFAULT_MIN_SIZE = 0.01
DEFAULT_MAX_SIZE = 50.0


@dataclass
class RectangleAnalysis:
    """Measured rectangle, or the reason it was rejected"""
    is_valid: bool
    corners: List[Point] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0
    center: Optional[Point] = None
    error_message: Optional[str] = None

    @classmethod
    def invalid(cls, message: str, corners: Optional[List[Point]] = None) -> "RectangleAnalysis":
        return cls(is_valid=False, corners=corners or [], error_message=message)

    @property
    def area(self) -> float:
        return self.width * self.height


def distinct_points(points: Sequence[Point], tolerance: float) -> List[Point]:
    """Reduce points to the first representative of each tolerance-equal group."""
    distinct: List[Point] = []
    for point in points:
        if not any(points_equal(p, point, tolerance) for p in distinct):
            distinct.append(point)
    return distinct


def is_axis_aligned_rectangle(corners: Sequence[Point], tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """
    Check that 4 corners sit on exactly 2 X-levels and 2 Y-levels, 2 corners each.
    """
    if len(corners) != 4:
        return False

    x_levels = Counter(round(p.x / tolerance) for p in corners)
    y_levels = Counter(round(p.y / tolerance) for p in corners)

    if len(x_levels) != 2 or len(y_levels) != 2:
        return False

    return all(n == 2 for n in x_levels.values()) and all(n == 2 for n in y_levels.values())


def is_axis_aligned_segment(segment: LineSegment, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    return (abs(segment.end.x - segment.start.x) <= tolerance
            or abs(segment.end.y - segment.start.y) <= tolerance)


def analyze_rectangle(
    segments: Sequence[LineSegment],
    tolerance: float = DEFAULT_TOLERANCE,
    min_size: float = DEFAULT_MIN_SIZE,
    max_size: float = DEFAULT_MAX_SIZE,
    log: Optional[logging.Logger] = None
) -> RectangleAnalysis:
    """
    Analyze a 4-segment loop.

    Args:
        segments: The loop, in any order
        tolerance: Endpoint equality tolerance
        min_size: Smallest accepted width/height (inclusive)
        max_size: Largest accepted width/height (inclusive)
        log: Logger to report rejections to

    Returns:
        RectangleAnalysis; `is_valid` is False with `error_message` set on rejection
    """
    log = log or logger

    if len(segments) != 4:
        message = f"expected 4 lines, got {len(segments)}"
        log.warning(f"Rectangle analysis failed: {message}")
        return RectangleAnalysis.invalid(message)

    endpoints = [p for segment in segments for p in (segment.start, segment.end)]
    corners = distinct_points(endpoints, tolerance)

    if len(corners) != 4:
        message = (f"found {len(corners)} unique corner points (need exactly 4) "
                   f"from {len(endpoints)} line endpoints")
        log.warning(f"Rectangle analysis failed: {message}")
        return RectangleAnalysis.invalid(message, corners)

    min_x = min(p.x for p in corners)
    max_x = max(p.x for p in corners)
    min_y = min(p.y for p in corners)
    max_y = max(p.y for p in corners)

    width = max_x - min_x
    height = max_y - min_y
    center = Point((min_x + max_x) / 2, (min_y + max_y) / 2, corners[0].z)

    if width < min_size or height < min_size:
        message = f"rectangle is too small: {width:.3f} x {height:.3f} (minimum {min_size:.3f})"
        log.warning(f"Rectangle size validation failed: {message}")
        return RectangleAnalysis.invalid(message, corners)

    if width > max_size or height > max_size:
        message = f"rectangle is too large: {width:.3f} x {height:.3f} (maximum {max_size:.1f})"
        log.warning(f"Rectangle size validation failed: {message}")
        return RectangleAnalysis.invalid(message, corners)

    if not is_axis_aligned_rectangle(corners, tolerance):
        message = "4 points do not form an axis-aligned rectangle"
        log.warning(f"Shape analysis failed: {message}")
        return RectangleAnalysis.invalid(message, corners)

    if not all(is_axis_aligned_segment(segment, tolerance) for segment in segments):
        message = "lines are not all horizontal or vertical"
        log.warning(f"Shape analysis failed: {message}")
        return RectangleAnalysis.invalid(message, corners)

    log.debug(f"Valid rectangle analyzed: {width:.3f} x {height:.3f} at ({center.x:.2f}, {center.y:.2f})")

    return RectangleAnalysis(
        is_valid=True,
        corners=corners,
        width=width,
        height=height,
        center=center
    )
