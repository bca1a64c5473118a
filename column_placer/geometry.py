"""
Geometry Module

Plain 2D/3D value types shared by the detector, the validator and the hosts.
Segments are read from the host model and never modified here.
"""

import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Point:
    """Model-space point. Plan geometry keeps z at the drawing elevation."""
    x: float
    y: float
    z: float = 0.0


@dataclass(frozen=True)
class LineSegment:
    """Bounded line owned by the host model"""
    id: str
    start: Point
    end: Point
    layer: str = "0"

    @property
    def length(self) -> float:
        return distance(self.start, self.end)

    def reversed(self) -> "LineSegment":
        """Same segment with start and end swapped."""
        return LineSegment(self.id, self.end, self.start, self.layer)

    def other_end(self, point: Point, tolerance: float) -> Point:
        """
        Return the endpoint opposite to `point`.

        Raises:
            ValueError: If `point` is not within tolerance of either endpoint
        """
        if points_equal(self.start, point, tolerance):
            return self.end
        if points_equal(self.end, point, tolerance):
            return self.start
        raise ValueError(f"Point {point} is not an endpoint of segment {self.id}")

    def touches(self, point: Point, tolerance: float) -> bool:
        return points_equal(self.start, point, tolerance) or points_equal(self.end, point, tolerance)


def distance(p1: Point, p2: Point) -> float:
    """Calculate 3D distance between two points."""
    return math.sqrt((p1.x - p2.x) ** 2 + (p1.y - p2.y) ** 2 + (p1.z - p2.z) ** 2)


def points_equal(p1: Point, p2: Point, tolerance: float) -> bool:
    return distance(p1, p2) <= tolerance


def segment_from_coords(
    segment_id: str,
    start: Tuple[float, float],
    end: Tuple[float, float],
    layer: str = "0"
) -> LineSegment:
    """Build a plan segment (z = 0) from two xy tuples."""
    return LineSegment(segment_id, Point(start[0], start[1]), Point(end[0], end[1]), layer)
