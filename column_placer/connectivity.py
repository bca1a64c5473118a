"""
Connectivity Module

Endpoint index for fast "which segments touch this point" lookups.

Endpoints are quantized to a grid of cell size `tolerance`. Two points within
tolerance of each other always land in the same or in adjacent cells, so a
lookup scans the 3x3 block of cells around the query and then confirms each
hit with an exact distance check.
"""

import logging
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .geometry import LineSegment, Point

logger = logging.getLogger("ConnectivityGraph")

CellKey = Tuple[int, int]


class ConnectivityGraph:
    """
    Maps quantized endpoints to the indices of the segments touching them.

    Indices refer to positions in the segment list the graph was built from,
    and lookups return them in ascending order so callers see the same
    first-match as a linear scan over the input.
    """

    def __init__(self, segments: List[LineSegment], tolerance: float = 1e-6):
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")

        self.segments = list(segments)
        self.tolerance = tolerance
        self._cells: Dict[CellKey, List[int]] = defaultdict(list)

        for index, segment in enumerate(self.segments):
            for endpoint in (segment.start, segment.end):
                bucket = self._cells[self.quantize(endpoint)]
                if not bucket or bucket[-1] != index:
                    bucket.append(index)

        logger.debug(f"Indexed {len(self.segments)} segments into {len(self._cells)} endpoint cells")

    def quantize(self, point: Point) -> CellKey:
        return (math.floor(point.x / self.tolerance), math.floor(point.y / self.tolerance))

    def _nearby_indices(self, point: Point) -> Set[int]:
        cx, cy = self.quantize(point)
        found: Set[int] = set()
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                found.update(self._cells.get((cx + dx, cy + dy), ()))
        return found

    def segments_at(self, point: Point, exclude: Optional[Iterable[int]] = None) -> List[int]:
        """
        Indices of segments with an endpoint within tolerance of `point`.

        Args:
            point: Query point
            exclude: Segment indices to leave out

        Returns:
            Ascending list of segment indices
        """
        excluded = set(exclude) if exclude is not None else set()
        hits = [
            index for index in self._nearby_indices(point)
            if index not in excluded and self.segments[index].touches(point, self.tolerance)
        ]
        return sorted(hits)

    def first_connected(self, point: Point, exclude: Iterable[int]) -> Optional[int]:
        """First segment (in input order) touching `point` that is not excluded."""
        hits = self.segments_at(point, exclude)
        return hits[0] if hits else None

    def degree(self, point: Point) -> int:
        """Number of segments meeting at `point`."""
        return len(self.segments_at(point))
