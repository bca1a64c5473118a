"""
Rectangle Detector Module

Groups loose LINE segments into closed 4-segment rectangles.

The search is greedy and input-order dependent: every unused segment, in
order, seeds a directed walk of 3 extensions, each taking the first unused
segment (in input order) that touches the current end. The walk must close on
the seed's start point and pass the validator; only then are its 4 segments
taken out of the available pool. A segment consumed by an earlier loop is not
offered to a later, possibly better-fitting one.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

from .connectivity import ConnectivityGraph
from .geometry import LineSegment, points_equal
from .rectangle_validator import (
    DEFAULT_MAX_SIZE,
    DEFAULT_MIN_SIZE,
    DEFAULT_TOLERANCE,
    RectangleAnalysis,
    analyze_rectangle,
)

logger = logging.getLogger("RectangleDetector")


@dataclass
class RectangleCandidate:
    """4 segments in loop order plus their measurements"""
    segments: List[LineSegment]
    analysis: RectangleAnalysis

    @property
    def segment_ids(self) -> List[str]:
        return [segment.id for segment in self.segments]


@dataclass
class DetectionResult:
    candidates: List[RectangleCandidate] = field(default_factory=list)
    unused_segments: List[LineSegment] = field(default_factory=list)

    @property
    def segments_consumed(self) -> int:
        return sum(len(c.segments) for c in self.candidates)


class RectangleDetector:
    """
    Detects axis-aligned rectangles among line segments.

    Args:
        tolerance: Endpoint matching tolerance
        min_size: Smallest accepted rectangle side
        max_size: Largest accepted rectangle side
        log: Logger for detection decisions (module logger if omitted)
    """

    def __init__(
        self,
        tolerance: float = DEFAULT_TOLERANCE,
        min_size: float = DEFAULT_MIN_SIZE,
        max_size: float = DEFAULT_MAX_SIZE,
        log: Optional[logging.Logger] = None
    ):
        self.tolerance = tolerance
        self.min_size = min_size
        self.max_size = max_size
        self.logger = log or logger

    def detect(self, segments: Sequence[LineSegment]) -> DetectionResult:
        """
        Find rectangles among `segments`.

        Args:
            segments: Input segments; order decides which loop wins a shared segment

        Returns:
            DetectionResult with candidates in discovery order and the unused segments
            in input order
        """
        segments = list(segments)
        graph = ConnectivityGraph(segments, self.tolerance)
        used: Set[int] = set()
        result = DetectionResult()

        self.logger.info(f"Starting rectangle detection with {len(segments)} line segments")

        for seed in range(len(segments)):
            if seed in used:
                continue

            loop = self._walk_loop(graph, seed, used)
            if loop is None:
                self.logger.debug(f"No rectangle found starting from segment {segments[seed].id}")
                continue

            loop_segments = [segments[i] for i in loop]
            analysis = analyze_rectangle(
                loop_segments, self.tolerance, self.min_size, self.max_size, self.logger
            )
            if not analysis.is_valid:
                self.logger.debug(f"Closed loop from segment {segments[seed].id} rejected: "
                                  f"{analysis.error_message}")
                continue

            used.update(loop)
            result.candidates.append(RectangleCandidate(loop_segments, analysis))
            self.logger.info(f"Found rectangle {analysis.width:.3f} x {analysis.height:.3f} "
                             f"at ({analysis.center.x:.2f}, {analysis.center.y:.2f}) "
                             f"from segments {[s.id for s in loop_segments]}")

        result.unused_segments = [s for i, s in enumerate(segments) if i not in used]

        self.logger.info(f"Rectangle detection complete: found {len(result.candidates)} rectangles "
                         f"from {len(segments)} lines ({len(result.unused_segments)} unused)")
        return result

    def _walk_loop(self, graph: ConnectivityGraph, seed: int, used: Set[int]) -> Optional[List[int]]:
        """Directed walk from the seed's end point; None unless it closes after 3 extensions."""
        segments = graph.segments
        start_point = segments[seed].start
        current_end = segments[seed].end
        chosen = [seed]

        for _ in range(3):
            next_index = graph.first_connected(current_end, used.union(chosen))
            if next_index is None:
                return None

            chosen.append(next_index)
            current_end = segments[next_index].other_end(current_end, self.tolerance)

        if not points_equal(current_end, start_point, self.tolerance):
            return None

        return chosen
