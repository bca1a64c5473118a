"""
Batch Report Module

Collects per-rectangle placement outcomes into a run summary.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .geometry import Point
from .rectangle_detector import DetectionResult, RectangleCandidate

logger = logging.getLogger("BatchReport")


class FailureKind(Enum):
    """Per-candidate failure categories"""
    TEMPLATE_RESOLUTION = "template_resolution"
    LEVEL_RESOLUTION = "level_resolution"
    ACTIVATION = "activation"
    CREATION = "creation"


@dataclass
class PlacementResult:
    """Outcome for one rectangle"""
    width: float
    height: float
    center: Point
    element_ref: Optional[str] = None
    template_name: Optional[str] = None
    level_name: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.element_ref is not None


def format_dimension(value: float) -> str:
    """3 decimals below 1.0, 2 decimals otherwise."""
    if value < 1.0:
        return f"{value:.3f}"
    return f"{value:.2f}"


@dataclass
class BatchReport:
    total_segments: int = 0
    rectangles_detected: int = 0
    segments_consumed: int = 0
    segments_unused: int = 0
    results: List[PlacementResult] = field(default_factory=list)
    rolled_back: bool = False

    @classmethod
    def from_detection(cls, total_segments: int, detection: DetectionResult) -> "BatchReport":
        return cls(
            total_segments=total_segments,
            rectangles_detected=len(detection.candidates),
            segments_consumed=detection.segments_consumed,
            segments_unused=len(detection.unused_segments)
        )

    @property
    def successes(self) -> List[PlacementResult]:
        return [r for r in self.results if r.success]

    @property
    def failures(self) -> List[PlacementResult]:
        return [r for r in self.results if not r.success]

    @property
    def success_count(self) -> int:
        return len(self.successes)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def add_success(self, candidate: RectangleCandidate, element_ref: str,
                    template_name: str, level_name: str) -> PlacementResult:
        analysis = candidate.analysis
        result = PlacementResult(
            width=analysis.width,
            height=analysis.height,
            center=analysis.center,
            element_ref=element_ref,
            template_name=template_name,
            level_name=level_name
        )
        self.results.append(result)
        return result

    def add_failure(self, candidate: RectangleCandidate, kind: FailureKind, reason: str) -> PlacementResult:
        analysis = candidate.analysis
        result = PlacementResult(
            width=analysis.width,
            height=analysis.height,
            center=analysis.center,
            failure_kind=kind,
            reason=reason
        )
        self.results.append(result)
        logger.debug(f"Recorded {kind.value} failure: {reason}")
        return result

    def failure_preview(self, limit: int = 5) -> List[str]:
        """First `limit` failure reasons plus an "... and N more failures" line."""
        reasons = [r.reason for r in self.failures]
        preview = reasons[:limit]
        if len(reasons) > limit:
            preview.append(f"... and {len(reasons) - limit} more failures")
        return preview

    def summary(self, failure_limit: int = 5) -> str:
        """Consolidated end-of-run text."""
        lines = [
            "Batch Column Creation Results:",
            "",
            "Summary:",
            f"  Line segments: {self.total_segments} "
            f"({self.segments_consumed} used in rectangles, {self.segments_unused} unused)",
            f"  Rectangles detected: {self.rectangles_detected}",
            f"  Columns successfully created: {self.success_count}",
            f"  Failed attempts: {self.failure_count}",
        ]

        if self.successes:
            lines.append("")
            lines.append(f"Successfully Created Columns ({self.success_count}):")
            for i, result in enumerate(self.successes, start=1):
                lines.append(
                    f"  {i}. Column {format_dimension(result.width)} x {format_dimension(result.height)} "
                    f"at center ({result.center.x:.2f}, {result.center.y:.2f}) on {result.level_name}"
                )

        if self.failures:
            lines.append("")
            lines.append(f"Failures ({self.failure_count}):")
            for reason in self.failure_preview(failure_limit):
                lines.append(f"  - {reason}")

        lines.append("")
        if self.rolled_back:
            lines.append("No columns were created; all changes were rolled back.")
        elif self.success_count > 0:
            lines.append(f"Created {self.success_count} columns from {self.rectangles_detected} "
                         f"detected rectangles.")

        return "\n".join(lines)


def detection_preview(detection: DetectionResult, total_segments: int, limit: int = 5) -> str:
    """Confirmation text listing detection counts and the first `limit` rectangles."""
    lines = [
        "Analysis Results:",
        f"  Total line segments selected: {total_segments}",
        f"  Rectangles detected: {len(detection.candidates)}",
        f"  Lines used in rectangles: {detection.segments_consumed}",
        f"  Unused lines: {len(detection.unused_segments)}",
    ]

    if detection.candidates:
        lines.append("")
        lines.append("Rectangle Details:")
        for i, candidate in enumerate(detection.candidates[:limit], start=1):
            analysis = candidate.analysis
            lines.append(f"  {i}. Size: {analysis.width:.2f} x {analysis.height:.2f} "
                         f"at ({analysis.center.x:.1f}, {analysis.center.y:.1f})")
        if len(detection.candidates) > limit:
            lines.append(f"  ... and {len(detection.candidates) - limit} more rectangles")

    lines.append("")
    lines.append(f"This will create {len(detection.candidates)} columns (one inside each rectangle).")
    lines.append("Continue with column creation?")
    return "\n".join(lines)
