"""
Preview Renderer Module

Renders a batch run to PNG: input line segments, detected rectangles,
created columns and failed placements.
"""

import logging
import os
from typing import List, Optional, Sequence, Tuple

from .batch_report import BatchReport
from .geometry import LineSegment
from .rectangle_detector import RectangleCandidate

logger = logging.getLogger("PreviewRenderer")

try:
    import matplotlib
    matplotlib.use('Agg')  # Non-interactive backend
    import matplotlib.pyplot as plt
    from matplotlib.collections import LineCollection
    import matplotlib.patches as mpatches
    MATPLOTLIB_AVAILABLE = True
except ImportError:
    MATPLOTLIB_AVAILABLE = False
    logger.warning("matplotlib not available - preview rendering requires matplotlib")


def render_batch_preview(
    segments: Sequence[LineSegment],
    candidates: Sequence[RectangleCandidate],
    report: Optional[BatchReport],
    output_path: str,
    dpi: int = 150,
    figsize: Tuple[int, int] = (12, 9)
) -> Tuple[str, Tuple[float, float, float, float]]:
    """
    Render a batch run to a PNG image.

    Args:
        segments: All input line segments (drawn black)
        candidates: Detected rectangles (outlined blue)
        report: Placement outcomes; created columns green, failures red
        output_path: Path to save PNG image
        dpi: Image resolution
        figsize: Figure size in inches (width, height)

    Returns:
        tuple: (image_path, bounds)
            - image_path: Path to saved PNG
            - bounds: (min_x, min_y, max_x, max_y) in drawing units

    Raises:
        RuntimeError: If matplotlib not available
    """
    if not MATPLOTLIB_AVAILABLE:
        raise RuntimeError("matplotlib required for preview rendering. Install with: pip install matplotlib")

    logger.info(f"Rendering batch preview to: {output_path}")

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    ax.set_facecolor('white')

    lines = []
    all_points: List[Tuple[float, float]] = []

    for segment in segments:
        start = (segment.start.x, segment.start.y)
        end = (segment.end.x, segment.end.y)
        lines.append([start, end])
        all_points.extend([start, end])

    if lines:
        ax.add_collection(LineCollection(lines, colors='black', linewidths=0.5))
        logger.debug(f"Drew {len(lines)} line segments")

    for candidate in candidates:
        analysis = candidate.analysis
        corner = (analysis.center.x - analysis.width / 2, analysis.center.y - analysis.height / 2)
        ax.add_patch(mpatches.Rectangle(
            corner, analysis.width, analysis.height,
            fill=False, edgecolor='blue', linewidth=1.0
        ))

    handles = [mpatches.Patch(edgecolor='blue', fill=False, label=f'Rectangles ({len(candidates)})')]

    if report is not None:
        created = report.successes
        failed = report.failures

        if created:
            ax.plot([r.center.x for r in created], [r.center.y for r in created],
                    'gs', markersize=4, label=f'Columns ({len(created)})')
        if failed:
            ax.plot([r.center.x for r in failed], [r.center.y for r in failed],
                    'rx', markersize=6, label=f'Failed ({len(failed)})')
        logger.debug(f"Drew {len(created)} column markers, {len(failed)} failure markers")

    if all_points:
        x_coords = [p[0] for p in all_points]
        y_coords = [p[1] for p in all_points]
        bounds = (min(x_coords), min(y_coords), max(x_coords), max(y_coords))

        # 5% margin, at least one unit
        margin_x = max((bounds[2] - bounds[0]) * 0.05, 1.0)
        margin_y = max((bounds[3] - bounds[1]) * 0.05, 1.0)

        ax.set_xlim(bounds[0] - margin_x, bounds[2] + margin_x)
        ax.set_ylim(bounds[1] - margin_y, bounds[3] + margin_y)
    else:
        bounds = (0, 0, 1, 1)
        logger.warning("No segments to render, using default bounds")

    ax.set_aspect('equal')
    ax.grid(True, alpha=0.2, linestyle='--', linewidth=0.5)

    line_handles, _ = ax.get_legend_handles_labels()
    ax.legend(handles=handles + line_handles, loc='upper right', fontsize=7)

    ax.set_title(f"Column placement: {os.path.basename(output_path)}", fontsize=10, pad=10)

    plt.savefig(output_path, dpi=dpi, bbox_inches='tight', facecolor='white')
    plt.close(fig)

    logger.info(f"Saved preview to: {output_path}")
    return output_path, bounds
