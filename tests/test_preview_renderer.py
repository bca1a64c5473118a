"""Tests for the PNG preview of a batch run."""

import pytest

pytest.importorskip("matplotlib")

from column_placer.batch_report import BatchReport, FailureKind
from column_placer.geometry import segment_from_coords
from column_placer.preview_renderer import render_batch_preview
from column_placer.rectangle_detector import RectangleDetector


def test_render_batch_preview(tmp_path, make_rectangle):
    segments = (make_rectangle(0, 0, 1, 1, "a") + make_rectangle(10, 0, 2, 2, "b")
                + [segment_from_coords("stray", (0, 20), (5, 20))])
    detection = RectangleDetector().detect(segments)
    report = BatchReport.from_detection(len(segments), detection)
    report.add_success(detection.candidates[0], "AA", "T1", "Level 1")
    report.add_failure(detection.candidates[1], FailureKind.CREATION, "Failed to create column at (11.00, 1.00)")

    output = tmp_path / "preview.png"
    path, bounds = render_batch_preview(segments, detection.candidates, report, str(output))

    assert path == str(output)
    assert output.exists()
    assert output.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
    assert bounds == (0, 0, 12, 20)


def test_render_without_segments(tmp_path):
    path, bounds = render_batch_preview([], [], None, str(tmp_path / "empty.png"))

    assert bounds == (0, 0, 1, 1)
