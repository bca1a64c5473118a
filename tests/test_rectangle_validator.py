"""Tests for 4-segment rectangle analysis."""

import logging

import pytest

from column_placer.geometry import Point, segment_from_coords
from column_placer.rectangle_validator import analyze_rectangle, distinct_points, is_axis_aligned_rectangle


def test_valid_rectangle_measurements(make_rectangle):
    analysis = analyze_rectangle(make_rectangle(2, 3, 4, 1.5))

    assert analysis.is_valid
    assert analysis.width == pytest.approx(4)
    assert analysis.height == pytest.approx(1.5)
    assert analysis.center == Point(4, 3.75, 0)
    assert analysis.area == pytest.approx(6)
    assert len(analysis.corners) == 4
    assert analysis.error_message is None


def test_segment_order_does_not_matter(make_rectangle):
    segments = make_rectangle(0, 0, 3, 2)
    shuffled = [segments[2], segments[0].reversed(), segments[3], segments[1]]

    assert analyze_rectangle(shuffled).is_valid


def test_wrong_segment_count(make_rectangle):
    analysis = analyze_rectangle(make_rectangle(0, 0, 1, 1)[:3])

    assert not analysis.is_valid
    assert "expected 4 lines" in analysis.error_message


def test_too_many_corners():
    segments = [
        segment_from_coords("a", (0, 0), (1, 0)),
        segment_from_coords("b", (1, 0), (1, 1)),
        segment_from_coords("c", (1, 1), (0, 1)),
        segment_from_coords("d", (0, 1), (0, 0.5)),
    ]
    analysis = analyze_rectangle(segments)

    assert not analysis.is_valid
    assert "5 unique corner points" in analysis.error_message


def test_parallelogram_is_rejected(caplog):
    segments = [
        segment_from_coords("a", (0, 0), (4, 0)),
        segment_from_coords("b", (4, 0), (5, 3)),
        segment_from_coords("c", (5, 3), (1, 3)),
        segment_from_coords("d", (1, 3), (0, 0)),
    ]

    with caplog.at_level(logging.WARNING):
        analysis = analyze_rectangle(segments)

    assert not analysis.is_valid
    assert analysis.error_message == "4 points do not form an axis-aligned rectangle"
    assert "axis-aligned" in caplog.text


def test_bow_tie_loop_is_rejected(caplog):
    # corners of a 2 x 1 box, joined across both diagonals
    segments = [
        segment_from_coords("bottom", (0, 0), (2, 0)),
        segment_from_coords("diagonal-1", (2, 0), (0, 1)),
        segment_from_coords("top", (0, 1), (2, 1)),
        segment_from_coords("diagonal-2", (2, 1), (0, 0)),
    ]
    assert is_axis_aligned_rectangle([Point(0, 0), Point(2, 0), Point(0, 1), Point(2, 1)])

    with caplog.at_level(logging.WARNING):
        analysis = analyze_rectangle(segments)

    assert not analysis.is_valid
    assert analysis.error_message == "lines are not all horizontal or vertical"
    assert "horizontal or vertical" in caplog.text


@pytest.mark.parametrize("width, height, valid", [
    (0.01, 1.0, True),
    (0.0099, 1.0, False),
    (1.0, 0.01, True),
    (1.0, 0.0099, False),
    (50.0, 1.0, True),
    (50.01, 1.0, False),
    (1.0, 50.0, True),
    (1.0, 50.01, False),
])
def test_size_bounds_are_inclusive(make_rectangle, width, height, valid):
    analysis = analyze_rectangle(make_rectangle(0, 0, width, height), min_size=0.01, max_size=50.0)

    assert analysis.is_valid is valid
    if not valid:
        assert "too" in analysis.error_message


def test_rejection_is_logged_to_injected_logger(make_rectangle, caplog):
    log = logging.getLogger("test.validator")
    with caplog.at_level(logging.WARNING, logger="test.validator"):
        analyze_rectangle(make_rectangle(0, 0, 100, 1), log=log)

    assert any(record.name == "test.validator" for record in caplog.records)


def test_distinct_points_merges_within_tolerance():
    points = [Point(0, 0), Point(1e-7, 0), Point(1, 0)]
    assert distinct_points(points, 1e-6) == [Point(0, 0), Point(1, 0)]


def test_axis_aligned_needs_two_levels_of_two():
    assert is_axis_aligned_rectangle([Point(0, 0), Point(2, 0), Point(2, 1), Point(0, 1)])
    assert not is_axis_aligned_rectangle([Point(0, 0), Point(4, 0), Point(5, 3), Point(1, 3)])
    assert not is_axis_aligned_rectangle([Point(0, 0), Point(2, 0), Point(2, 1)])
