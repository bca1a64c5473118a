"""Shared test fixtures."""

from collections import Counter
from typing import List

import ezdxf
import pytest

from column_placer.dxf_host import DxfModelHost
from column_placer.errors import ActivationError, CreationError
from column_placer.geometry import LineSegment, segment_from_coords
from column_placer.settings import PlacementSettings
from column_placer.templates import symbol_name_for


def rectangle_segments(x: float, y: float, width: float, height: float, prefix: str = "r") -> List[LineSegment]:
    """4 segments, counter-clockwise from the bottom-left corner."""
    return [
        segment_from_coords(f"{prefix}-bottom", (x, y), (x + width, y)),
        segment_from_coords(f"{prefix}-right", (x + width, y), (x + width, y + height)),
        segment_from_coords(f"{prefix}-top", (x + width, y + height), (x, y + height)),
        segment_from_coords(f"{prefix}-left", (x, y + height), (x, y)),
    ]


def rectangle_grid(sizes, per_size: int, spacing: float = 10.0) -> List[LineSegment]:
    """`per_size` rectangles of every size in `sizes`, one row per size."""
    segments = []
    for row, (width, height) in enumerate(sizes):
        for col in range(per_size):
            segments.extend(rectangle_segments(col * spacing, row * spacing, width, height,
                                               prefix=f"r{row}-{col}"))
    return segments


class RecordingDxfHost(DxfModelHost):
    """DxfModelHost that counts host calls and can fail on demand."""

    def __init__(self, doc, settings=None, log=None):
        super().__init__(doc, settings, log)
        self.calls = Counter()
        self.fail_activation = set()
        self.fail_creation_x = set()

    def get_templates(self):
        self.calls["get_templates"] += 1
        return super().get_templates()

    def load_standard_templates(self):
        self.calls["load_standard_templates"] += 1
        return super().load_standard_templates()

    def derive_template(self, base, symbol_name, dimensions):
        self.calls["derive_template"] += 1
        return super().derive_template(base, symbol_name, dimensions)

    def activate_template(self, entry):
        self.calls["activate_template"] += 1
        if entry.symbol_name in self.fail_activation:
            raise ActivationError(f"Activation refused for {entry}")
        super().activate_template(entry)

    def create_element(self, point, template, level):
        self.calls["create_element"] += 1
        if round(point.x, 6) in self.fail_creation_x:
            raise CreationError(f"Creation refused at x={point.x}")
        return super().create_element(point, template, level)


@pytest.fixture
def make_rectangle():
    return rectangle_segments


@pytest.fixture
def make_grid():
    return rectangle_grid


@pytest.fixture
def settings():
    return PlacementSettings()


@pytest.fixture
def doc():
    return ezdxf.new()


@pytest.fixture
def host(doc, settings):
    return RecordingDxfHost(doc, settings)


@pytest.fixture
def make_host():
    """Fresh RecordingDxfHost over a new document with the given settings."""

    def _make(settings=None):
        return RecordingDxfHost(ezdxf.new(), settings or PlacementSettings())

    return _make


@pytest.fixture
def add_template(host):
    """Create a template block in its own scope; returns the TemplateEntry."""

    def _add(width, height, family="Rectangular Column", symbol=None, active=False,
             width_name="b", height_name="h", on=None):
        target = on or host
        symbol = symbol or f"{family}-{symbol_name_for(width, height)}"
        with target.mutation_scope("Test Templates"):
            return target.create_template(family, symbol, {width_name: width, height_name: height}, active)

    return _add
