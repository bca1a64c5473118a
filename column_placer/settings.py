"""
Settings Module

Run configuration for batch column placement, with JSON loading.

Example settings file:
    {
        "tolerance": 1e-6,
        "min_size": 0.01,
        "max_size": 50.0,
        "allow_template_derivation": true,
        "levels": [{"name": "Level 1", "elevation": 0.0},
                   {"name": "Level 2", "elevation": 12.0}],
        "segment_layers": ["COLUMN-OUTLINE"]
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .host import Level
from .templates import HEIGHT_PARAMETER_NAMES, WIDTH_PARAMETER_NAMES

logger = logging.getLogger("Settings")

DEFAULT_BASE_FAMILY_NAMES = ["Rectangular Column", "Concrete-Rectangular-Column", "Steel-Column", "Column"]
DEFAULT_STANDARD_SIZES = [(1.0, 1.0), (1.5, 1.5), (2.0, 2.0), (1.0, 2.0), (2.0, 3.0)]

FLOAT_SETTINGS = ("tolerance", "min_size", "max_size", "single_max_size", "template_match_tolerance")
INT_SETTINGS = ("failure_preview_limit", "rectangle_preview_limit")


@dataclass
class PlacementSettings:
    tolerance: float = 1e-6
    min_size: float = 0.01
    max_size: float = 50.0
    single_max_size: float = 10.0
    template_match_tolerance: float = 0.01
    allow_template_derivation: bool = True
    preferred_family: Optional[str] = None
    base_family_names: List[str] = field(default_factory=lambda: list(DEFAULT_BASE_FAMILY_NAMES))
    width_parameter_names: List[str] = field(default_factory=lambda: list(WIDTH_PARAMETER_NAMES))
    height_parameter_names: List[str] = field(default_factory=lambda: list(HEIGHT_PARAMETER_NAMES))
    standard_family_name: str = "Rectangular Column"
    standard_template_sizes: List[Tuple[float, float]] = field(
        default_factory=lambda: list(DEFAULT_STANDARD_SIZES)
    )
    template_library: Optional[str] = None
    column_layer: str = "S-COLS"
    levels: List[Level] = field(default_factory=lambda: [Level("Level 1", 0.0)])
    segment_layers: Optional[List[str]] = None
    failure_preview_limit: int = 5
    rectangle_preview_limit: int = 5

    def __post_init__(self):
        self.validate()

    @property
    def dimension_probes(self) -> Dict[str, List[str]]:
        return {"width": self.width_parameter_names, "height": self.height_parameter_names}

    def validate(self) -> None:
        """
        Raises:
            ValueError: If any value is out of range or of the wrong type
        """
        for name in FLOAT_SETTINGS + INT_SETTINGS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")

        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.min_size <= 0:
            raise ValueError(f"min_size must be positive, got {self.min_size}")
        if self.max_size < self.min_size:
            raise ValueError(f"max_size ({self.max_size}) is smaller than min_size ({self.min_size})")
        if self.single_max_size < self.min_size:
            raise ValueError(f"single_max_size ({self.single_max_size}) is smaller than "
                             f"min_size ({self.min_size})")
        if self.template_match_tolerance < 0:
            raise ValueError(f"template_match_tolerance must not be negative, "
                             f"got {self.template_match_tolerance}")
        if not self.width_parameter_names or not self.height_parameter_names:
            raise ValueError("width_parameter_names and height_parameter_names must not be empty")
        for width, height in map(_parse_size, self.standard_template_sizes):
            if width <= 0 or height <= 0:
                raise ValueError(f"standard template size must be positive, got {width} x {height}")
        if self.failure_preview_limit < 0 or self.rectangle_preview_limit < 0:
            raise ValueError("preview limits must not be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlacementSettings":
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}

        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown setting '{key}'")
                continue
            kwargs[key] = value

        for key in FLOAT_SETTINGS:
            if key in kwargs:
                kwargs[key] = _coerce(key, kwargs[key], float)
        for key in INT_SETTINGS:
            if key in kwargs:
                kwargs[key] = _coerce(key, kwargs[key], int)

        if "levels" in kwargs:
            kwargs["levels"] = [_parse_level(item) for item in _as_list("levels", kwargs["levels"])]
        if "standard_template_sizes" in kwargs:
            kwargs["standard_template_sizes"] = [
                _parse_size(item) for item in _as_list("standard_template_sizes", kwargs["standard_template_sizes"])
            ]

        return cls(**kwargs)


def _coerce(key: str, value: Any, kind: type) -> Any:
    # bool is an int subclass, JSON true/false is never a number here
    if isinstance(value, bool):
        raise ValueError(f"Invalid value for '{key}': {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for '{key}': {value!r}") from e


def _as_list(key: str, value: Any) -> List[Any]:
    if not isinstance(value, list):
        raise ValueError(f"Invalid value for '{key}': expected a list, got {value!r}")
    return value


def _parse_size(item: Any) -> Tuple[float, float]:
    try:
        width, height = item
        return float(width), float(height)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid template size {item!r}: expected [width, height]") from e


def _parse_level(item: Any) -> Level:
    try:
        return Level(str(item["name"]), float(item["elevation"]))
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid level entry {item!r}: expected name and elevation") from e


def load_settings(path: Optional[str] = None) -> PlacementSettings:
    """
    Load settings from a JSON file.

    Args:
        path: JSON file; defaults are returned when None

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not valid JSON or holds invalid values
    """
    if path is None:
        return PlacementSettings()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Invalid settings file {path}: top level must be an object")

    settings = PlacementSettings.from_dict(data)
    logger.info(f"Loaded settings from {path}")
    return settings
