"""Tests for settings defaults and JSON loading."""

import json
import logging

import pytest

from column_placer.host import Level
from column_placer.settings import PlacementSettings, load_settings


def test_defaults():
    settings = PlacementSettings()

    assert settings.tolerance == 1e-6
    assert settings.min_size == 0.01
    assert settings.max_size == 50.0
    assert settings.single_max_size == 10.0
    assert settings.template_match_tolerance == 0.01
    assert settings.allow_template_derivation is True
    assert settings.levels == [Level("Level 1", 0.0)]
    assert settings.dimension_probes["width"] == ["b", "Width", "Depth", "d"]
    assert settings.dimension_probes["height"] == ["h", "Height", "t"]


@pytest.mark.parametrize("kwargs", [
    {"tolerance": 0},
    {"min_size": -1},
    {"min_size": 5, "max_size": 1},
    {"template_match_tolerance": -0.1},
    {"width_parameter_names": []},
    {"standard_template_sizes": [(1.0, 0.0)]},
    {"failure_preview_limit": -1},
    {"tolerance": "1e-6"},
    {"max_size": None},
    {"standard_template_sizes": [1.0]},
])
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        PlacementSettings(**kwargs)


@pytest.mark.parametrize("data", [
    {"tolerance": "abc"},
    {"min_size": True},
    {"failure_preview_limit": "five"},
    {"standard_template_sizes": [1.0]},
    {"standard_template_sizes": [[1.0, 2.0, 3.0]]},
    {"standard_template_sizes": "1x1"},
    {"levels": {"name": "L1", "elevation": 0}},
])
def test_from_dict_rejects_wrongly_typed_values(data):
    with pytest.raises(ValueError):
        PlacementSettings.from_dict(data)


def test_from_dict_coerces_numeric_strings():
    settings = PlacementSettings.from_dict({"tolerance": "1e-6", "max_size": "20", "failure_preview_limit": "3"})

    assert settings.tolerance == 1e-6
    assert settings.max_size == 20.0
    assert settings.failure_preview_limit == 3


def test_load_defaults_without_path():
    assert load_settings() == PlacementSettings()


def test_load_from_json(tmp_path, caplog):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({
        "max_size": 20,
        "allow_template_derivation": False,
        "levels": [{"name": "Ground", "elevation": 0}, {"name": "First", "elevation": 3.5}],
        "standard_template_sizes": [[0.4, 0.4]],
        "colour": "blue",
    }))

    with caplog.at_level(logging.WARNING):
        settings = load_settings(str(path))

    assert settings.max_size == 20
    assert settings.allow_template_derivation is False
    assert settings.levels == [Level("Ground", 0.0), Level("First", 3.5)]
    assert settings.standard_template_sizes == [(0.4, 0.4)]
    assert "Ignoring unknown setting 'colour'" in caplog.text


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "missing.json"))


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"levels": [{"name": "L1"}]}'])
def test_load_invalid_file(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content)

    with pytest.raises(ValueError):
        load_settings(str(path))
