"""Tests for the command-line entry point."""

import json

import ezdxf
import pytest

from column_placer.__main__ import EXIT_CANCELLED, EXIT_FAILURE, EXIT_SUCCESS, main


def _write_drawing(path, rectangles, layer="0"):
    doc = ezdxf.new()
    msp = doc.modelspace()
    for x, y, w, h in rectangles:
        corners = [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]
        for i in range(4):
            msp.add_line(corners[i], corners[(i + 1) % 4], dxfattribs={"layer": layer})
    doc.saveas(path)
    return path


def test_batch_run_writes_output(tmp_path, capsys):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1), (5, 0, 2, 3)])
    output = tmp_path / "out.dxf"

    code = main([str(source), "-o", str(output), "--yes"])

    assert code == EXIT_SUCCESS
    assert "Created 2 columns from 2 detected rectangles." in capsys.readouterr().out
    inserts = ezdxf.readfile(output).modelspace().query("INSERT")
    assert len(inserts) == 2


def test_default_output_name(tmp_path):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1)])

    assert main([str(source), "--yes"]) == EXIT_SUCCESS
    assert (tmp_path / "plan_columns.dxf").exists()


def test_console_prompt_decline(tmp_path, monkeypatch):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1)])
    output = tmp_path / "out.dxf"
    monkeypatch.setattr("builtins.input", lambda prompt="": "n")

    assert main([str(source), "-o", str(output)]) == EXIT_CANCELLED
    assert not output.exists()


def test_layer_filter_and_settings(tmp_path):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1)], layer="SKETCH")
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"segment_layers": ["OUTLINE"]}))

    # no lines on OUTLINE
    assert main([str(source), "--yes", "--settings", str(settings)]) == EXIT_CANCELLED
    assert main([str(source), "--yes", "--layer", "SKETCH", "-o", str(tmp_path / "o.dxf")]) == EXIT_SUCCESS


def test_single_mode(tmp_path):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 0.5, 0.5)])
    output = tmp_path / "out.dxf"

    assert main([str(source), "--single", "--yes", "-o", str(output)]) == EXIT_SUCCESS
    assert len(ezdxf.readfile(output).modelspace().query("INSERT")) == 1


def test_failures_exit_with_error(tmp_path):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1)])
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"standard_template_sizes": []}))
    output = tmp_path / "out.dxf"

    assert main([str(source), "--yes", "--settings", str(settings), "-o", str(output)]) == EXIT_FAILURE
    assert not output.exists()
    assert main([str(tmp_path / "missing.dxf")]) == EXIT_FAILURE


@pytest.mark.parametrize("values", [{"tolerance": "tiny"}, {"standard_template_sizes": [1.0]}])
def test_wrongly_typed_settings_exit_with_error(tmp_path, values):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1)])
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps(values))

    assert main([str(source), "--yes", "--settings", str(settings)]) == EXIT_FAILURE
    assert not (tmp_path / "plan_columns.dxf").exists()


def test_unreadable_template_library_exits_with_error(tmp_path):
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1)])
    library = tmp_path / "lib.dxf"
    library.write_text("not a drawing\n")
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"template_library": str(library)}))

    assert main([str(source), "--yes", "--settings", str(settings)]) == EXIT_FAILURE
    assert not (tmp_path / "plan_columns.dxf").exists()


def test_preview_option(tmp_path):
    pytest.importorskip("matplotlib")
    source = _write_drawing(tmp_path / "plan.dxf", [(0, 0, 1, 1)])
    preview = tmp_path / "preview.png"

    assert main([str(source), "--yes", "--preview", str(preview), "-o", str(tmp_path / "o.dxf")]) == EXIT_SUCCESS
    assert preview.exists()
