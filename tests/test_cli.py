import json
import os

import cv2
import numpy as np
import pytest
from typer.testing import CliRunner

from modscan.cli.main import app
from modscan.core.config import get_settings


runner = CliRunner()


@pytest.fixture
def screenshot(tmp_path) -> str:
    path = str(tmp_path / "shot.png")
    cv2.imwrite(path, np.zeros((1080, 1920, 3), dtype=np.uint8))
    return path


def test_weights_defaults():
    result = runner.invoke(app, ["weights"])
    assert result.exit_code == 0
    assert "defaults" in result.output
    assert "brightness" in result.output


def test_map_prints_core_entities(screenshot):
    result = runner.invoke(app, ["map", screenshot])
    assert result.exit_code == 0, result.output
    for eid in ("body", "shield", "weapon"):
        assert eid in result.output
    for name in ("Body", "Shield", "Weapon"):
        assert name in result.output
    assert "Scale: 1.000" in result.output


def test_map_missing_file_fails(tmp_path):
    result = runner.invoke(app, ["map", str(tmp_path / "nope.png")])
    assert result.exit_code == 1


def test_map_with_bad_layout_fails(screenshot, tmp_path):
    layout = tmp_path / "layout.json"
    layout.write_text(json.dumps({"reference_spacing": -1}), encoding="utf-8")
    result = runner.invoke(app, ["map", screenshot, "--layout", str(layout)])
    assert result.exit_code == 1


def test_analyze_correct_recalibrate(screenshot, tmp_path):
    saved = tmp_path / "out" / "results.json"
    result = runner.invoke(app, ["analyze", screenshot, "--save", str(saved)])
    assert result.exit_code == 0, result.output
    data = json.loads(saved.read_text(encoding="utf-8"))
    assert set(data["recognition"]["results"]) >= {"body", "shield", "weapon"}

    result = runner.invoke(app, ["correct", str(saved), "body", "--unselected"])
    assert result.exit_code == 0, result.output
    assert "Recorded body as unselected (1 corrections)" in result.output

    cal = get_settings().calibration
    log = json.loads(open(cal.store_path, encoding="utf-8").read())
    assert log["corrections"][0]["region_id"] == "body"
    assert log["corrections"][0]["user_label"] is False

    result = runner.invoke(app, ["recalibrate"])
    assert result.exit_code == 0, result.output
    assert "1 corrections" in result.output
    assert os.path.exists(cal.weights_path)

    result = runner.invoke(app, ["weights"])
    assert cal.weights_path in result.output


def test_correct_unknown_region(screenshot, tmp_path):
    saved = tmp_path / "results.json"
    runner.invoke(app, ["analyze", screenshot, "--save", str(saved)])
    result = runner.invoke(app, ["correct", str(saved), "slot_9_9", "--selected"])
    assert result.exit_code == 1
