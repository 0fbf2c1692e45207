import os

import pytest

from modscan.core.config import CalibrationSettings, Settings
from modscan.core.types import Algorithm, AlgorithmWeights, AnalyzerResult, ScaleMethod, Zone
from modscan.pipeline import ScreenshotPipeline


def correction(label: bool) -> dict[Algorithm, AnalyzerResult]:
    return {
        Algorithm.BRIGHTNESS: AnalyzerResult(selected=label, confidence=0.8, algorithm=Algorithm.BRIGHTNESS),
        Algorithm.PATTERN: AnalyzerResult(selected=not label, confidence=0.8, algorithm=Algorithm.PATTERN),
    }


def test_process_black_reference_screen(black_1080p):
    with ScreenshotPipeline() as pipeline:
        result = pipeline.process(black_1080p)

    mapping = result.mapping
    assert mapping.scale.method == ScaleMethod.CONSOLIDATED
    assert mapping.scale.scale_factor == pytest.approx(1.0)
    assert (mapping.center.x, mapping.center.y) == (960.0, 540.0)
    assert {e.id for e in mapping.in_zone(Zone.CORE)} == {"body", "shield", "weapon"}

    batch = result.recognition
    assert set(batch.results) == set(mapping.coordinate_map)
    assert batch.stats.selected_count == 0
    assert batch.results["body"].zone == Zone.CORE
    assert set(batch.stats.per_zone) == {Zone.CORE}

    data = result.to_dict()
    assert data["scale"]["method"] == "consolidated"
    assert data["entities"]["body"]["axial"] is None
    assert set(data["recognition"]["results"]) == set(data["entities"])
    assert data["recognition"]["results"]["body"]["zone"] == "core"
    assert data["zone_boundary"]["core_zone_top"] == pytest.approx(460.0)


def test_corrections_trigger_recalibration():
    settings = Settings(calibration=CalibrationSettings(recalibrate_every=3, min_records=1))
    with ScreenshotPipeline(settings=settings) as pipeline:
        pipeline.record_correction("a", correction(True), True)
        pipeline.record_correction("b", correction(False), False)
        assert pipeline.registry.current() == AlgorithmWeights()

        pipeline.record_correction("c", correction(True), True)
        weights = pipeline.registry.current()

    assert weights != AlgorithmWeights()
    assert weights.brightness > weights.pattern


def test_recalibrate_writes_weights_file(tmp_path):
    path = str(tmp_path / "weights.json")
    with ScreenshotPipeline(weights_path=path) as pipeline:
        pipeline.recalibrate()
    assert os.path.exists(path)


def test_persistent_pipeline_reloads_corrections():
    with ScreenshotPipeline.persistent() as pipeline:
        pipeline.record_correction("body", correction(True), True)

    with ScreenshotPipeline.persistent() as pipeline:
        assert len(pipeline.calibration) == 1
        assert pipeline.calibration.records()[0].region_id == "body"


def test_persistent_pipeline_loads_saved_weights():
    with ScreenshotPipeline.persistent() as pipeline:
        pipeline.registry.publish(AlgorithmWeights(brightness=0.7, color=0.1, edge=0.1, pattern=0.1))
        pipeline.recalibrate()  # too few records: saves the published weights

    with ScreenshotPipeline.persistent() as pipeline:
        assert pipeline.registry.current().brightness == pytest.approx(0.7)
