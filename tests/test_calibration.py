import pytest

from modscan.core.config import CalibrationSettings
from modscan.core.types import Algorithm, AlgorithmWeights, AnalyzerResult, CalibrationRecord
from modscan.recognition.calibration import (
    CalibrationStore,
    Recalibrator,
    WeightsRegistry,
    algorithm_accuracy,
    load_weights_file,
    save_weights_file,
    weights_from_records,
)
from modscan.storage import JsonFileStore


def results_for(label: bool, correct: dict[Algorithm, bool]) -> dict[Algorithm, AnalyzerResult]:
    return {
        alg: AnalyzerResult(selected=label if ok else not label, confidence=0.7, algorithm=alg)
        for alg, ok in correct.items()
    }


def fill(store: CalibrationStore, n: int, brightness_correct: int, pattern_correct: int) -> None:
    for i in range(n):
        label = i % 2 == 0
        store.record_correction(
            f"r{i}",
            results_for(
                label,
                {
                    Algorithm.BRIGHTNESS: i < brightness_correct,
                    Algorithm.PATTERN: i < pattern_correct,
                },
            ),
            label,
        )


def test_recalibration_follows_accuracy():
    store = CalibrationStore()
    registry = WeightsRegistry()
    before = registry.current()
    fill(store, 100, brightness_correct=95, pattern_correct=50)

    after = Recalibrator(store, registry, CalibrationSettings()).recalibrate()

    assert registry.current() == after
    ratio_before = before.brightness / before.pattern
    ratio_after = after.brightness / after.pattern
    assert ratio_after > ratio_before
    assert sum(after.as_dict().values()) == pytest.approx(1.0)


def test_recalibration_is_idempotent():
    store = CalibrationStore()
    fill(store, 30, brightness_correct=20, pattern_correct=10)
    recal = Recalibrator(store, WeightsRegistry(), CalibrationSettings())
    assert recal.recalibrate() == recal.recalibrate()


def test_too_few_records_keeps_weights():
    store = CalibrationStore()
    fill(store, 5, brightness_correct=5, pattern_correct=0)
    custom = AlgorithmWeights(brightness=0.1, color=0.2, edge=0.3, pattern=0.4)
    registry = WeightsRegistry(custom)
    assert Recalibrator(store, registry, CalibrationSettings(min_records=10)).recalibrate() == custom
    assert registry.current() is custom


def test_floor_prevents_zero_weight():
    records = [
        CalibrationRecord(f"r{i}", results_for(True, {Algorithm.EDGE: False}), True) for i in range(200)
    ]
    weights = weights_from_records(records, floor=0.05)
    assert weights.edge > 0
    assert weights.edge < weights.brightness


def test_failed_results_are_not_counted():
    failed = AnalyzerResult(selected=False, confidence=0.0, algorithm=Algorithm.COLOR, error="boom")
    records = [CalibrationRecord("r", {Algorithm.COLOR: failed}, True)]
    assert algorithm_accuracy(records)[Algorithm.COLOR] == pytest.approx(0.5)


def test_store_persists_records(tmp_path):
    path = str(tmp_path / "corrections.json")
    store = CalibrationStore(JsonFileStore(path))
    fill(store, 3, brightness_correct=3, pattern_correct=1)

    reloaded = CalibrationStore(JsonFileStore(path))
    assert len(reloaded) == 3
    first = reloaded.records()[0]
    assert first.region_id == "r0"
    assert first.analyzer_results[Algorithm.BRIGHTNESS].selected is True
    assert first.user_label is True


def test_prune_drops_old_records():
    store = CalibrationStore()
    store.record_correction("old", {}, True, timestamp=1000.0)
    store.record_correction("new", {}, False, timestamp=9000.0)

    assert store.prune(max_age_s=5000.0, now=10000.0) == 1
    assert [r.region_id for r in store.records()] == ["new"]
    assert len(store.store.get("corrections")) == 1


def test_weights_file_round_trip(tmp_path):
    path = str(tmp_path / "nested" / "weights.json")
    weights = AlgorithmWeights(brightness=0.4, color=0.2, edge=0.2, pattern=0.2)
    save_weights_file(path, weights)
    assert load_weights_file(path) == weights
    assert load_weights_file(str(tmp_path / "missing.json")) is None


def test_negative_weights_rejected():
    with pytest.raises(ValueError):
        AlgorithmWeights(brightness=-0.1)
