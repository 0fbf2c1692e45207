import time

import numpy as np
import pytest

from modscan.core.config import RecognitionSettings
from modscan.core.types import Algorithm, AxialCoord, RegionBuffer, Zone
from modscan.recognition import BrightnessAnalyzer, RecognitionEngine, RegionContext
from modscan.recognition.interface import RegionAnalyzer

from .conftest import solid_region


class SleepyAnalyzer(RegionAnalyzer):
    algorithm = Algorithm.PATTERN

    def __init__(self, delay: float):
        self.delay = delay

    def _analyze(self, rgba, region):
        time.sleep(self.delay)
        return True, 0.9, {}


class BrokenAnalyzer(RegionAnalyzer):
    algorithm = Algorithm.EDGE

    def _analyze(self, rgba, region):
        raise RuntimeError("boom")


def make_engine(analyzers=None, **overrides) -> RecognitionEngine:
    settings = RecognitionSettings(**overrides)
    return RecognitionEngine(analyzers=analyzers, settings=settings)


def test_batch_covers_every_region():
    regions = {
        "bright": solid_region((220, 220, 220)),
        "dark": solid_region((30, 30, 30)),
        "empty": RegionBuffer(pixels=None, quality=0.0, completeness=0.0),
    }
    with make_engine() as engine:
        batch = engine.analyze_batch(regions)

    assert set(batch.results) == set(regions)
    assert not batch.partial
    assert batch.stats.total_analyzed == 3
    assert batch.results["bright"].selected
    assert not batch.results["dark"].selected

    empty = batch.results["empty"]
    assert empty.confidence == 0.0
    assert empty.per_algorithm == {}
    assert empty.needs_review


def test_slow_analyzer_is_dropped():
    engine = make_engine([BrightnessAnalyzer(), SleepyAnalyzer(0.5)], analyzer_timeout_s=0.1)
    try:
        result = engine.analyze_region(solid_region((220, 220, 220)), "slow")
    finally:
        engine.close()

    assert set(result.per_algorithm) == {Algorithm.BRIGHTNESS}
    assert result.selected


def test_abandoned_slow_analyzers_do_not_starve_later_regions():
    # One region worker: slow calls pile up in the analyzer pool across regions.
    regions = {f"r{i}": solid_region((220, 220, 220)) for i in range(4)}
    engine = make_engine([BrightnessAnalyzer(), SleepyAnalyzer(0.5)], max_workers=1, analyzer_timeout_s=0.1)
    try:
        batch = engine.analyze_batch(regions)
    finally:
        engine.close()

    assert set(batch.results) == set(regions)
    for rid, result in batch.results.items():
        assert Algorithm.BRIGHTNESS in result.per_algorithm, rid
        assert Algorithm.PATTERN not in result.per_algorithm, rid
        assert result.selected


def test_raising_analyzer_is_dropped(caplog):
    with make_engine([BrightnessAnalyzer(), BrokenAnalyzer()]) as engine:
        results = engine.run_analyzers(solid_region((220, 220, 220)), "r1")

    assert set(results) == {Algorithm.BRIGHTNESS}
    assert "edge analyzer failed on region r1" in caplog.text


def test_batch_budget_gives_partial_result():
    regions = {f"r{i}": solid_region((200, 200, 200)) for i in range(3)}
    engine = make_engine([SleepyAnalyzer(0.5)], max_workers=1, batch_timeout_s=0.1)
    try:
        batch = engine.analyze_batch(regions)
    finally:
        engine.close()

    assert batch.partial
    assert batch.missing
    assert set(batch.missing) | set(batch.results) == set(regions)
    assert batch.stats.total_analyzed == len(batch.results)


def test_batch_to_dict():
    with make_engine() as engine:
        data = engine.analyze_batch({"a": solid_region((220, 220, 220))}).to_dict()
    assert data["partial"] is False
    assert data["stats"]["total_analyzed"] == 1
    assert set(data["results"]["a"]["per_algorithm"]) == {a.value for a in Algorithm}


def test_empty_batch():
    with make_engine() as engine:
        batch = engine.analyze_batch({})
    assert batch.results == {}
    assert batch.stats.average_confidence == 0.0


@pytest.mark.parametrize("channels", [3, 4])
def test_rgb_and_rgba_agree(channels):
    pixels = np.full((48, 48, channels), 220, dtype=np.uint8)
    with make_engine() as engine:
        result = engine.analyze_region(RegionBuffer(pixels=pixels))
    assert result.selected


def test_contexts_add_zone_stats():
    regions = {
        "body": solid_region((220, 220, 220)),
        "a": solid_region((220, 220, 220)),
        "b": solid_region((30, 30, 30)),
    }
    contexts = {
        "body": RegionContext(zone=Zone.CORE, core_color=(180, 60, 60)),
        "a": RegionContext(zone=Zone.REGULAR, axial=AxialCoord(0, 0)),
        "b": RegionContext(zone=Zone.REGULAR, axial=AxialCoord(1, 0)),
    }
    with make_engine() as engine:
        batch = engine.analyze_batch(regions, contexts)

    assert batch.results["body"].zone == Zone.CORE
    assert batch.results["a"].zone == Zone.REGULAR
    per_zone = batch.stats.per_zone
    assert set(per_zone) == {Zone.CORE, Zone.REGULAR}
    assert per_zone[Zone.CORE].count == 1
    assert per_zone[Zone.REGULAR].count == 2
    assert per_zone[Zone.REGULAR].selected_count == 1
    assert per_zone[Zone.REGULAR].success_rate == 1.0

    data = batch.to_dict()
    assert data["stats"]["per_zone"]["regular"]["count"] == 2


def test_without_contexts_zone_is_unknown():
    with make_engine() as engine:
        batch = engine.analyze_batch({"a": solid_region((220, 220, 220))})
    assert batch.results["a"].zone == Zone.UNKNOWN
    assert set(batch.stats.per_zone) == {Zone.UNKNOWN}
