import numpy as np
import pytest

from modscan.core.types import Algorithm, RegionBuffer
from modscan.recognition import BrightnessAnalyzer, ColorAnalyzer, EdgeAnalyzer, PatternAnalyzer
from modscan.recognition.utils import dominant_colors, hex_mask, luminance

from .conftest import solid_region, striped_region


ALL_ANALYZERS = [BrightnessAnalyzer, ColorAnalyzer, EdgeAnalyzer, PatternAnalyzer]


class TestBrightness:
    def test_bright_region_is_selected(self):
        result = BrightnessAnalyzer().analyze(solid_region((220, 220, 220)))
        assert result.selected
        assert result.confidence == pytest.approx(0.95)
        assert result.algorithm == Algorithm.BRIGHTNESS
        assert result.error is None

    def test_dim_region_is_unselected(self):
        result = BrightnessAnalyzer().analyze(solid_region((40, 40, 40)))
        assert not result.selected
        assert result.confidence > 0.8

    def test_near_threshold_is_uncertain(self):
        # luminance 134/255 ~ 0.525, right at the threshold
        result = BrightnessAnalyzer().analyze(solid_region((134, 134, 134)))
        assert result.confidence < 0.1

    def test_mask_ignores_corners(self):
        pixels = np.zeros((48, 48, 4), dtype=np.uint8)
        pixels[:, :, 3] = 255
        mask = hex_mask(48, 48)
        pixels[mask, :3] = 220
        pixels[~mask, :3] = 0
        result = BrightnessAnalyzer().analyze(RegionBuffer(pixels=pixels))
        assert result.selected
        assert result.metadata["average_brightness"] == pytest.approx(220 / 255, abs=0.01)

    def test_transparent_pixels_are_skipped(self):
        region = solid_region((220, 220, 220))
        region.pixels[:, :, 3] = 0
        result = BrightnessAnalyzer().analyze(region)
        assert not result.selected
        assert result.confidence == 0.0


class TestColor:
    def test_gold_is_selected(self):
        result = ColorAnalyzer().analyze(solid_region((200, 180, 120)))
        assert result.selected
        assert result.confidence > 0.7

    def test_slate_is_unselected(self):
        result = ColorAnalyzer().analyze(solid_region((80, 90, 100)))
        assert not result.selected
        assert result.confidence > 0.7

    def test_glow_detected_on_radial_falloff(self):
        yy, xx = np.mgrid[0:48, 0:48]
        dist = np.sqrt((xx - 24) ** 2 + (yy - 24) ** 2)
        level = np.clip(230 - dist * 8, 60, 230).astype(np.uint8)
        pixels = np.zeros((48, 48, 4), dtype=np.uint8)
        pixels[:, :, 0] = level
        pixels[:, :, 1] = (level * 0.9).astype(np.uint8)
        pixels[:, :, 2] = (level * 0.6).astype(np.uint8)
        pixels[:, :, 3] = 255
        result = ColorAnalyzer().analyze(RegionBuffer(pixels=pixels))
        assert result.metadata["glow"]["has_glow"]
        assert result.metadata["glow"]["intensity"] > 0.3

    def test_dominant_colors_cluster_similar_pixels(self):
        rgba = solid_region((100, 100, 100)).pixels.copy()
        rgba[24:, :, :3] = (102, 101, 99)
        clusters = dominant_colors(rgba, hex_mask(48, 48))
        assert len(clusters) == 1


class TestEdge:
    def test_striped_region_is_selected(self):
        result = EdgeAnalyzer().analyze(striped_region())
        assert result.selected
        assert result.metadata["edge_strength"] == pytest.approx(0.5)
        assert result.metadata["border"]["complete"]
        assert result.confidence > 0.8

    def test_flat_region_is_unselected(self):
        result = EdgeAnalyzer().analyze(solid_region((120, 120, 120)))
        assert not result.selected
        assert result.metadata["edge_strength"] == 0.0
        assert result.confidence == pytest.approx(0.63)


class TestPattern:
    def test_bright_flat_region_is_selected(self):
        result = PatternAnalyzer().analyze(solid_region((220, 220, 220)))
        assert result.selected
        assert result.metadata["symmetry"] == pytest.approx(1.0)
        assert result.metadata["roughness"] == pytest.approx(0.0, abs=0.01)

    def test_dark_flat_region_is_unselected(self):
        result = PatternAnalyzer().analyze(solid_region((30, 30, 30)))
        assert not result.selected
        assert result.metadata["best_match"][0] == "unselected"

    def test_other_region_sizes_resize_templates(self):
        result = PatternAnalyzer().analyze(solid_region((220, 220, 220), size=64))
        assert result.selected


@pytest.mark.parametrize("analyzer_cls", ALL_ANALYZERS)
@pytest.mark.parametrize(
    "region",
    [
        RegionBuffer(pixels=None),
        RegionBuffer(pixels=np.zeros((48, 48), dtype=np.uint8)),
        RegionBuffer(pixels=np.zeros((48, 48, 2), dtype=np.uint8)),
        RegionBuffer(pixels=np.zeros((4, 4, 4), dtype=np.uint8)),
    ],
    ids=["none", "2d", "two-channel", "tiny"],
)
def test_malformed_buffers_return_error_results(analyzer_cls, region):
    result = analyzer_cls().analyze(region)
    assert result.failed
    assert result.selected is False
    assert result.confidence == 0.0
    assert result.algorithm == analyzer_cls.algorithm


@pytest.mark.parametrize("analyzer_cls", ALL_ANALYZERS)
def test_rgb_buffers_are_accepted(analyzer_cls):
    pixels = np.full((48, 48, 3), 200, dtype=np.uint8)
    result = analyzer_cls().analyze(RegionBuffer(pixels=pixels))
    assert not result.failed
    assert 0.0 <= result.confidence <= 1.0
    assert result.processing_time_ms >= 0.0


def test_luminance_weights():
    rgba = solid_region((255, 0, 0)).pixels
    assert luminance(rgba)[0, 0] == pytest.approx(0.299)
