"""Brightness analyzer: selected hexes are lit, unselected ones are dim."""

from __future__ import annotations

from typing import Any

import numpy as np

from ..core.types import Algorithm, RegionBuffer
from .interface import RegionAnalyzer
from .utils import luminance, radial_distance, region_mask


SELECTED_MIN = 0.6
UNSELECTED_MAX = 0.45
CONFIDENCE_SPAN = 0.25
MAX_CONFIDENCE = 0.95
MIN_PIXELS = 100


class BrightnessAnalyzer(RegionAnalyzer):
    algorithm = Algorithm.BRIGHTNESS

    def __init__(self, selected_min: float = SELECTED_MIN, unselected_max: float = UNSELECTED_MAX):
        self.selected_min = selected_min
        self.unselected_max = unselected_max

    @property
    def threshold(self) -> float:
        return (self.selected_min + self.unselected_max) / 2

    def _analyze(self, rgba: np.ndarray, region: RegionBuffer) -> tuple[bool, float, dict[str, Any]]:
        h, w = rgba.shape[:2]
        mask = region_mask(rgba)
        pixel_count = int(mask.sum())
        if pixel_count == 0:
            return False, 0.0, {"pixel_count": 0, "reason": "no visible pixels in hex mask"}

        lum = luminance(rgba)
        average = float(lum[mask].mean())
        std = float(lum[mask].std())

        dist = radial_distance(h, w)
        outer = min(w, h) * 0.4
        center_zone = mask & (dist <= min(w, h) * 0.2)
        edge_zone = mask & (dist >= outer * 0.7) & (dist <= outer)
        center = float(lum[center_zone].mean()) if center_zone.any() else average
        edge = float(lum[edge_zone].mean()) if edge_zone.any() else average
        gradient = center - edge

        selected = average > self.threshold
        confidence = min(MAX_CONFIDENCE, abs(average - self.threshold) / CONFIDENCE_SPAN)

        # Lit icons glow from the middle; a matching gradient adds a little.
        if (gradient > 0) == selected:
            confidence = min(MAX_CONFIDENCE, confidence + min(0.1, abs(gradient)))
        if pixel_count < MIN_PIXELS:
            confidence *= 0.8

        metadata = {
            "average_brightness": average,
            "std_dev": std,
            "center_brightness": center,
            "edge_brightness": edge,
            "gradient": gradient,
            "threshold": self.threshold,
            "pixel_count": pixel_count,
        }
        return selected, confidence, metadata
