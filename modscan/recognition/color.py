"""Color analyzer.

Compares the region's dominant colors with reference palettes for lit and
unlit icons, then looks for the radial glow that surrounds selected icons.
"""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..core.types import Algorithm, RegionBuffer
from .interface import RegionAnalyzer
from .utils import color_distance, dominant_colors, luminance, region_mask, saturation


RGB = tuple[float, float, float]

SELECTED_PROFILES: tuple[RGB, ...] = (
    (200, 180, 120),  # warm gold
    (180, 200, 140),
    (190, 170, 200),
)
UNSELECTED_PROFILES: tuple[RGB, ...] = (
    (80, 90, 100),  # slate
    (70, 80, 90),
    (90, 80, 70),
)

GLOW_RADII = 5
GLOW_ANGLES = 16
GLOW_MIN_DECREASING = 0.6


def _similarity(color: RGB, references: tuple[RGB, ...]) -> float:
    return max(max(0.0, 1.0 - color_distance(color, ref) / 255.0) for ref in references)


def profile_similarity(colors: list[RGB], references: tuple[RGB, ...]) -> float:
    """0.7 on the primary color, 0.3 on the secondary (neutral 0.5 when absent)."""
    if not colors:
        return 0.0
    primary = _similarity(colors[0], references)
    secondary = _similarity(colors[1], references) if len(colors) > 1 else 0.5
    return 0.7 * primary + 0.3 * secondary


def glow_profile(lum: np.ndarray) -> dict[str, Any]:
    """Mean luminance on concentric circles from the center outwards."""
    h, w = lum.shape
    cx, cy = w / 2, h / 2
    outer = min(w, h) * 0.4
    rings = []
    for k in range(GLOW_RADII):
        radius = outer * k / (GLOW_RADII - 1)
        values = []
        for a in range(GLOW_ANGLES):
            angle = 2 * math.pi * a / GLOW_ANGLES
            x = min(w - 1, max(0, int(cx + radius * math.cos(angle))))
            y = min(h - 1, max(0, int(cy + radius * math.sin(angle))))
            values.append(float(lum[y, x]))
        rings.append(sum(values) / len(values))

    decreasing = sum(1 for a, b in zip(rings, rings[1:]) if b < a)
    has_glow = decreasing / (len(rings) - 1) >= GLOW_MIN_DECREASING
    return {
        "rings": rings,
        "has_glow": has_glow,
        "intensity": max(0.0, rings[0] - rings[-1]),
    }


class ColorAnalyzer(RegionAnalyzer):
    algorithm = Algorithm.COLOR

    def __init__(
        self,
        selected_profiles: tuple[RGB, ...] = SELECTED_PROFILES,
        unselected_profiles: tuple[RGB, ...] = UNSELECTED_PROFILES,
    ):
        self.selected_profiles = selected_profiles
        self.unselected_profiles = unselected_profiles

    def _analyze(self, rgba: np.ndarray, region: RegionBuffer) -> tuple[bool, float, dict[str, Any]]:
        mask = region_mask(rgba)
        clusters = dominant_colors(rgba, mask)
        if not clusters:
            return False, 0.0, {"reason": "no visible pixels in hex mask"}

        colors = [c for c, _ in clusters]
        sel = profile_similarity(colors, self.selected_profiles)
        unsel = profile_similarity(colors, self.unselected_profiles)
        selected = sel > unsel
        confidence = min(1.0, abs(sel - unsel) / 0.5)

        glow = glow_profile(luminance(rgba))
        if glow["has_glow"]:
            if selected:
                confidence = min(1.0, confidence + 0.2 * glow["intensity"])
            else:
                confidence *= 1.0 - 0.3 * glow["intensity"]

        metadata = {
            "dominant_colors": [
                {"rgb": [round(v, 1) for v in c], "count": n} for c, n in clusters
            ],
            "selected_similarity": sel,
            "unselected_similarity": unsel,
            "saturation": saturation(colors[0]),
            "glow": glow,
        }
        return selected, confidence, metadata
