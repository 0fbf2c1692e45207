"""Edge analyzer: selection raises icon contrast and draws a bright border."""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from ..core.types import Algorithm, RegionBuffer
from ..grid.pixels import gradient_map
from .interface import RegionAnalyzer
from .utils import luminance, region_mask


STRENGTH_THRESHOLD = 0.04
BORDER_EDGE_THRESHOLD = 0.1
BORDER_SAMPLES = 32
MAX_CONFIDENCE = 0.9


def border_continuity(angles: list[float]) -> float:
    """How evenly the edge hits are spread around the circle (0..1)."""
    if len(angles) < 2:
        return 0.0
    ordered = sorted(angles)
    gaps = [b - a for a, b in zip(ordered, ordered[1:])]
    gaps.append(2 * math.pi - ordered[-1] + ordered[0])
    mean_gap = 2 * math.pi / len(angles)
    std = float(np.std(gaps))
    return max(0.0, 1.0 - std / mean_gap)


def border_profile(grad: np.ndarray) -> dict[str, Any]:
    h, w = grad.shape
    cx, cy = w / 2, h / 2
    radius = min(w, h) * 0.35
    hits: list[float] = []
    strengths: list[float] = []
    for i in range(BORDER_SAMPLES):
        angle = 2 * math.pi * i / BORDER_SAMPLES
        x = int(round(cx + radius * math.cos(angle)))
        y = int(round(cy + radius * math.sin(angle)))
        if 0 <= x < w and 0 <= y < h and grad[y, x] > BORDER_EDGE_THRESHOLD:
            hits.append(angle)
            strengths.append(float(grad[y, x]))
    continuity = border_continuity(hits)
    return {
        "edge_count": len(hits),
        "average_strength": float(np.mean(strengths)) if strengths else 0.0,
        "continuity": continuity,
        "complete": continuity > 0.7 and len(hits) > 8,
    }


class EdgeAnalyzer(RegionAnalyzer):
    algorithm = Algorithm.EDGE

    def __init__(self, threshold: float = STRENGTH_THRESHOLD):
        self.threshold = threshold

    def _analyze(self, rgba: np.ndarray, region: RegionBuffer) -> tuple[bool, float, dict[str, Any]]:
        mask = region_mask(rgba)
        if not mask.any():
            return False, 0.0, {"reason": "no visible pixels in hex mask"}

        grad = gradient_map(luminance(rgba))
        values = grad[mask]
        strength = float(values.mean())
        density = float((values > BORDER_EDGE_THRESHOLD).mean())
        border = border_profile(grad)

        selected = strength >= self.threshold
        confidence = min(MAX_CONFIDENCE, abs(strength - self.threshold) / self.threshold)
        confidence *= 0.7 + 0.3 * border["continuity"]

        metadata = {
            "edge_strength": strength,
            "edge_density": density,
            "max_strength": float(values.max()),
            "threshold": self.threshold,
            "border": border,
        }
        return selected, confidence, metadata
