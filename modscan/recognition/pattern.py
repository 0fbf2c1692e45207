"""Pattern analyzer.

Matches the region's luminance against a few synthetic templates for lit and
unlit icons, and folds mirror symmetry and texture roughness into the
confidence.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import cv2
import numpy as np

from ..core.types import Algorithm, RegionBuffer
from .interface import RegionAnalyzer
from .utils import luminance, normalized_cross_correlation, radial_distance, region_mask


TEMPLATE_SIZE = 48
ROUGHNESS_SCALE = 0.25
MAX_CONFIDENCE = 0.95


def _uniform(value: float) -> np.ndarray:
    return np.full((TEMPLATE_SIZE, TEMPLATE_SIZE), value, dtype=np.float32)


def _radial(center: float, edge: float) -> np.ndarray:
    dist = radial_distance(TEMPLATE_SIZE, TEMPLATE_SIZE)
    t = np.clip(dist / (TEMPLATE_SIZE * 0.4), 0.0, 1.0)
    return (center + (edge - center) * t).astype(np.float32)


def _bordered(inner: float, ring: float) -> np.ndarray:
    dist = radial_distance(TEMPLATE_SIZE, TEMPLATE_SIZE)
    outer = TEMPLATE_SIZE * 0.4
    out = _uniform(inner)
    out[(dist >= outer * 0.8) & (dist <= outer)] = ring
    return out


@lru_cache(maxsize=1)
def reference_templates() -> dict[str, dict[str, np.ndarray]]:
    """Luminance templates (0..1) at TEMPLATE_SIZE, keyed by class then name."""
    return {
        "selected": {
            "uniform_bright": _uniform(0.75),
            "radial_glow": _radial(0.9, 0.5),
            "highlighted_border": _bordered(0.55, 0.95),
        },
        "unselected": {
            "uniform_dark": _uniform(0.25),
            "dim_flat": _uniform(0.35),
            "faded_border": _bordered(0.2, 0.4),
        },
    }


def template_score(lum: np.ndarray, template: np.ndarray, mask: np.ndarray) -> float:
    """Half correlation, half mean-brightness agreement (0..1)."""
    h, w = lum.shape
    if template.shape != (h, w):
        template = cv2.resize(template, (w, h), interpolation=cv2.INTER_LINEAR)
    ncc = normalized_cross_correlation(lum, template, mask)
    mean_diff = abs(float(lum[mask].mean()) - float(template[mask].mean()))
    return 0.5 * (ncc + 1.0) / 2.0 + 0.5 * (1.0 - mean_diff)


def symmetry_score(lum: np.ndarray, mask: np.ndarray) -> float:
    horizontal = np.abs(lum - lum[:, ::-1])[mask].mean()
    vertical = np.abs(lum - lum[::-1, :])[mask].mean()
    return float(1.0 - (horizontal + vertical) / 2.0)


def roughness_score(lum: np.ndarray, mask: np.ndarray) -> float:
    """Mean local standard deviation (3x3), scaled to 0..1."""
    lum = lum.astype(np.float32)
    mean = cv2.blur(lum, (3, 3))
    mean_sq = cv2.blur(lum * lum, (3, 3))
    local_std = np.sqrt(np.maximum(mean_sq - mean * mean, 0.0))
    return float(min(1.0, local_std[mask].mean() / ROUGHNESS_SCALE))


class PatternAnalyzer(RegionAnalyzer):
    algorithm = Algorithm.PATTERN

    def _analyze(self, rgba: np.ndarray, region: RegionBuffer) -> tuple[bool, float, dict[str, Any]]:
        mask = region_mask(rgba)
        if not mask.any():
            return False, 0.0, {"reason": "no visible pixels in hex mask"}

        lum = luminance(rgba)
        scores: dict[str, dict[str, float]] = {}
        for label, templates in reference_templates().items():
            scores[label] = {name: template_score(lum, t, mask) for name, t in templates.items()}

        best_sel = max(scores["selected"].values())
        best_unsel = max(scores["unselected"].values())
        selected = best_sel > best_unsel

        symmetry = symmetry_score(lum, mask)
        roughness = roughness_score(lum, mask)
        confidence = (
            0.6 * min(1.0, abs(best_sel - best_unsel) / 0.3)
            + 0.2 * symmetry
            + 0.2 * (1.0 - roughness)
        )
        confidence = min(MAX_CONFIDENCE, confidence)

        metadata = {
            "template_scores": scores,
            "best_match": max(
                ((label, name) for label in scores for name in scores[label]),
                key=lambda key: scores[key[0]][key[1]],
            ),
            "symmetry": symmetry,
            "roughness": roughness,
        }
        return selected, confidence, metadata
