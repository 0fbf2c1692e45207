"""Shared pixel helpers for the region analyzers.

All helpers take ``(H, W, 4)`` RGBA uint8 arrays. Luminance is returned in 0..1.
"""

from __future__ import annotations

import numpy as np


def to_rgba(pixels: np.ndarray) -> np.ndarray:
    """Promote an RGB buffer to RGBA with an opaque alpha channel."""
    if pixels.shape[2] == 4:
        return pixels
    alpha = np.full(pixels.shape[:2] + (1,), 255, dtype=pixels.dtype)
    return np.concatenate([pixels, alpha], axis=2)


def hex_mask(height: int, width: int) -> np.ndarray:
    """Boolean mask approximating a hex inscribed in the buffer.

    The hex radius is 40% of the smaller side, so the square's corners and a
    thin border are excluded.
    """
    ys, xs = np.mgrid[0:height, 0:width]
    cx = width / 2
    cy = height / 2
    radius = min(width, height) * 0.4
    dx = np.abs(xs - cx)
    dy = np.abs(ys - cy)
    return (dx <= radius * 0.866) & (dy <= radius) & (dx * 0.577 + dy <= radius)


def region_mask(rgba: np.ndarray) -> np.ndarray:
    """Hex mask restricted to non-transparent pixels."""
    h, w = rgba.shape[:2]
    return hex_mask(h, w) & (rgba[:, :, 3] > 0)


def luminance(rgba: np.ndarray) -> np.ndarray:
    rgb = rgba[:, :, :3].astype(np.float32)
    return (rgb[:, :, 0] * 0.299 + rgb[:, :, 1] * 0.587 + rgb[:, :, 2] * 0.114) / 255.0


def radial_distance(height: int, width: int) -> np.ndarray:
    ys, xs = np.mgrid[0:height, 0:width]
    return np.sqrt((xs - width / 2) ** 2 + (ys - height / 2) ** 2)


def color_distance(a: tuple[float, float, float], b: tuple[float, float, float]) -> float:
    """Euclidean distance in RGB."""
    return float(np.sqrt(sum((x - y) ** 2 for x, y in zip(a, b))))


def dominant_colors(
    rgba: np.ndarray,
    mask: np.ndarray,
    max_colors: int = 5,
    step: int = 2,
    threshold: float = 30.0,
) -> list[tuple[tuple[float, float, float], int]]:
    """
    Greedy color clustering over every ``step``-th masked pixel.

    Each sample joins the first cluster within ``threshold`` (L1 distance) and
    shifts its running mean. Returns ``[(rgb, count), ...]`` by descending count.
    """
    sub_mask = mask[::step, ::step]
    samples = rgba[::step, ::step, :3][sub_mask].astype(np.float64)

    centers: list[list[float]] = []
    counts: list[int] = []
    for r, g, b in samples:
        for i, c in enumerate(centers):
            if abs(c[0] - r) + abs(c[1] - g) + abs(c[2] - b) < threshold:
                n = counts[i]
                c[0] = (c[0] * n + r) / (n + 1)
                c[1] = (c[1] * n + g) / (n + 1)
                c[2] = (c[2] * n + b) / (n + 1)
                counts[i] = n + 1
                break
        else:
            centers.append([r, g, b])
            counts.append(1)

    order = sorted(range(len(centers)), key=lambda i: counts[i], reverse=True)
    return [((centers[i][0], centers[i][1], centers[i][2]), counts[i]) for i in order[:max_colors]]


def saturation(rgb: tuple[float, float, float]) -> float:
    """HSV saturation of one color (0..1)."""
    hi = max(rgb)
    lo = min(rgb)
    return 0.0 if hi <= 0 else (hi - lo) / hi


def normalized_cross_correlation(a: np.ndarray, b: np.ndarray, mask: np.ndarray | None = None) -> float:
    """Pearson correlation of two equal-shape arrays in [-1, 1]; 0 if either is flat."""
    if mask is not None:
        a = a[mask]
        b = b[mask]
    a = a.astype(np.float64).ravel()
    b = b.astype(np.float64).ravel()
    if a.size == 0:
        return 0.0
    da = a - a.mean()
    db = b - b.mean()
    denom = np.sqrt((da * da).sum() * (db * db).sum())
    if denom <= 1e-12:
        return 0.0
    return float((da * db).sum() / denom)
