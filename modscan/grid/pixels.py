"""Local pixel evidence used to score mapped entities."""

from __future__ import annotations

import math

import numpy as np

from ..core.image import RasterImage
from ..core.types import PixelPoint, Rectangle


def clip_box(image: RasterImage, bounds: Rectangle) -> tuple[int, int, int, int] | None:
    """Integer ``(x0, y0, x1, y1)`` of ``bounds`` inside the image, or None if empty."""
    x0 = max(0, int(math.floor(bounds.left)))
    y0 = max(0, int(math.floor(bounds.top)))
    x1 = min(image.width, int(math.ceil(bounds.right)))
    y1 = min(image.height, int(math.ceil(bounds.bottom)))
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def gradient_map(luminance: np.ndarray) -> np.ndarray:
    """Mean absolute difference to the 4 direct neighbours (edges replicated)."""
    padded = np.pad(luminance.astype(np.float32), 1, mode="edge")
    center = padded[1:-1, 1:-1]
    return (
        np.abs(center - padded[:-2, 1:-1])
        + np.abs(center - padded[2:, 1:-1])
        + np.abs(center - padded[1:-1, :-2])
        + np.abs(center - padded[1:-1, 2:])
    ) / 4.0


def content_score(image: RasterImage, bounds: Rectangle) -> float:
    """How much of the box holds mid-range pixels (icons, not background or glare)."""
    box = clip_box(image, bounds)
    if box is None:
        return 0.0
    x0, y0, x1, y1 = box
    brightness = image.crop(x0, y0, x1, y1).brightness()
    ratio = float(np.mean((brightness > 30) & (brightness < 230)))
    return min(1.0, ratio * 2.0)


def outline_score(
    image: RasterImage,
    center: PixelPoint,
    bounds: Rectangle,
    samples: int = 12,
    threshold: float = 15.0,
) -> float:
    """Share of points on a circle inside ``bounds`` that sit on a strong edge."""
    box = clip_box(image, bounds)
    if box is None:
        return 0.0
    x0, y0, x1, y1 = box
    grad = gradient_map(image.crop(x0, y0, x1, y1).luminance())

    radius = min(bounds.width, bounds.height) / 3.0
    hits = 0
    valid = 0
    for i in range(samples):
        angle = 2.0 * math.pi * i / samples
        px = int(round(center.x + radius * math.cos(angle))) - x0
        py = int(round(center.y + radius * math.sin(angle))) - y0
        if 0 <= px < grad.shape[1] and 0 <= py < grad.shape[0]:
            valid += 1
            if grad[py, px] > threshold:
                hits += 1
    return hits / valid if valid else 0.0


def local_confidence(
    image: RasterImage,
    center: PixelPoint,
    bounds: Rectangle,
    content_weight: float = 0.6,
) -> tuple[float, float, float]:
    """Return ``(combined, content, outline)`` evidence for one entity."""
    content = content_score(image, bounds)
    outline = outline_score(image, center, bounds)
    combined = content * content_weight + outline * (1.0 - content_weight)
    return combined, content, outline
