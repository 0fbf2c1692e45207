"""Decoded raster image accessor.

Detectors and the mapper only see ``width``, ``height`` and pixel access;
decoding is done here with OpenCV so nothing downstream depends on a loader.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import cv2
import numpy as np

from .errors import ImageLoadError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RasterImage:
    """RGBA uint8 image with shape ``(height, width, 4)``."""

    rgba: np.ndarray

    def __post_init__(self) -> None:
        if self.rgba.ndim != 3 or self.rgba.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA array, got shape {self.rgba.shape}")
        if self.rgba.dtype != np.uint8:
            object.__setattr__(self, "rgba", np.clip(self.rgba, 0, 255).astype(np.uint8))

    @property
    def width(self) -> int:
        return int(self.rgba.shape[1])

    @property
    def height(self) -> int:
        return int(self.rgba.shape[0])

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height else 0.0

    def get_pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        """(r, g, b, a) at integer pixel ``(x, y)``."""
        r, g, b, a = self.rgba[int(y), int(x)]
        return int(r), int(g), int(b), int(a)

    def crop(self, x0: int, y0: int, x1: int, y1: int) -> RasterImage:
        """View of the pixels in ``[x0, x1) x [y0, y1)`` (no copy)."""
        return RasterImage(self.rgba[y0:y1, x0:x1])

    def luminance(self) -> np.ndarray:
        """Per-pixel luminance in 0..255 (float32)."""
        rgb = self.rgba[:, :, :3].astype(np.float32)
        return rgb[:, :, 0] * 0.299 + rgb[:, :, 1] * 0.587 + rgb[:, :, 2] * 0.114

    def brightness(self) -> np.ndarray:
        """Plain mean of R, G, B in 0..255 (float32)."""
        return self.rgba[:, :, :3].astype(np.float32).mean(axis=2)

    @classmethod
    def from_array(cls, array: np.ndarray) -> RasterImage:
        """Wrap a gray, RGB or RGBA array (channel order RGB)."""
        arr = np.asarray(array)
        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=2)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"Unsupported image shape {arr.shape}")
        arr = np.clip(arr, 0, 255).astype(np.uint8)
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        return cls(np.ascontiguousarray(arr))

    @classmethod
    def blank(cls, width: int, height: int, color: tuple[int, int, int] = (0, 0, 0)) -> RasterImage:
        arr = np.zeros((height, width, 4), dtype=np.uint8)
        arr[:, :, 0], arr[:, :, 1], arr[:, :, 2] = color
        arr[:, :, 3] = 255
        return cls(arr)


def load_image(path: str) -> RasterImage:
    """Decode an image file into a RasterImage (raises ImageLoadError)."""
    if not os.path.exists(path):
        raise ImageLoadError(f"Image not found: {path}")

    raw = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if raw is None:
        raise ImageLoadError(f"Could not decode image: {path}")

    if raw.dtype != np.uint8:
        # 16-bit PNGs
        raw = (raw / 257).astype(np.uint8)

    if raw.ndim == 2:
        rgba = cv2.cvtColor(raw, cv2.COLOR_GRAY2RGBA)
    elif raw.shape[2] == 4:
        rgba = cv2.cvtColor(raw, cv2.COLOR_BGRA2RGBA)
    else:
        rgba = cv2.cvtColor(raw, cv2.COLOR_BGR2RGBA)

    logger.debug("Loaded %s (%dx%d)", path, rgba.shape[1], rgba.shape[0])
    return RasterImage(rgba)
