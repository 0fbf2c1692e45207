"""Crop mapped entities out of a screenshot into fixed-size region buffers."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import cv2
import numpy as np

from ..core.config import get_settings
from ..core.image import RasterImage
from ..core.types import MappedEntity, Rectangle, RegionBuffer
from ..grid.pixels import clip_box


logger = logging.getLogger(__name__)

SHARPNESS_REFERENCE = 500.0


def sharpness(rgba: np.ndarray) -> float:
    """Laplacian variance of the crop, mapped to 0..1."""
    gray = cv2.cvtColor(rgba, cv2.COLOR_RGBA2GRAY)
    return float(min(1.0, cv2.Laplacian(gray, cv2.CV_64F).var() / SHARPNESS_REFERENCE))


class RegionExtractor:
    """Turns a bounding box into a ``size x size`` RGBA buffer."""

    def __init__(self, size: int | None = None):
        self.size = size or get_settings().recognition.region_size

    def extract(self, image: RasterImage, bounds: Rectangle) -> RegionBuffer:
        box = clip_box(image, bounds)
        if box is None or bounds.area <= 0:
            return RegionBuffer(pixels=None, quality=0.0, completeness=0.0)

        x0, y0, x1, y1 = box
        crop = np.ascontiguousarray(image.rgba[y0:y1, x0:x1])
        completeness = min(1.0, (x1 - x0) * (y1 - y0) / bounds.area)
        quality = sharpness(crop)

        resized = cv2.resize(crop, (self.size, self.size), interpolation=cv2.INTER_AREA)
        return RegionBuffer(pixels=resized, quality=quality, completeness=completeness)

    def extract_all(self, image: RasterImage, entities: Mapping[str, MappedEntity]) -> dict[str, RegionBuffer]:
        regions = {eid: self.extract(image, entity.bounds) for eid, entity in entities.items()}
        logger.debug("Extracted %d regions at %dpx", len(regions), self.size)
        return regions
