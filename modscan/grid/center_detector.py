"""Grid origin detection."""

from __future__ import annotations

import logging

import numpy as np

from ..core.config import CenterSettings, get_settings
from ..core.image import RasterImage
from ..core.types import CenterEstimate, GridCenter


logger = logging.getLogger(__name__)


def _content_span(mask: np.ndarray) -> tuple[int, int] | None:
    """First and last index where ``mask`` is set."""
    idx = np.flatnonzero(mask)
    if idx.size == 0:
        return None
    return int(idx[0]), int(idx[-1])


def detect_grid_center(image: RasterImage, settings: CenterSettings | None = None) -> CenterEstimate:
    """
    Estimate the pixel origin of the layout.

    Reference-aspect screenshots are centered on the image. Other aspects are
    assumed to carry dark letterbox or pillarbox bars, so the center of the
    non-dark content box is used.
    """
    settings = settings or get_settings().center
    default = CenterEstimate(
        center=GridCenter(image.width / 2, image.height / 2),
        confidence=settings.default_confidence,
        method="default",
    )
    if image.width == 0 or image.height == 0:
        return default
    if abs(image.aspect - settings.reference_aspect) <= settings.aspect_tolerance:
        return default

    bright = image.luminance() > settings.content_luminance
    rows = _content_span(bright.mean(axis=1) > settings.content_fraction)
    cols = _content_span(bright.mean(axis=0) > settings.content_fraction)
    if rows is None or cols is None:
        logger.debug("No content found for letterbox detection, using image center")
        return default

    cx = (cols[0] + cols[1] + 1) / 2
    cy = (rows[0] + rows[1] + 1) / 2
    logger.debug("Letterbox content box x=%s y=%s -> center (%.1f, %.1f)", cols, rows, cx, cy)
    return CenterEstimate(center=GridCenter(cx, cy), confidence=settings.letterbox_confidence, method="letterbox")
