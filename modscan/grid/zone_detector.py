"""Detection of the empty band between the core zone and the regular grid."""

from __future__ import annotations

import logging

import numpy as np

from ..core.config import ZoneSettings, get_settings
from ..core.image import RasterImage
from ..core.layout import LayoutDescriptor
from ..core.types import GridCenter, ZoneBoundary


logger = logging.getLogger(__name__)


def empty_rows(image: RasterImage, start: int, stop: int, settings: ZoneSettings) -> np.ndarray:
    """Boolean per row in ``[start, stop)``: True when almost no pixel is lit."""
    band = image.crop(0, start, image.width, stop).brightness()
    lit = (band > settings.empty_brightness_threshold).mean(axis=1)
    return lit < settings.empty_row_fraction


def longest_run(flags: np.ndarray) -> tuple[int, int] | None:
    """``(start, length)`` of the longest run of True values."""
    best: tuple[int, int] | None = None
    run_start = -1
    for i, flag in enumerate(flags):
        if flag and run_start < 0:
            run_start = i
        if (not flag or i == len(flags) - 1) and run_start >= 0:
            end = i + 1 if flag else i
            length = end - run_start
            if best is None or length > best[1]:
                best = (run_start, length)
            run_start = -1
    return best


def gap_confidence(gap_px: float, scale: float, layout: LayoutDescriptor) -> float:
    """1 at the typical gap, falling linearly; 0 outside the plausible range."""
    zones = layout.zones
    ratio = gap_px / (zones.typical_gap * scale)
    lo = zones.min_gap / zones.typical_gap
    hi = zones.max_gap / zones.typical_gap
    if not lo <= ratio <= hi:
        return 0.0
    return max(0.0, 1.0 - abs(1.0 - ratio))


def detect_zone_boundary(
    image: RasterImage,
    center: GridCenter,
    scale: float,
    layout: LayoutDescriptor,
    settings: ZoneSettings | None = None,
) -> ZoneBoundary:
    """
    Find the horizontal gap below the core zone.

    Rows between the expected core bottom and the expected regular top (plus a
    margin either side) are scanned for emptiness. The longest empty run is the
    gap. When no run exists the expected positions are used with confidence 0.
    """
    settings = settings or get_settings().zone
    zones = layout.zones

    core_top = center.y + zones.core_top * scale
    expected_bottom = center.y + zones.core_bottom * scale
    expected_top = center.y + (zones.core_bottom + zones.typical_gap) * scale

    start = max(0, int(round(expected_bottom - settings.scan_margin_px)))
    stop = min(image.height, int(round(expected_top + settings.scan_margin_px)))

    run = None
    if stop > start:
        run = longest_run(empty_rows(image, start, stop, settings))

    if run is None:
        logger.debug("No empty band in rows %d..%d", start, stop)
        return ZoneBoundary(
            boundary_y=(expected_bottom + expected_top) / 2,
            gap_size_px=0.0,
            confidence=0.0,
            core_zone_bottom=expected_bottom,
            regular_zone_top=expected_top,
            core_zone_top=core_top,
        )

    run_start, length = run
    gap_top = start + run_start
    gap_bottom = gap_top + length
    confidence = gap_confidence(length, scale, layout)
    logger.debug("Zone gap rows %d..%d (%d px), confidence %.2f", gap_top, gap_bottom, length, confidence)
    return ZoneBoundary(
        boundary_y=(gap_top + gap_bottom) / 2,
        gap_size_px=float(length),
        confidence=confidence,
        core_zone_bottom=float(gap_top),
        regular_zone_top=float(gap_bottom),
        core_zone_top=core_top,
    )
