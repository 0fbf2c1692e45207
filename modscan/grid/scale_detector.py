"""Screenshot scale detection.

Two independent sub-detectors propose a scale factor relative to the layout's
reference screen:

- resolution lookup against the layout's known screenshot sizes
- vertical hex spacing measured from brightness peaks in a few sample strips

Each proposal carries its own confidence. ``consolidate`` drops weak proposals,
averages the rest weighted by confidence and caps the result below certainty.
"""

from __future__ import annotations

import logging

import numpy as np

from ..core.config import ScaleSettings, get_settings
from ..core.errors import ScaleDetectionAbstained
from ..core.image import RasterImage
from ..core.layout import LayoutDescriptor
from ..core.types import (
    ConsolidatedEstimate,
    FallbackEstimate,
    ResolutionEstimate,
    ScaleEstimate,
    SpacingEstimate,
)


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# RESOLUTION LOOKUP
# ─────────────────────────────────────────────────────────────


def detect_by_resolution(
    width: int,
    height: int,
    layout: LayoutDescriptor,
    settings: ScaleSettings | None = None,
) -> ResolutionEstimate:
    """Scale from the known-resolution table.

    Exact size matches return the table scale. Otherwise the entry with the
    closest aspect ratio is used (ties broken by height) when within the
    aspect tolerance, and its scale is adjusted by the height ratio.
    """
    settings = settings or get_settings().scale
    if width <= 0 or height <= 0:
        raise ScaleDetectionAbstained(f"Invalid image size {width}x{height}")

    for res in layout.resolutions:
        if res.width == width and res.height == height:
            return ResolutionEstimate(
                scale_factor=res.base_scale,
                confidence=settings.exact_match_confidence,
                matched_resolution=(res.width, res.height),
                exact=True,
            )

    if not layout.resolutions:
        raise ScaleDetectionAbstained("Layout has no reference resolutions")

    aspect = width / height
    best = min(
        layout.resolutions,
        key=lambda res: (abs(res.aspect - aspect), abs(res.height - height)),
    )
    if abs(best.aspect - aspect) >= settings.aspect_tolerance:
        raise ScaleDetectionAbstained(
            f"No reference resolution close to aspect {aspect:.3f} ({width}x{height})"
        )

    return ResolutionEstimate(
        scale_factor=best.base_scale * height / best.height,
        confidence=settings.approx_match_confidence,
        matched_resolution=(best.width, best.height),
        exact=False,
    )


# ─────────────────────────────────────────────────────────────
# SPACING ANALYSIS
# ─────────────────────────────────────────────────────────────


def brightness_profile(image: RasterImage, column_x: int, strip_width: int) -> np.ndarray:
    """Mean RGB brightness per row over a vertical strip centered on ``column_x``."""
    half = strip_width // 2
    x0 = max(0, column_x - half)
    x1 = min(image.width, column_x + half + 1)
    if x1 <= x0:
        return np.zeros(image.height, dtype=np.float32)
    return image.crop(x0, 0, x1, image.height).brightness().mean(axis=1)


def find_peaks(profile: np.ndarray, threshold_ratio: float, window: int) -> list[int]:
    """Row indices of local maxima reaching ``threshold_ratio`` of the profile max.

    A flat-topped peak is reported once, at its first row.
    """
    if profile.size == 0:
        return []
    top = float(profile.max())
    if top <= 0:
        return []

    threshold = top * threshold_ratio
    peaks: list[int] = []
    n = profile.size
    for i in range(n):
        value = profile[i]
        if value < threshold:
            continue
        lo = max(0, i - window)
        hi = min(n, i + window + 1)
        if value < profile[lo:hi].max():
            continue
        if i > 0 and profile[i - 1] >= value:
            continue
        peaks.append(i)
    return peaks


def filter_outliers(values: list[float]) -> list[float]:
    """Drop values outside 1.5 IQR of the quartiles (needs at least 3 values)."""
    if len(values) < 3:
        return list(values)
    ordered = sorted(values)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    iqr = q3 - q1
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr
    return [v for v in values if lower <= v <= upper]


def detect_by_spacing(
    image: RasterImage,
    layout: LayoutDescriptor,
    settings: ScaleSettings | None = None,
) -> SpacingEstimate:
    """Scale from the vertical distance between bright hex rows."""
    settings = settings or get_settings().scale

    spacings: list[float] = []
    total_peaks = 0
    for fraction in settings.sample_columns:
        column_x = int(image.width * fraction)
        profile = brightness_profile(image, column_x, settings.strip_width)
        peaks = find_peaks(profile, settings.peak_threshold, settings.peak_window)
        total_peaks += len(peaks)
        for prev, cur in zip(peaks, peaks[1:]):
            gap = float(cur - prev)
            if settings.min_spacing_px <= gap <= settings.max_spacing_px:
                spacings.append(gap)

    if total_peaks == 0:
        raise ScaleDetectionAbstained("No brightness peaks found in sample strips")
    if not spacings:
        raise ScaleDetectionAbstained(f"{total_peaks} peaks but no plausible spacings")

    kept = filter_outliers(spacings)
    mean = float(np.mean(kept))
    variance = float(np.var(kept))
    std = variance ** 0.5
    consistency = max(0.0, 1.0 - std / (mean * 0.3))
    count_factor = min(settings.spacing_confidence_cap, len(kept) / 3.0)
    confidence = count_factor * (0.5 + 0.5 * consistency)

    logger.debug(
        "Spacing: %d samples, mean %.2f px, std %.2f, confidence %.2f",
        len(kept), mean, std, confidence,
    )
    return SpacingEstimate(
        scale_factor=mean / layout.reference_spacing,
        confidence=confidence,
        detected_spacing=mean,
        expected_spacing=layout.reference_spacing,
        samples_used=len(kept),
        variance=variance,
    )


# ─────────────────────────────────────────────────────────────
# CONSOLIDATION
# ─────────────────────────────────────────────────────────────


def consolidate(
    candidates: list[ScaleEstimate],
    settings: ScaleSettings | None = None,
) -> ScaleEstimate:
    """Confidence-weighted mean of the candidates above the minimum confidence."""
    settings = settings or get_settings().scale

    survivors = tuple(c for c in candidates if c.confidence > settings.min_confidence)
    if not survivors:
        return FallbackEstimate(
            scale_factor=settings.fallback_scale,
            confidence=settings.fallback_confidence,
            reason="no usable sub-estimate",
        )

    # Offsetting by the first value keeps identical inputs exactly identical.
    base = survivors[0].scale_factor
    total_weight = sum(c.confidence for c in survivors)
    shift = sum(c.confidence * (c.scale_factor - base) for c in survivors) / total_weight
    confidence = min(settings.confidence_cap, total_weight / len(survivors))

    return ConsolidatedEstimate(
        scale_factor=base + shift,
        confidence=confidence,
        candidates=survivors,
    )


class ScaleDetector:
    """Runs both sub-detectors against one layout and consolidates them."""

    def __init__(self, layout: LayoutDescriptor, settings: ScaleSettings | None = None):
        self.layout = layout
        self.settings = settings or get_settings().scale

    def detect(self, image: RasterImage) -> ScaleEstimate:
        candidates: list[ScaleEstimate] = []

        try:
            candidates.append(detect_by_resolution(image.width, image.height, self.layout, self.settings))
        except ScaleDetectionAbstained as e:
            logger.warning("Resolution lookup abstained: %s", e)

        try:
            candidates.append(detect_by_spacing(image, self.layout, self.settings))
        except ScaleDetectionAbstained as e:
            logger.warning("Spacing analysis abstained: %s", e)

        estimate = consolidate(candidates, self.settings)
        logger.info(
            "Scale %.3f (confidence %.2f, %s) for %dx%d",
            estimate.scale_factor, estimate.confidence, estimate.method.value,
            image.width, image.height,
        )
        return estimate


def detect_scale(
    image: RasterImage,
    layout: LayoutDescriptor,
    settings: ScaleSettings | None = None,
) -> ScaleEstimate:
    return ScaleDetector(layout, settings).detect(image)
