"""Scale, center and coordinate mapping for screenshots."""

from .center_detector import detect_grid_center
from .mapper import (
    CoordinateMapper,
    MappingMetrics,
    MappingResult,
    MappingValidation,
    compute_bounding_box,
    compute_metrics,
    map_coordinates,
)
from .scale_detector import (
    ScaleDetector,
    consolidate,
    detect_by_resolution,
    detect_by_spacing,
    detect_scale,
)
from .zone_detector import detect_zone_boundary


__all__ = [
    "ScaleDetector",
    "detect_scale",
    "detect_by_resolution",
    "detect_by_spacing",
    "consolidate",
    "detect_grid_center",
    "detect_zone_boundary",
    "CoordinateMapper",
    "MappingResult",
    "MappingMetrics",
    "MappingValidation",
    "compute_bounding_box",
    "compute_metrics",
    "map_coordinates",
]
