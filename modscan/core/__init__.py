"""Core types, configuration and layout data for the mod screenshot scanner."""

from .config import (
    CalibrationSettings,
    CenterSettings,
    RecognitionSettings,
    ScaleSettings,
    Settings,
    ZoneSettings,
    get_settings,
    reset_settings,
)
from .errors import (
    GeometryError,
    ImageLoadError,
    LayoutError,
    MappingError,
    ModScanError,
    ScaleDetectionAbstained,
)
from .image import RasterImage, load_image
from .layout import (
    CoreEntitySpec,
    LayoutDescriptor,
    ReferenceResolution,
    RegularGridSpec,
    ZoneSpec,
    default_layout,
    layout_from_dict,
    load_layout_file,
)
from .types import (
    Algorithm,
    AlgorithmWeights,
    AnalyzerResult,
    AxialCoord,
    BatchStats,
    CalibrationRecord,
    CenterEstimate,
    ConsensusResult,
    ConsolidatedEstimate,
    CoreRole,
    FallbackEstimate,
    GridCenter,
    MappedEntity,
    PixelPoint,
    Rectangle,
    RegionBuffer,
    ResolutionEstimate,
    ScaleEstimate,
    ScaleMethod,
    SpacingEstimate,
    Zone,
    ZoneBoundary,
    ZoneStats,
)


__all__ = [
    # Config
    "get_settings",
    "reset_settings",
    "Settings",
    "ScaleSettings",
    "CenterSettings",
    "ZoneSettings",
    "RecognitionSettings",
    "CalibrationSettings",
    # Errors
    "ModScanError",
    "GeometryError",
    "LayoutError",
    "MappingError",
    "ScaleDetectionAbstained",
    "ImageLoadError",
    # Image
    "RasterImage",
    "load_image",
    # Layout
    "LayoutDescriptor",
    "ReferenceResolution",
    "CoreEntitySpec",
    "RegularGridSpec",
    "ZoneSpec",
    "default_layout",
    "layout_from_dict",
    "load_layout_file",
    # Types
    "Zone",
    "Algorithm",
    "ScaleMethod",
    "CoreRole",
    "AxialCoord",
    "PixelPoint",
    "GridCenter",
    "Rectangle",
    "ScaleEstimate",
    "ResolutionEstimate",
    "SpacingEstimate",
    "ConsolidatedEstimate",
    "FallbackEstimate",
    "CenterEstimate",
    "ZoneBoundary",
    "MappedEntity",
    "RegionBuffer",
    "AnalyzerResult",
    "ConsensusResult",
    "BatchStats",
    "ZoneStats",
    "AlgorithmWeights",
    "CalibrationRecord",
]
