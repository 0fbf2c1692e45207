"""Exception taxonomy for the mod screenshot scanner.

Abstentions and low-confidence results are data, not errors. Only structural
problems (bad geometry, bad layout, nothing mappable) are raised.
"""


class ModScanError(Exception):
    """Base class for all scanner errors."""


class GeometryError(ModScanError, ValueError):
    """Invalid hex geometry input (non-positive radius, negative ring)."""


class LayoutError(ModScanError, ValueError):
    """Layout descriptor is inconsistent or out of range."""


class MappingError(ModScanError):
    """Screenshot could not be mapped onto the known layout."""


class ScaleDetectionAbstained(ModScanError):
    """A scale sub-detector declined to produce an estimate."""


class ImageLoadError(ModScanError):
    """Screenshot could not be read or decoded."""
