"""Region extraction from screenshots."""

from .extractor import RegionExtractor, sharpness


__all__ = ["RegionExtractor", "sharpness"]
