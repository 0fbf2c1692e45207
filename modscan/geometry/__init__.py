"""Hex-grid geometry."""

from .hex import (
    HEX_DIRECTIONS,
    axial_to_pixel,
    hex_bounds,
    hex_disk,
    hex_distance,
    hex_neighbors,
    hex_ring,
    pixel_to_axial,
    round_hex,
)


__all__ = [
    "HEX_DIRECTIONS",
    "axial_to_pixel",
    "pixel_to_axial",
    "round_hex",
    "hex_distance",
    "hex_neighbors",
    "hex_ring",
    "hex_disk",
    "hex_bounds",
]
