"""Axial hex-grid math.

Pure functions over ``AxialCoord``. The layout places neighbouring columns
``1.5 * radius`` apart horizontally and rows ``sqrt(3) * radius`` apart
vertically, with every column shifted down by half a row per ``q``.
"""

from __future__ import annotations

import math

from ..core.errors import GeometryError
from ..core.types import AxialCoord, PixelPoint, Rectangle


SQRT3 = math.sqrt(3.0)

# Neighbour offsets in walking order around a ring.
HEX_DIRECTIONS: tuple[AxialCoord, ...] = (
    AxialCoord(1, 0),
    AxialCoord(1, -1),
    AxialCoord(0, -1),
    AxialCoord(-1, 0),
    AxialCoord(-1, 1),
    AxialCoord(0, 1),
)


def _check_radius(hex_radius: float) -> None:
    if not hex_radius > 0:
        raise GeometryError(f"hex_radius must be > 0, got {hex_radius}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def axial_to_pixel(q: int, r: int, hex_radius: float, origin: PixelPoint) -> PixelPoint:
    """Pixel center of hex ``(q, r)`` around ``origin``."""
    _check_radius(hex_radius)
    x = hex_radius * 1.5 * q + origin.x
    y = hex_radius * (SQRT3 / 2 * q + SQRT3 * r) + origin.y
    return PixelPoint(x, y)


def pixel_to_axial(x: float, y: float, hex_radius: float, origin: PixelPoint) -> AxialCoord:
    """Hex containing pixel ``(x, y)``."""
    _check_radius(hex_radius)
    rel_x = x - origin.x
    rel_y = y - origin.y
    q = (2.0 / 3.0 * rel_x) / hex_radius
    r = (-1.0 / 3.0 * rel_x + SQRT3 / 3.0 * rel_y) / hex_radius
    return round_hex(q, r)


def round_hex(q: float, r: float) -> AxialCoord:
    """
    Round fractional axial coordinates to the nearest hex.

    Each cube component is rounded on its own; the one with the largest
    rounding error is then rebuilt from the other two so ``q + r + s == 0``.
    Priority on ties: q, then r, then s.
    """
    s = -q - r
    rq = _round_half_up(q)
    rr = _round_half_up(r)
    rs = _round_half_up(s)

    dq = abs(rq - q)
    dr = abs(rr - r)
    ds = abs(rs - s)

    if dq > dr and dq > ds:
        rq = -rr - rs
    elif dr > ds:
        rr = -rq - rs
    # otherwise s absorbs the error and is implied

    return AxialCoord(rq, rr)


def hex_distance(a: AxialCoord, b: AxialCoord) -> int:
    dq = a.q - b.q
    dr = a.r - b.r
    return (abs(dq) + abs(dq + dr) + abs(dr)) // 2


def hex_neighbors(coord: AxialCoord) -> list[AxialCoord]:
    return [coord + d for d in HEX_DIRECTIONS]


def hex_ring(center: AxialCoord, radius: int) -> list[AxialCoord]:
    """Hexes at exactly ``radius`` steps from ``center`` (ring 0 is the center)."""
    if radius < 0:
        raise GeometryError(f"ring radius must be >= 0, got {radius}")
    if radius == 0:
        return [center]

    results: list[AxialCoord] = []
    current = center + HEX_DIRECTIONS[4].scaled(radius)
    for direction in HEX_DIRECTIONS:
        for _ in range(radius):
            results.append(current)
            current = current + direction
    return results


def hex_disk(center: AxialCoord, radius: int) -> list[AxialCoord]:
    """All hexes within ``radius`` steps, ``3n^2 + 3n + 1`` of them."""
    if radius < 0:
        raise GeometryError(f"disk radius must be >= 0, got {radius}")
    disk: list[AxialCoord] = []
    for k in range(radius + 1):
        disk.extend(hex_ring(center, k))
    return disk


def hex_bounds(center: PixelPoint, hex_radius: float) -> Rectangle:
    """Tight box around a pointy-top hex: ``sqrt(3) * R`` wide, ``2R`` tall."""
    _check_radius(hex_radius)
    half_w = hex_radius * SQRT3 / 2
    return Rectangle(
        left=center.x - half_w,
        top=center.y - hex_radius,
        right=center.x + half_w,
        bottom=center.y + hex_radius,
    )
