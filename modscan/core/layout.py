"""Layout descriptor for the two-zone hex screen.

The descriptor carries the reference data the scale detector and coordinate
mapper need: known screenshot resolutions, the three fixed core-entity offsets,
the regular grid geometry, the expected gap between the zones and the known
regular entities. Offsets are calibration data for one target UI; supply a
different layout file to target another.

Descriptors are immutable and validated on construction.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from .errors import LayoutError
from .types import AxialCoord, CoreRole, PixelPoint


@dataclass(frozen=True)
class ReferenceResolution:
    """A screenshot size with a known layout scale."""

    width: int
    height: int
    base_scale: float

    @property
    def aspect(self) -> float:
        return self.width / self.height

    @property
    def key(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class CoreEntitySpec:
    """One of the three fixed-position core entities."""

    role: CoreRole
    entity_id: str
    display_name: str
    offset: PixelPoint  # relative to grid center at scale 1.0
    color: tuple[int, int, int] = (128, 128, 128)  # dominant icon color


@dataclass(frozen=True)
class ZoneSpec:
    """Vertical extents of the core zone and the expected separating gap."""

    core_top: float = -80.0
    core_bottom: float = 50.0
    min_gap: float = 30.0
    typical_gap: float = 50.0
    max_gap: float = 80.0


@dataclass(frozen=True)
class RegularGridSpec:
    """Geometry of the regular honeycomb grid (pixels at scale 1.0)."""

    columns: int = 4
    hex_radius: float = 24.0
    row_spacing: float = 42.0
    column_spacing: float = 36.0
    max_rows: int = 10


def _default_resolutions() -> tuple[ReferenceResolution, ...]:
    return (
        ReferenceResolution(1920, 1080, 1.0),
        ReferenceResolution(2560, 1440, 1.33),
        ReferenceResolution(3840, 2160, 2.0),
    )


def _default_core() -> tuple[CoreEntitySpec, ...]:
    return (
        CoreEntitySpec(CoreRole.PRIMARY, "body", "Body", PixelPoint(-60.0, -40.0), (180, 60, 60)),
        CoreEntitySpec(CoreRole.SECONDARY, "shield", "Shield", PixelPoint(60.0, -40.0), (60, 60, 180)),
        CoreEntitySpec(CoreRole.TERTIARY, "weapon", "Weapon", PixelPoint(0.0, 20.0), (180, 120, 60)),
    )


@dataclass(frozen=True)
class LayoutDescriptor:
    """Immutable reference data for one two-zone layout family."""

    resolutions: tuple[ReferenceResolution, ...] = field(default_factory=_default_resolutions)
    core_entities: tuple[CoreEntitySpec, ...] = field(default_factory=_default_core)
    zones: ZoneSpec = field(default_factory=ZoneSpec)
    grid: RegularGridSpec = field(default_factory=RegularGridSpec)
    regular_entities: Mapping[str, AxialCoord] = field(default_factory=dict)
    reference_spacing: float = 42.0  # vertical hex pitch at scale 1.0

    def __post_init__(self) -> None:
        # Freeze the mapping so a shared descriptor cannot be edited in place.
        object.__setattr__(self, "regular_entities", MappingProxyType(dict(self.regular_entities)))
        object.__setattr__(self, "resolutions", tuple(self.resolutions))
        object.__setattr__(self, "core_entities", tuple(self.core_entities))
        self._validate()

    def _validate(self) -> None:
        if len(self.core_entities) != 3:
            raise LayoutError(f"Expected exactly 3 core entities, got {len(self.core_entities)}")
        roles = {c.role for c in self.core_entities}
        if len(roles) != 3:
            raise LayoutError("Core entity roles must be distinct")
        core_ids = [c.entity_id for c in self.core_entities]
        if len(set(core_ids)) != 3:
            raise LayoutError("Core entity ids must be distinct")

        grid = self.grid
        if grid.hex_radius <= 0 or grid.row_spacing <= 0 or grid.column_spacing <= 0:
            raise LayoutError("Grid radius and spacings must be positive")
        if grid.columns < 1 or grid.max_rows < 1:
            raise LayoutError("Grid needs at least one row and one column")
        if self.reference_spacing <= 0:
            raise LayoutError("reference_spacing must be positive")
        if not self.zones.min_gap <= self.zones.typical_gap <= self.zones.max_gap:
            raise LayoutError("Zone gaps must satisfy min <= typical <= max")
        if self.zones.typical_gap <= 0:
            raise LayoutError("typical_gap must be positive")
        for res in self.resolutions:
            if res.width <= 0 or res.height <= 0 or res.base_scale <= 0:
                raise LayoutError(f"Invalid reference resolution {res}")

        seen: dict[AxialCoord, str] = {}
        for name, coord in self.regular_entities.items():
            if name in core_ids:
                raise LayoutError(f"Regular entity '{name}' clashes with a core entity id")
            row, col = self.offset_of(coord)
            if not (0 <= row < grid.max_rows and 0 <= col < grid.columns):
                raise LayoutError(f"Regular entity '{name}' at {coord} lies outside the grid")
            if coord in seen:
                raise LayoutError(f"Entities '{seen[coord]}' and '{name}' share axial {coord}")
            seen[coord] = name

    # --- Grid addressing ---

    @staticmethod
    def axial_of(row: int, col: int) -> AxialCoord:
        """Offset (row, col) to axial, with odd rows shifted right."""
        return AxialCoord(q=col - row // 2, r=row)

    @staticmethod
    def offset_of(coord: AxialCoord) -> tuple[int, int]:
        """Inverse of ``axial_of``: axial to (row, col)."""
        return coord.r, coord.q + coord.r // 2

    def entity_at(self, coord: AxialCoord) -> str | None:
        for name, known in self.regular_entities.items():
            if known == coord:
                return name
        return None

    def core_entity(self, entity_id: str) -> CoreEntitySpec | None:
        for spec in self.core_entities:
            if spec.entity_id == entity_id:
                return spec
        return None


def default_layout() -> LayoutDescriptor:
    """Layout tuned against the 1920x1080 reference screen."""
    return LayoutDescriptor()


# ─────────────────────────────────────────────────────────────
# JSON LOADING
# ─────────────────────────────────────────────────────────────


def _point(value: Any) -> PixelPoint:
    if isinstance(value, dict):
        return PixelPoint(float(value["x"]), float(value["y"]))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return PixelPoint(float(value[0]), float(value[1]))
    raise LayoutError(f"Invalid point: {value!r}")


def _axial(value: Any) -> AxialCoord:
    if isinstance(value, dict):
        return AxialCoord(int(value["q"]), int(value["r"]))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return AxialCoord(int(value[0]), int(value[1]))
    raise LayoutError(f"Invalid axial coordinate: {value!r}")


def _color(value: Any) -> tuple[int, int, int]:
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return int(value[0]), int(value[1]), int(value[2])
    raise LayoutError(f"Invalid RGB color: {value!r}")


def layout_from_dict(data: dict[str, Any]) -> LayoutDescriptor:
    """Build a descriptor from a JSON-style dict; missing sections use defaults."""
    kwargs: dict[str, Any] = {}
    try:
        if "resolutions" in data:
            kwargs["resolutions"] = tuple(
                ReferenceResolution(int(r["width"]), int(r["height"]), float(r["base_scale"]))
                for r in data["resolutions"]
            )
        if "core_entities" in data:
            kwargs["core_entities"] = tuple(
                CoreEntitySpec(
                    role=CoreRole(c["role"]),
                    entity_id=str(c["id"]),
                    display_name=str(c.get("display_name", c["id"])),
                    offset=_point(c["offset"]),
                    color=_color(c.get("color", (128, 128, 128))),
                )
                for c in data["core_entities"]
            )
        if "zones" in data:
            kwargs["zones"] = ZoneSpec(**{k: float(v) for k, v in data["zones"].items()})
        if "grid" in data:
            grid = dict(data["grid"])
            for key in ("columns", "max_rows"):
                if key in grid:
                    grid[key] = int(grid[key])
            kwargs["grid"] = RegularGridSpec(**grid)
        if "regular_entities" in data:
            kwargs["regular_entities"] = {
                str(name): _axial(pos) for name, pos in data["regular_entities"].items()
            }
        if "reference_spacing" in data:
            kwargs["reference_spacing"] = float(data["reference_spacing"])
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, LayoutError):
            raise
        raise LayoutError(f"Malformed layout data: {e}") from e
    return LayoutDescriptor(**kwargs)


def load_layout_file(path: str) -> LayoutDescriptor:
    """Load a layout JSON file (raises LayoutError when missing/invalid)."""
    if not path or not os.path.exists(path):
        raise LayoutError(f"Layout file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LayoutError(f"Could not read layout file {path}: {e}") from e
    if not isinstance(data, dict):
        raise LayoutError(f"Layout file {path} must contain a JSON object")
    return layout_from_dict(data)
