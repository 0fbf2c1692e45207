"""Zone-aware coordinate mapping.

Places every layout entity on the screenshot:

1. the three core entities at fixed offsets from the grid center
2. the regular honeycomb grid below the detected zone gap

Regular slots are only emitted for known entities or where the pixels show a
hex outline, so missing rows do not produce phantom entries. Uncertainty in
the zone gap is pushed into every regular entity's confidence.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ..core.config import ZoneSettings, get_settings
from ..core.errors import MappingError
from ..core.image import RasterImage
from ..core.layout import LayoutDescriptor
from ..core.types import (
    GridCenter,
    MappedEntity,
    PixelPoint,
    Rectangle,
    ScaleEstimate,
    Zone,
    ZoneBoundary,
)
from ..geometry.hex import hex_bounds
from .pixels import local_confidence
from .zone_detector import detect_zone_boundary


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingMetrics:
    total: int
    core_count: int
    regular_count: int
    average_confidence: float
    zone_confidence: float


@dataclass(frozen=True)
class MappingValidation:
    has_core: bool
    core_complete: bool
    has_regular: bool
    confidence_acceptable: bool
    zone_detection_good: bool

    @property
    def is_valid(self) -> bool:
        return (
            self.has_core
            and self.has_regular
            and self.confidence_acceptable
            and self.zone_detection_good
        )


@dataclass(frozen=True)
class MappingResult:
    """Read-only coordinate map for one screenshot."""

    coordinate_map: Mapping[str, MappedEntity]
    bounding_box: Rectangle
    zone_boundary: ZoneBoundary
    scale: ScaleEstimate
    center: GridCenter

    @property
    def metrics(self) -> MappingMetrics:
        return compute_metrics(self.coordinate_map.values(), self.zone_boundary)

    def validate(self) -> MappingValidation:
        m = self.metrics
        return MappingValidation(
            has_core=m.core_count > 0,
            core_complete=m.core_count == 3,
            has_regular=m.regular_count > 0,
            confidence_acceptable=m.average_confidence > 0.6,
            zone_detection_good=m.zone_confidence > 0.5,
        )

    def in_zone(self, zone: Zone) -> list[MappedEntity]:
        return [e for e in self.coordinate_map.values() if e.zone == zone]


def compute_bounding_box(entities: Iterable[MappedEntity]) -> Rectangle:
    """Smallest box containing every entity's bounds (all-zero when empty)."""
    entities = list(entities)
    if not entities:
        return Rectangle(0.0, 0.0, 0.0, 0.0)
    return Rectangle(
        left=min(e.bounds.left for e in entities),
        top=min(e.bounds.top for e in entities),
        right=max(e.bounds.right for e in entities),
        bottom=max(e.bounds.bottom for e in entities),
    )


def compute_metrics(entities: Iterable[MappedEntity], boundary: ZoneBoundary) -> MappingMetrics:
    entities = list(entities)
    core = sum(1 for e in entities if e.zone == Zone.CORE)
    regular = sum(1 for e in entities if e.zone == Zone.REGULAR)
    avg = sum(e.confidence for e in entities) / len(entities) if entities else 0.0
    return MappingMetrics(
        total=len(entities),
        core_count=core,
        regular_count=regular,
        average_confidence=avg,
        zone_confidence=boundary.confidence,
    )


def _inside(image: RasterImage, point: PixelPoint) -> bool:
    return 0 <= point.x < image.width and 0 <= point.y < image.height


class CoordinateMapper:
    """Maps one layout onto screenshots."""

    def __init__(self, layout: LayoutDescriptor, settings: ZoneSettings | None = None):
        self.layout = layout
        self.settings = settings or get_settings().zone

    def map(self, image: RasterImage, scale: ScaleEstimate, center: GridCenter) -> MappingResult:
        s = scale.scale_factor
        if not s > 0:
            raise MappingError(f"Scale factor must be positive, got {s}")

        boundary = detect_zone_boundary(image, center, s, self.layout, self.settings)
        if boundary.confidence < self.settings.low_confidence_warning:
            logger.warning(
                "Low zone-boundary confidence %.2f (gap %.0f px); regular confidences penalized",
                boundary.confidence, boundary.gap_size_px,
            )

        entities: dict[str, MappedEntity] = {}
        for entity in self.map_core(image, center, s):
            entities[entity.id] = entity
        if not entities:
            raise MappingError(
                f"No core entity fits inside the {image.width}x{image.height} image "
                f"(center {center.x:.0f},{center.y:.0f}, scale {s:.2f}); "
                "the screenshot does not match the layout"
            )

        for entity in self.map_regular(image, center, s, boundary):
            entities[entity.id] = entity

        result = MappingResult(
            coordinate_map=MappingProxyType(entities),
            bounding_box=compute_bounding_box(entities.values()),
            zone_boundary=boundary,
            scale=scale,
            center=center,
        )
        m = result.metrics
        logger.info(
            "Mapped %d entities (%d core, %d regular), avg confidence %.2f",
            m.total, m.core_count, m.regular_count, m.average_confidence,
        )
        return result

    def map_core(self, image: RasterImage, center: GridCenter, s: float) -> list[MappedEntity]:
        half = self.layout.grid.hex_radius * s
        mapped = []
        for spec in self.layout.core_entities:
            point = PixelPoint(center.x + spec.offset.x * s, center.y + spec.offset.y * s)
            if not _inside(image, point):
                logger.debug("Core entity %s at (%.0f, %.0f) is off-image", spec.entity_id, point.x, point.y)
                continue
            bounds = Rectangle.around(point, half)
            confidence, _, _ = local_confidence(image, point, bounds, self.settings.content_weight)
            mapped.append(
                MappedEntity(
                    id=spec.entity_id,
                    zone=Zone.CORE,
                    center=point,
                    bounds=bounds,
                    axial=None,
                    confidence=confidence,
                )
            )
        return mapped

    def map_regular(
        self,
        image: RasterImage,
        center: GridCenter,
        s: float,
        boundary: ZoneBoundary,
    ) -> list[MappedEntity]:
        grid = self.layout.grid
        radius = grid.hex_radius * s
        row_step = grid.row_spacing * s
        col_step = grid.column_spacing * s
        first_x = center.x - (grid.columns - 1) * col_step / 2
        first_y = boundary.regular_zone_top + radius

        mapped = []
        for row in range(grid.max_rows):
            y = first_y + row * row_step
            # Stop at the first row whose hexes would run off the bottom edge.
            if hex_bounds(PixelPoint(first_x, y), radius).bottom > image.height:
                break
            shift = col_step / 2 if row % 2 else 0.0
            for col in range(grid.columns):
                point = PixelPoint(first_x + col * col_step + shift, y)
                if not _inside(image, point):
                    continue
                axial = self.layout.axial_of(row, col)
                known = self.layout.entity_at(axial)
                bounds = Rectangle.around(point, radius)
                evidence, _, outline = local_confidence(image, point, bounds, self.settings.content_weight)
                if known is None and outline <= self.settings.outline_threshold:
                    continue
                mapped.append(
                    MappedEntity(
                        id=known or f"slot_{row}_{col}",
                        zone=Zone.REGULAR,
                        center=point,
                        bounds=bounds,
                        axial=axial,
                        confidence=evidence * boundary.confidence,
                    )
                )
        return mapped


def map_coordinates(
    image: RasterImage,
    scale: ScaleEstimate,
    center: GridCenter,
    layout: LayoutDescriptor,
    settings: ZoneSettings | None = None,
) -> MappingResult:
    return CoordinateMapper(layout, settings).map(image, scale, center)
