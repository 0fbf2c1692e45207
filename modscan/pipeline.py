"""Screenshot processing pipeline.

Composes the stages explicitly: scale and center detection, coordinate
mapping, region extraction, recognition. Corrections feed the calibration
log and trigger recalibration every ``recalibrate_every`` new entries.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .core.config import Settings, get_settings
from .core.image import RasterImage
from .core.layout import LayoutDescriptor, default_layout
from .core.types import Algorithm, AlgorithmWeights, AnalyzerResult, CalibrationRecord
from .extraction.extractor import RegionExtractor
from .grid.center_detector import detect_grid_center
from .grid.mapper import CoordinateMapper, MappingResult
from .grid.scale_detector import ScaleDetector
from .recognition.calibration import (
    CalibrationStore,
    Recalibrator,
    WeightsRegistry,
    load_weights_file,
    save_weights_file,
)
from .recognition.consensus import ConsensusEngine
from .recognition.engine import BatchResult, RecognitionEngine
from .recognition.zones import region_contexts
from .storage import JsonFileStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    mapping: MappingResult
    recognition: BatchResult

    def to_dict(self) -> dict[str, Any]:
        mapping = self.mapping
        entities = {}
        for eid, entity in mapping.coordinate_map.items():
            entities[eid] = {
                "zone": entity.zone.value,
                "center": [entity.center.x, entity.center.y],
                "bounds": [entity.bounds.left, entity.bounds.top, entity.bounds.right, entity.bounds.bottom],
                "axial": None if entity.axial is None else [entity.axial.q, entity.axial.r],
                "confidence": entity.confidence,
            }
        box = mapping.bounding_box
        return {
            "scale": {
                "scale_factor": mapping.scale.scale_factor,
                "confidence": mapping.scale.confidence,
                "method": mapping.scale.method.value,
            },
            "center": [mapping.center.x, mapping.center.y],
            "zone_boundary": {
                "boundary_y": mapping.zone_boundary.boundary_y,
                "gap_size_px": mapping.zone_boundary.gap_size_px,
                "confidence": mapping.zone_boundary.confidence,
                "core_zone_top": mapping.zone_boundary.core_zone_top,
            },
            "bounding_box": [box.left, box.top, box.right, box.bottom],
            "entities": entities,
            "recognition": self.recognition.to_dict(),
        }


class ScreenshotPipeline:
    """Maps and recognizes screenshots against one layout."""

    def __init__(
        self,
        layout: LayoutDescriptor | None = None,
        settings: Settings | None = None,
        calibration: CalibrationStore | None = None,
        registry: WeightsRegistry | None = None,
        weights_path: str | None = None,
    ):
        self.settings = settings or get_settings()
        self.layout = layout or default_layout()
        self.registry = registry or WeightsRegistry()
        self.calibration = calibration or CalibrationStore()
        self.weights_path = weights_path

        self.scale_detector = ScaleDetector(self.layout, self.settings.scale)
        self.mapper = CoordinateMapper(self.layout, self.settings.zone)
        self.extractor = RegionExtractor(self.settings.recognition.region_size)
        self.engine = RecognitionEngine(
            consensus=ConsensusEngine(self.registry, self.settings.recognition.review_threshold),
            settings=self.settings.recognition,
        )
        self.recalibrator = Recalibrator(self.calibration, self.registry, self.settings.calibration)
        self._pending_corrections = 0

    @classmethod
    def persistent(cls, layout: LayoutDescriptor | None = None, settings: Settings | None = None) -> ScreenshotPipeline:
        """Pipeline whose corrections and weights live in the configured files."""
        settings = settings or get_settings()
        cal = settings.calibration
        weights = load_weights_file(cal.weights_path)
        store = CalibrationStore(JsonFileStore(cal.store_path))
        if cal.retention_days > 0:
            store.prune(cal.retention_days * 86400.0)
        return cls(
            layout=layout,
            settings=settings,
            calibration=store,
            registry=WeightsRegistry(weights),
            weights_path=cal.weights_path,
        )

    # --- Stages ---

    def map_screenshot(self, image: RasterImage) -> MappingResult:
        scale = self.scale_detector.detect(image)
        center = detect_grid_center(image, self.settings.center)
        logger.info(
            "Grid center (%.0f, %.0f) via %s, confidence %.2f",
            center.center.x, center.center.y, center.method, center.confidence,
        )
        return self.mapper.map(image, scale, center.center)

    def recognize(self, image: RasterImage, mapping: MappingResult) -> BatchResult:
        regions = self.extractor.extract_all(image, mapping.coordinate_map)
        return self.engine.analyze_batch(regions, region_contexts(mapping, self.layout))

    def process(self, image: RasterImage) -> PipelineResult:
        mapping = self.map_screenshot(image)
        return PipelineResult(mapping=mapping, recognition=self.recognize(image, mapping))

    # --- Calibration ---

    def record_correction(
        self,
        region_id: str,
        analyzer_results: Mapping[Algorithm, AnalyzerResult],
        user_label: bool,
    ) -> CalibrationRecord:
        record = self.calibration.record_correction(region_id, analyzer_results, user_label)
        self._pending_corrections += 1
        if self._pending_corrections >= self.settings.calibration.recalibrate_every:
            self.recalibrate()
        return record

    def recalibrate(self) -> AlgorithmWeights:
        weights = self.recalibrator.recalibrate()
        self._pending_corrections = 0
        if self.weights_path:
            save_weights_file(self.weights_path, weights)
        return weights

    # --- Lifecycle ---

    def close(self) -> None:
        self.engine.close()

    def __enter__(self) -> ScreenshotPipeline:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
