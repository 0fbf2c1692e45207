"""Zone-aware confidence adjustment.

Core entities have a known icon color, so a region whose pixels match it earns
a confidence boost. Regular slots are discounted when only part of the slot is
on-screen, and earn a bonus when their hex neighbours mostly made the same
decision.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace

import numpy as np

from ..core.config import RecognitionSettings, get_settings
from ..core.layout import LayoutDescriptor
from ..core.types import AxialCoord, ConsensusResult, RegionBuffer, Zone
from ..geometry.hex import hex_neighbors
from .utils import region_mask, to_rgba


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionContext:
    """Where a region sits in the layout."""

    zone: Zone
    axial: AxialCoord | None = None
    core_color: tuple[int, int, int] | None = None


def region_contexts(mapping, layout: LayoutDescriptor) -> dict[str, RegionContext]:
    """Context for every entity of a ``MappingResult``."""
    contexts = {}
    for eid, entity in mapping.coordinate_map.items():
        spec = layout.core_entity(eid) if entity.zone == Zone.CORE else None
        contexts[eid] = RegionContext(
            zone=entity.zone,
            axial=entity.axial,
            core_color=spec.color if spec is not None else None,
        )
    return contexts


def color_match(region: RegionBuffer, color: tuple[int, int, int], tolerance: float) -> float:
    """Twice the share of hex pixels within ``tolerance`` of ``color``, capped at 1."""
    if region.pixels is None or region.pixels.size == 0:
        return 0.0
    rgba = to_rgba(region.pixels)
    mask = region_mask(rgba)
    if not mask.any():
        return 0.0
    rgb = rgba[:, :, :3][mask].astype(np.float32)
    dist = np.sqrt(((rgb - np.asarray(color, dtype=np.float32)) ** 2).sum(axis=1))
    return min(1.0, float((dist < tolerance).mean()) * 2.0)


class ZoneAdjuster:
    """Applies the per-zone adjustments to a batch of consensus results."""

    def __init__(self, settings: RecognitionSettings | None = None):
        self.settings = settings or get_settings().recognition

    def adjust(
        self,
        results: Mapping[str, ConsensusResult],
        regions: Mapping[str, RegionBuffer],
        contexts: Mapping[str, RegionContext],
    ) -> dict[str, ConsensusResult]:
        # Neighbour votes use the decisions before any adjustment.
        by_axial: dict[AxialCoord, bool] = {}
        for rid, result in results.items():
            ctx = contexts.get(rid)
            if ctx is not None and ctx.zone == Zone.REGULAR and ctx.axial is not None and result.per_algorithm:
                by_axial[ctx.axial] = result.selected

        adjusted = {}
        for rid, result in results.items():
            ctx = contexts.get(rid)
            if ctx is None:
                adjusted[rid] = result
                continue
            if not result.per_algorithm:
                adjusted[rid] = replace(result, zone=ctx.zone)
                continue
            if ctx.zone == Zone.CORE:
                adjusted[rid] = self._adjust_core(result, regions.get(rid), ctx)
            elif ctx.zone == Zone.REGULAR:
                adjusted[rid] = self._adjust_regular(result, regions.get(rid), ctx, by_axial)
            else:
                adjusted[rid] = replace(result, zone=ctx.zone)
        return adjusted

    def _adjust_core(
        self, result: ConsensusResult, region: RegionBuffer | None, ctx: RegionContext
    ) -> ConsensusResult:
        match = 0.0
        if region is not None and ctx.core_color is not None:
            match = color_match(region, ctx.core_color, self.settings.core_color_tolerance)
        boost = self.settings.core_confidence_boost * match
        return self._finish(result, Zone.CORE, result.confidence + boost, {"color_match": match, "core_boost": boost})

    def _adjust_regular(
        self,
        result: ConsensusResult,
        region: RegionBuffer | None,
        ctx: RegionContext,
        by_axial: Mapping[AxialCoord, bool],
    ) -> ConsensusResult:
        s = self.settings
        alignment = region.completeness if region is not None else 0.0
        w = s.grid_alignment_weight
        confidence = result.confidence * (1.0 - w + w * alignment)

        consistency = 0.0
        bonus = 0.0
        if ctx.axial is not None:
            votes = [by_axial[n] for n in hex_neighbors(ctx.axial) if n in by_axial]
            if len(votes) >= s.min_neighbors:
                consistency = sum(1 for v in votes if v == result.selected) / len(votes)
                if consistency >= s.neighbor_consistency_threshold:
                    bonus = s.neighbor_consistency_bonus
        return self._finish(
            result,
            Zone.REGULAR,
            confidence + bonus,
            {"grid_alignment": alignment, "neighbor_consistency": consistency, "neighbor_bonus": bonus},
        )

    def _finish(
        self, result: ConsensusResult, zone: Zone, confidence: float, adjustments: dict[str, float]
    ) -> ConsensusResult:
        confidence = min(1.0, max(0.0, confidence))
        logger.debug("%s region confidence %.2f -> %.2f", zone.value, result.confidence, confidence)
        return replace(
            result,
            zone=zone,
            confidence=confidence,
            adjustments=adjustments,
            needs_review=confidence < self.settings.review_threshold,
        )
