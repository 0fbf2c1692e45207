"""
Shared data types for the mod screenshot scanner.

These types are the contracts between modules.
All stages of the pipeline communicate using these structures.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

import numpy as np


# ─────────────────────────────────────────────────────────────
# ENUMS
# ─────────────────────────────────────────────────────────────


class Zone(str, Enum):
    """Layout zone an entity belongs to."""

    CORE = "core"
    REGULAR = "regular"
    UNKNOWN = "unknown"


class Algorithm(str, Enum):
    """Region analyzers taking part in the consensus vote."""

    BRIGHTNESS = "brightness"
    COLOR = "color"
    EDGE = "edge"
    PATTERN = "pattern"

    def __str__(self) -> str:
        return self.value


class ScaleMethod(str, Enum):
    """How a scale estimate was produced."""

    RESOLUTION = "resolution"
    SPACING = "spacing"
    CONSOLIDATED = "consolidated"
    FALLBACK = "fallback"


class CoreRole(str, Enum):
    """Fixed semantic roles of the three core entities."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


# ─────────────────────────────────────────────────────────────
# GEOMETRY
# ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AxialCoord:
    """Hex-grid cell in axial form; ``s = -q - r`` is implied."""

    q: int
    r: int

    @property
    def s(self) -> int:
        return -self.q - self.r

    def __add__(self, other: AxialCoord) -> AxialCoord:
        return AxialCoord(self.q + other.q, self.r + other.r)

    def scaled(self, k: int) -> AxialCoord:
        return AxialCoord(self.q * k, self.r * k)

    def __str__(self) -> str:
        return f"({self.q}, {self.r})"


@dataclass(frozen=True)
class PixelPoint:
    """A point in image pixel space."""

    x: float
    y: float


@dataclass(frozen=True)
class GridCenter(PixelPoint):
    """Origin of the axial system in pixel space for one image."""


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned box. Zero-area boxes are valid (empty map)."""

    left: float
    top: float
    right: float
    bottom: float

    def __post_init__(self) -> None:
        if self.left > self.right or self.top > self.bottom:
            raise ValueError(f"Inverted rectangle: {self}")

    @classmethod
    def around(cls, center: PixelPoint, half_size: float) -> Rectangle:
        """Square of side ``2 * half_size`` centered on ``center``."""
        return cls(
            left=center.x - half_size,
            top=center.y - half_size,
            right=center.x + half_size,
            bottom=center.y + half_size,
        )

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def area(self) -> float:
        return self.width * self.height


# ─────────────────────────────────────────────────────────────
# SCALE ESTIMATES (tagged by method)
# ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScaleEstimate:
    """Common shape of every scale estimate."""

    scale_factor: float
    confidence: float

    method: ClassVar[ScaleMethod]


@dataclass(frozen=True)
class ResolutionEstimate(ScaleEstimate):
    """Estimate from the known-resolution table."""

    matched_resolution: tuple[int, int]
    exact: bool

    method: ClassVar[ScaleMethod] = ScaleMethod.RESOLUTION


@dataclass(frozen=True)
class SpacingEstimate(ScaleEstimate):
    """Estimate from peak-to-peak spacing in brightness profiles."""

    detected_spacing: float
    expected_spacing: float
    samples_used: int
    variance: float

    method: ClassVar[ScaleMethod] = ScaleMethod.SPACING


@dataclass(frozen=True)
class ConsolidatedEstimate(ScaleEstimate):
    """Confidence-weighted merge of the surviving sub-estimates."""

    candidates: tuple[ScaleEstimate, ...]

    method: ClassVar[ScaleMethod] = ScaleMethod.CONSOLIDATED

    @property
    def methods(self) -> tuple[ScaleMethod, ...]:
        return tuple(c.method for c in self.candidates)


@dataclass(frozen=True)
class FallbackEstimate(ScaleEstimate):
    """Hard-coded estimate used when no sub-detector was usable."""

    reason: str = ""

    method: ClassVar[ScaleMethod] = ScaleMethod.FALLBACK


@dataclass(frozen=True)
class CenterEstimate:
    """Detected grid origin with its confidence."""

    center: GridCenter
    confidence: float
    method: str


# ─────────────────────────────────────────────────────────────
# MAPPING
# ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ZoneBoundary:
    """Horizontal gap separating the core zone from the regular zone."""

    boundary_y: float
    gap_size_px: float
    confidence: float
    core_zone_bottom: float
    regular_zone_top: float
    core_zone_top: float = float("-inf")

    def identify_zone(self, pixel_y: float, core_zone_top: float | None = None) -> Zone:
        """Classify a pixel row as core, regular or unknown (gap / above core)."""
        top = self.core_zone_top if core_zone_top is None else core_zone_top
        if top <= pixel_y <= self.core_zone_bottom:
            return Zone.CORE
        if pixel_y >= self.regular_zone_top:
            return Zone.REGULAR
        return Zone.UNKNOWN


@dataclass(frozen=True)
class MappedEntity:
    """Expected pixel location of one layout entity."""

    id: str
    zone: Zone
    center: PixelPoint
    bounds: Rectangle
    axial: AxialCoord | None
    confidence: float


# ─────────────────────────────────────────────────────────────
# RECOGNITION
# ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RegionBuffer:
    """
    Fixed-size pixel buffer for one hex region.

    ``pixels`` is an ``(H, W, 4)`` RGBA or ``(H, W, 3)`` RGB uint8 array.
    """

    pixels: np.ndarray | None
    quality: float = 1.0
    completeness: float = 1.0

    @property
    def size(self) -> tuple[int, int]:
        if self.pixels is None:
            return (0, 0)
        return int(self.pixels.shape[1]), int(self.pixels.shape[0])


def _jsonable(value: Any) -> Any:
    """Convert numpy scalars/arrays and enums into plain JSON values."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class AnalyzerResult:
    """Decision of one analyzer for one region."""

    selected: bool
    confidence: float
    algorithm: Algorithm
    metadata: dict[str, Any] = field(default_factory=dict)
    processing_time_ms: float = 0.0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected": bool(self.selected),
            "confidence": float(self.confidence),
            "algorithm": self.algorithm.value,
            "metadata": _jsonable(self.metadata),
            "processing_time_ms": float(self.processing_time_ms),
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalyzerResult:
        return cls(
            selected=bool(data.get("selected", False)),
            confidence=float(data.get("confidence", 0.0)),
            algorithm=Algorithm(data["algorithm"]),
            metadata=dict(data.get("metadata") or {}),
            processing_time_ms=float(data.get("processing_time_ms", 0.0)),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class ConsensusResult:
    """Fused decision for one region."""

    selected: bool
    confidence: float
    agreement: float
    weighted_votes: float
    per_algorithm: dict[Algorithm, AnalyzerResult]
    supporting: tuple[Algorithm, ...] = ()
    conflicting: tuple[Algorithm, ...] = ()
    needs_review: bool = False
    zone: Zone = Zone.UNKNOWN
    adjustments: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected": bool(self.selected),
            "confidence": float(self.confidence),
            "agreement": float(self.agreement),
            "weighted_votes": float(self.weighted_votes),
            "supporting": [a.value for a in self.supporting],
            "conflicting": [a.value for a in self.conflicting],
            "needs_review": bool(self.needs_review),
            "zone": self.zone.value,
            "adjustments": _jsonable(self.adjustments),
            "per_algorithm": {a.value: r.to_dict() for a, r in self.per_algorithm.items()},
        }


@dataclass(frozen=True)
class ZoneStats:
    """Per-zone share of a batch."""

    count: int
    selected_count: int
    average_confidence: float
    success_rate: float  # regions where at least one analyzer produced a usable result

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "selected_count": self.selected_count,
            "average_confidence": self.average_confidence,
            "success_rate": self.success_rate,
        }


@dataclass(frozen=True)
class BatchStats:
    """Aggregate statistics for one batch of regions."""

    total_analyzed: int
    selected_count: int
    average_confidence: float
    processing_time_ms: float
    per_zone: dict[Zone, ZoneStats] = field(default_factory=dict)


# ─────────────────────────────────────────────────────────────
# CALIBRATION
# ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AlgorithmWeights:
    """
    Per-analyzer vote weights.

    Immutable snapshot: recalibration publishes a new instance instead of
    mutating the one a consensus computation may be reading.
    """

    brightness: float = 0.3
    color: float = 0.25
    edge: float = 0.25
    pattern: float = 0.2

    def __post_init__(self) -> None:
        for algorithm in Algorithm:
            if self.get(algorithm) < 0:
                raise ValueError(f"Negative weight for {algorithm}")

    def get(self, algorithm: Algorithm) -> float:
        return float(getattr(self, algorithm.value))

    def as_dict(self) -> dict[str, float]:
        return {a.value: self.get(a) for a in Algorithm}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AlgorithmWeights:
        defaults = cls()
        return cls(**{a.value: float(data.get(a.value, defaults.get(a))) for a in Algorithm})


@dataclass(frozen=True)
class CalibrationRecord:
    """One user correction together with what the analyzers said."""

    region_id: str
    analyzer_results: dict[Algorithm, AnalyzerResult]
    user_label: bool
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "region_id": self.region_id,
            "analyzer_results": {a.value: r.to_dict() for a, r in self.analyzer_results.items()},
            "user_label": bool(self.user_label),
            "timestamp": float(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CalibrationRecord:
        results = {
            Algorithm(name): AnalyzerResult.from_dict(payload)
            for name, payload in (data.get("analyzer_results") or {}).items()
        }
        return cls(
            region_id=str(data["region_id"]),
            analyzer_results=results,
            user_label=bool(data["user_label"]),
            timestamp=float(data.get("timestamp", 0.0)),
        )
