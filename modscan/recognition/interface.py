"""Abstract interface for region analyzers."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

from ..core.types import Algorithm, AnalyzerResult, RegionBuffer
from .utils import to_rgba


MIN_REGION_SIDE = 8


class RegionAnalyzer(ABC):
    """Classifies one hex region as selected or unselected.

    Subclasses implement ``_analyze`` on a validated RGBA array. Malformed
    buffers never reach it: ``analyze`` turns them into an error result with
    zero confidence. Exceptions raised by ``_analyze`` itself are bugs and are
    left for the caller to handle.
    """

    algorithm: Algorithm

    def analyze(self, region: RegionBuffer) -> AnalyzerResult:
        """Run the analyzer on one region.

        Args:
            region: Extracted pixel buffer with quality metadata

        Returns:
            AnalyzerResult, with ``error`` set if the buffer was unusable
        """
        start = time.perf_counter()
        problem = self.check_buffer(region)
        if problem is not None:
            return self._error_result(problem, start)

        rgba = to_rgba(region.pixels)
        selected, confidence, metadata = self._analyze(rgba, region)
        return AnalyzerResult(
            selected=bool(selected),
            confidence=float(min(1.0, max(0.0, confidence))),
            algorithm=self.algorithm,
            metadata=metadata,
            processing_time_ms=(time.perf_counter() - start) * 1000.0,
        )

    @abstractmethod
    def _analyze(self, rgba: np.ndarray, region: RegionBuffer) -> tuple[bool, float, dict[str, Any]]:
        """Return ``(selected, confidence, metadata)`` for a valid RGBA array."""
        pass

    @staticmethod
    def check_buffer(region: RegionBuffer | None) -> str | None:
        """Describe what is wrong with the buffer, or None if it is usable."""
        if region is None or region.pixels is None:
            return "region buffer is empty"
        pixels = region.pixels
        if not isinstance(pixels, np.ndarray):
            return f"region pixels must be an ndarray, got {type(pixels).__name__}"
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            return f"region pixels must be (H, W, 3|4), got shape {pixels.shape}"
        if min(pixels.shape[0], pixels.shape[1]) < MIN_REGION_SIDE:
            return f"region too small: {pixels.shape[1]}x{pixels.shape[0]}"
        return None

    def _error_result(self, reason: str, start: float) -> AnalyzerResult:
        return AnalyzerResult(
            selected=False,
            confidence=0.0,
            algorithm=self.algorithm,
            metadata={"failed": True},
            processing_time_ms=(time.perf_counter() - start) * 1000.0,
            error=reason,
        )

    def get_name(self) -> str:
        return self.algorithm.value
