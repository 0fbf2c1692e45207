"""Batch recognition runner.

Regions are processed in parallel on one pool; the analyzers of each region
run in parallel on a second pool so a region never waits on its own pool.
Each region joins its analyzers before consensus. Failed or timed-out
analyzers are dropped from that region's vote. Regions that miss the batch
budget are left out and reported.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any

from ..core.config import RecognitionSettings, get_settings
from ..core.types import Algorithm, AnalyzerResult, BatchStats, ConsensusResult, RegionBuffer, Zone, ZoneStats
from .brightness import BrightnessAnalyzer
from .color import ColorAnalyzer
from .consensus import ConsensusEngine
from .edge import EdgeAnalyzer
from .interface import RegionAnalyzer
from .pattern import PatternAnalyzer
from .zones import RegionContext, ZoneAdjuster


logger = logging.getLogger(__name__)

# How often queued analyzer calls are checked for having started.
QUEUE_POLL_S = 0.02


def default_analyzers() -> list[RegionAnalyzer]:
    return [BrightnessAnalyzer(), ColorAnalyzer(), EdgeAnalyzer(), PatternAnalyzer()]


@dataclass(frozen=True)
class BatchResult:
    """Consensus per region id plus batch statistics."""

    results: dict[str, ConsensusResult]
    stats: BatchStats
    partial: bool = False
    missing: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": {rid: r.to_dict() for rid, r in self.results.items()},
            "stats": {
                "total_analyzed": self.stats.total_analyzed,
                "selected_count": self.stats.selected_count,
                "average_confidence": self.stats.average_confidence,
                "processing_time_ms": self.stats.processing_time_ms,
                "per_zone": {z.value: s.to_dict() for z, s in self.stats.per_zone.items()},
            },
            "partial": self.partial,
            "missing": list(self.missing),
        }


def batch_stats(results: Mapping[str, ConsensusResult], elapsed_ms: float) -> BatchStats:
    n = len(results)
    per_zone: dict[Zone, ZoneStats] = {}
    for zone in {r.zone for r in results.values()}:
        group = [r for r in results.values() if r.zone == zone]
        per_zone[zone] = ZoneStats(
            count=len(group),
            selected_count=sum(1 for r in group if r.selected),
            average_confidence=sum(r.confidence for r in group) / len(group),
            success_rate=sum(1 for r in group if r.per_algorithm) / len(group),
        )
    return BatchStats(
        total_analyzed=n,
        selected_count=sum(1 for r in results.values() if r.selected),
        average_confidence=sum(r.confidence for r in results.values()) / n if n else 0.0,
        processing_time_ms=elapsed_ms,
        per_zone=per_zone,
    )


class RecognitionEngine:
    """Runs the analyzers and consensus over many regions."""

    def __init__(
        self,
        consensus: ConsensusEngine | None = None,
        analyzers: Sequence[RegionAnalyzer] | None = None,
        settings: RecognitionSettings | None = None,
    ):
        self.settings = settings or get_settings().recognition
        self.consensus = consensus or ConsensusEngine(review_threshold=self.settings.review_threshold)
        self.analyzers = list(analyzers) if analyzers is not None else default_analyzers()
        self.zone_adjuster = ZoneAdjuster(self.settings)

        workers = self.settings.max_workers
        self._region_pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="modscan-region")
        self._analyzer_pool = ThreadPoolExecutor(
            max_workers=workers * max(1, len(self.analyzers)),
            thread_name_prefix="modscan-analyzer",
        )

    # --- Single region ---

    def run_analyzers(self, region: RegionBuffer, region_id: str = "") -> dict[Algorithm, AnalyzerResult]:
        """All analyzer results that finished in time without raising.

        An analyzer's timeout counts from when it starts running, not from
        submission, so calls queued behind abandoned slow analyzers still get
        their full budget. Calls still queued once the batch budget has passed
        are cancelled.
        """
        limit = self.settings.analyzer_timeout_s
        started: dict[int, float] = {}

        def timed(index: int, analyzer: RegionAnalyzer) -> AnalyzerResult:
            started[index] = time.perf_counter()
            return analyzer.analyze(region)

        futures: dict[Future, tuple[int, RegionAnalyzer]] = {
            self._analyzer_pool.submit(timed, i, analyzer): (i, analyzer)
            for i, analyzer in enumerate(self.analyzers)
        }
        queue_deadline = time.perf_counter() + self.settings.batch_timeout_s
        pending = set(futures)
        results: dict[Algorithm, AnalyzerResult] = {}

        while pending:
            for future in [f for f in pending if f.done()]:
                pending.discard(future)
                _, analyzer = futures[future]
                if future.cancelled():
                    continue
                try:
                    results[analyzer.algorithm] = future.result()
                except Exception:
                    logger.exception("%s analyzer failed on region %s", analyzer.algorithm.value, region_id or "?")

            now = time.perf_counter()
            for future in list(pending):
                index, analyzer = futures[future]
                began = started.get(index)
                if future.done():
                    continue
                if began is not None and now - began >= limit:
                    pending.discard(future)
                    logger.warning(
                        "%s analyzer timed out after %.1fs on region %s",
                        analyzer.algorithm.value, limit, region_id or "?",
                    )
                elif began is None and now >= queue_deadline and future.cancel():
                    pending.discard(future)
                    logger.warning(
                        "%s analyzer never started within %.1fs on region %s",
                        analyzer.algorithm.value, self.settings.batch_timeout_s, region_id or "?",
                    )
            if not pending:
                break

            wakeups = [queue_deadline]
            for future in pending:
                began = started.get(futures[future][0])
                wakeups.append(now + QUEUE_POLL_S if began is None else began + limit)
            wait(pending, timeout=max(0.0, min(wakeups) - now), return_when=FIRST_COMPLETED)

        return results

    def analyze_region(self, region: RegionBuffer, region_id: str = "") -> ConsensusResult:
        results = self.run_analyzers(region, region_id)
        return self.consensus.calculate_consensus(results)

    # --- Batch ---

    def analyze_batch(
        self,
        regions: Mapping[str, RegionBuffer],
        contexts: Mapping[str, RegionContext] | None = None,
    ) -> BatchResult:
        """Consensus for every region, within the batch budget.

        With ``contexts`` the results also get the per-zone adjustments of
        ``ZoneAdjuster`` and the stats are broken down by zone.
        """
        start = time.perf_counter()
        futures: dict[Future, str] = {
            self._region_pool.submit(self.analyze_region, region, rid): rid for rid, region in regions.items()
        }
        done, not_done = wait(futures, timeout=self.settings.batch_timeout_s)

        results: dict[str, ConsensusResult] = {}
        missing: list[str] = []
        for future in not_done:
            future.cancel()
            missing.append(futures[future])
        for future in done:
            rid = futures[future]
            try:
                results[rid] = future.result()
            except Exception:
                logger.exception("Region %s failed", rid)
                missing.append(rid)

        if not_done:
            logger.warning(
                "Batch budget of %.1fs exceeded: %d of %d regions missing",
                self.settings.batch_timeout_s, len(not_done), len(regions),
            )

        if contexts is not None:
            results = self.zone_adjuster.adjust(results, regions, contexts)

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        stats = batch_stats(results, elapsed_ms)
        logger.info(
            "Analyzed %d regions: %d selected, avg confidence %.2f, %.0f ms",
            stats.total_analyzed, stats.selected_count, stats.average_confidence, elapsed_ms,
        )
        return BatchResult(
            results=results,
            stats=stats,
            partial=bool(missing),
            missing=tuple(sorted(missing)),
        )

    # --- Lifecycle ---

    def close(self) -> None:
        self._region_pool.shutdown(wait=False, cancel_futures=True)
        self._analyzer_pool.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> RecognitionEngine:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
