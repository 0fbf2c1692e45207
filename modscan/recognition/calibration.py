"""Calibration feedback loop.

User corrections are appended to a log. ``Recalibrator.recalibrate`` derives
analyzer weights from the whole log (each weight proportional to that
analyzer's smoothed accuracy) and publishes them as a new immutable snapshot.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections.abc import Iterable, Mapping

from ..core.config import CalibrationSettings, get_settings
from ..core.types import Algorithm, AlgorithmWeights, AnalyzerResult, CalibrationRecord
from ..storage import KeyValueStore, MemoryStore


logger = logging.getLogger(__name__)

RECORDS_KEY = "corrections"


# ─────────────────────────────────────────────────────────────
# WEIGHTS
# ─────────────────────────────────────────────────────────────


class WeightsRegistry:
    """Holds the current weights snapshot; publishing swaps the reference."""

    def __init__(self, initial: AlgorithmWeights | None = None):
        self._weights = initial or AlgorithmWeights()
        self._lock = threading.Lock()

    def current(self) -> AlgorithmWeights:
        with self._lock:
            return self._weights

    def publish(self, weights: AlgorithmWeights) -> None:
        with self._lock:
            self._weights = weights


def load_weights_file(path: str) -> AlgorithmWeights | None:
    """Load weights from JSON (returns None when missing/invalid)."""
    if not path or not os.path.exists(path):
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f) or {}
        if not isinstance(data, dict):
            return None
        return AlgorithmWeights.from_dict(data)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
        logger.warning("Could not load weights from %s: %s", path, e)
        return None


def save_weights_file(path: str, weights: AlgorithmWeights) -> None:
    """Save weights to JSON (creates parent dirs)."""
    dir_name = os.path.dirname(path)
    if dir_name:
        os.makedirs(dir_name, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(weights.as_dict(), f, indent=2)


# ─────────────────────────────────────────────────────────────
# CORRECTION LOG
# ─────────────────────────────────────────────────────────────


class CalibrationStore:
    """Append-only correction log backed by a key-value store."""

    def __init__(self, store: KeyValueStore | None = None, key: str = RECORDS_KEY):
        self.store = store or MemoryStore()
        self.key = key
        self._lock = threading.Lock()
        self._records: list[CalibrationRecord] = [
            CalibrationRecord.from_dict(item) for item in (self.store.get(key, []) or [])
        ]

    def record_correction(
        self,
        region_id: str,
        analyzer_results: Mapping[Algorithm, AnalyzerResult],
        user_label: bool,
        timestamp: float | None = None,
    ) -> CalibrationRecord:
        record = CalibrationRecord(
            region_id=region_id,
            analyzer_results=dict(analyzer_results),
            user_label=bool(user_label),
            timestamp=time.time() if timestamp is None else timestamp,
        )
        with self._lock:
            self._records.append(record)
            self.store.append(self.key, record.to_dict())
        logger.debug("Recorded correction for %s (selected=%s)", region_id, user_label)
        return record

    def records(self) -> tuple[CalibrationRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def prune(self, max_age_s: float, now: float | None = None) -> int:
        """Drop records older than ``max_age_s``; returns how many were removed."""
        cutoff = (time.time() if now is None else now) - max_age_s
        with self._lock:
            kept = [r for r in self._records if r.timestamp >= cutoff]
            removed = len(self._records) - len(kept)
            if removed:
                self._records = kept
                self.store.set(self.key, [r.to_dict() for r in kept])
        if removed:
            logger.info("Pruned %d corrections older than %.0f s", removed, max_age_s)
        return removed


# ─────────────────────────────────────────────────────────────
# RECALIBRATION
# ─────────────────────────────────────────────────────────────


def algorithm_accuracy(records: Iterable[CalibrationRecord]) -> dict[Algorithm, float]:
    """Laplace-smoothed share of records where each analyzer matched the user.

    Failed analyzer results do not count either way.
    """
    correct = {a: 0 for a in Algorithm}
    total = {a: 0 for a in Algorithm}
    for record in records:
        for alg, result in record.analyzer_results.items():
            if result.failed:
                continue
            total[alg] += 1
            if result.selected == record.user_label:
                correct[alg] += 1
    return {a: (correct[a] + 1) / (total[a] + 2) for a in Algorithm}


def weights_from_records(records: Iterable[CalibrationRecord], floor: float = 0.05) -> AlgorithmWeights:
    """Weights proportional to floored accuracy, normalized to sum to 1."""
    accuracy = algorithm_accuracy(records)
    raw = {a: max(floor, acc) for a, acc in accuracy.items()}
    total = sum(raw.values())
    return AlgorithmWeights(**{a.value: raw[a] / total for a in Algorithm})


class Recalibrator:
    def __init__(
        self,
        store: CalibrationStore,
        registry: WeightsRegistry,
        settings: CalibrationSettings | None = None,
    ):
        self.store = store
        self.registry = registry
        self.settings = settings or get_settings().calibration

    def recalibrate(self) -> AlgorithmWeights:
        """Recompute weights from the full log and publish them.

        With too few records the current weights are kept.
        """
        records = self.store.records()
        if len(records) < self.settings.min_records:
            logger.info(
                "Skipping recalibration: %d corrections (< %d)", len(records), self.settings.min_records
            )
            return self.registry.current()

        weights = weights_from_records(records, self.settings.weight_floor)
        self.registry.publish(weights)
        logger.info("Recalibrated from %d corrections: %s", len(records), weights.as_dict())
        return weights
