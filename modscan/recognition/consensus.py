"""Confidence-weighted fusion of analyzer decisions."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ..core.config import get_settings
from ..core.types import Algorithm, AlgorithmWeights, AnalyzerResult, ConsensusResult
from .calibration import WeightsRegistry


logger = logging.getLogger(__name__)


class ConsensusEngine:
    """
    Fuses up to four analyzer results into one decision.

    Votes are ``confidence * weight`` per analyzer, split by decision. The
    selected share of the total decides (ties go to unselected). Confidence is
    the vote margin discounted by agreement and by how sure the winning side
    was; a lone analyzer passes its own confidence through.
    """

    def __init__(
        self,
        registry: WeightsRegistry | None = None,
        review_threshold: float | None = None,
    ):
        self.registry = registry or WeightsRegistry()
        if review_threshold is None:
            review_threshold = get_settings().recognition.review_threshold
        self.review_threshold = review_threshold

    def calculate_consensus(
        self,
        results: Mapping[Algorithm, AnalyzerResult | None],
        weights: AlgorithmWeights | None = None,
    ) -> ConsensusResult:
        # One snapshot for the whole computation.
        weights = weights or self.registry.current()

        present = {
            alg: res for alg, res in results.items() if res is not None and not res.failed
        }

        selected_votes = 0.0
        unselected_votes = 0.0
        for alg, res in present.items():
            vote = res.confidence * weights.get(alg)
            if res.selected:
                selected_votes += vote
            else:
                unselected_votes += vote

        total = selected_votes + unselected_votes
        weighted_votes = selected_votes / total if total > 0 else 0.5
        selected = weighted_votes > 0.5

        supporting = tuple(alg for alg, res in present.items() if res.selected == selected)
        conflicting = tuple(alg for alg, res in present.items() if res.selected != selected)

        if len(present) == 1:
            # A lone analyzer decides on its own, even at zero confidence.
            only_alg, only = next(iter(present.items()))
            selected = only.selected
            supporting = (only_alg,)
            conflicting = ()
            agreement = 1.0
            confidence = only.confidence
        elif not present:
            agreement = 0.0
            confidence = 0.0
        else:
            agreement = len(supporting) / len(present)
            margin = abs(weighted_votes - 0.5) * 2.0
            confidence = margin * agreement * self._supporter_confidence(present, supporting, weights)

        confidence = min(1.0, max(0.0, confidence))
        logger.debug(
            "Consensus selected=%s votes=%.3f agreement=%.2f confidence=%.2f (%d analyzers)",
            selected, weighted_votes, agreement, confidence, len(present),
        )
        return ConsensusResult(
            selected=selected,
            confidence=confidence,
            agreement=agreement,
            weighted_votes=weighted_votes,
            per_algorithm=dict(present),
            supporting=supporting,
            conflicting=conflicting,
            needs_review=confidence < self.review_threshold,
        )

    @staticmethod
    def _supporter_confidence(
        present: Mapping[Algorithm, AnalyzerResult],
        supporting: tuple[Algorithm, ...],
        weights: AlgorithmWeights,
    ) -> float:
        """Weight-averaged confidence of the analyzers on the winning side."""
        total_weight = sum(weights.get(a) for a in supporting)
        if total_weight <= 0:
            return 0.0
        return sum(present[a].confidence * weights.get(a) for a in supporting) / total_weight


def calculate_consensus(
    results: Mapping[Algorithm, AnalyzerResult | None],
    weights: AlgorithmWeights | None = None,
) -> ConsensusResult:
    return ConsensusEngine().calculate_consensus(results, weights or AlgorithmWeights())
