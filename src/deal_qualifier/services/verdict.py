"""Deterministic go / review / no-go verdict from the dimension scores.

The verdict is derived from numbers already in the state; no model call is
made.  The four scored dimensions' weights sum to 1.0, so the summed totals
form an overall score on the 1-5 scale, normalised here against the
highest achievable total.

Rules, in order:

1. Any missing or degraded dimension (or degraded red flags) -> ``REVIEW``.
2. Normalised score below ``no_go_threshold`` -> ``NO-GO``.
3. Normalised score at or above ``go_threshold`` and no more than
   ``max_red_flags_for_go`` red flags -> ``GO``.
4. Otherwise ``REVIEW``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from deal_qualifier.domain.enums import QualificationVerdict
from deal_qualifier.domain.values import DimensionScore
from deal_qualifier.infrastructure.config import PipelineConfig
from deal_qualifier.services.stages import SCORED_DIMENSIONS, ScoringStageSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerdictAssessment:
    verdict: QualificationVerdict
    total_score: float
    max_score: float
    red_flag_count: int
    degraded_stages: tuple[str, ...] = ()

    @property
    def normalized(self) -> float:
        return self.total_score / self.max_score if self.max_score else 0.0


def assess_verdict(
    state: Mapping[str, Any],
    config: PipelineConfig | None = None,
    dimensions: Sequence[ScoringStageSpec] = SCORED_DIMENSIONS,
) -> VerdictAssessment:
    config = config or PipelineConfig()
    total = 0.0
    max_total = 0.0
    degraded: list[str] = []

    for spec in dimensions:
        max_total += spec.max_score
        dimension: DimensionScore | None = state.get(spec.state_key)
        if dimension is None or dimension.degraded:
            degraded.append(spec.name)
            continue
        total += dimension.score

    if state.get("red_flags_degraded"):
        degraded.append("red_flags")

    flag_count = len(state.get("red_flags") or [])
    normalized = total / max_total if max_total else 0.0

    if normalized < config.no_go_threshold and not degraded:
        verdict = QualificationVerdict.NO_GO
    elif degraded:
        verdict = QualificationVerdict.REVIEW
    elif normalized >= config.go_threshold and flag_count <= config.max_red_flags_for_go:
        verdict = QualificationVerdict.GO
    else:
        verdict = QualificationVerdict.REVIEW

    return VerdictAssessment(
        verdict=verdict,
        total_score=round(total, 4),
        max_score=round(max_total, 4),
        red_flag_count=flag_count,
        degraded_stages=tuple(degraded),
    )


def verdict_node_fn(
    config: PipelineConfig | None = None,
    dimensions: Sequence[ScoringStageSpec] = SCORED_DIMENSIONS,
):
    """Graph node writing ``qualification_verdict``."""

    def verdict_node(state: dict[str, Any]) -> dict[str, Any]:
        assessment = assess_verdict(state, config, dimensions)
        logger.info(
            "verdict: %s (%.2f / %.2f, %d red flag(s), degraded=%s)",
            assessment.verdict.value, assessment.total_score, assessment.max_score,
            assessment.red_flag_count, list(assessment.degraded_stages),
        )
        return {
            "qualification_verdict": assessment.verdict,
            "stage_events": [
                {
                    "stage": "verdict",
                    "verdict": assessment.verdict.value,
                    "normalized_score": round(assessment.normalized, 4),
                    "degraded": bool(assessment.degraded_stages),
                    "timestamp": time.time(),
                }
            ],
        }

    return verdict_node
