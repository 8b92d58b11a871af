"""Serialisation of evaluation states.

``state_to_dict`` converts an ``EvaluationState`` (frozen dataclasses,
enums) into plain JSON-ready data with the camelCase keys the HTTP layer
and the browser frontend use.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from deal_qualifier.domain.enums import QualificationVerdict
from deal_qualifier.domain.values import DimensionScore, Passage, RedFlag

# state key -> wire prefix
_DIMENSION_KEYS: dict[str, str] = {
    "strategic_fit": "strategicFit",
    "customer_readiness": "customerReadiness",
    "strategic_upside": "strategicUpside",
    "competitive_edge": "competitiveEdge",
}


def _dimension_fields(prefix: str, dimension: DimensionScore | None) -> dict[str, Any]:
    if dimension is None:
        return {f"{prefix}Score": None, f"{prefix}ScoreBreakdown": []}
    return {
        f"{prefix}Score": dimension.score,
        f"{prefix}ScoreBreakdown": [c.to_dict() for c in dimension.breakdown],
        f"{prefix}Degraded": dimension.degraded,
        f"{prefix}Reconciled": dimension.reconciled,
    }


def state_to_dict(state: Mapping[str, Any], include_documents: bool = False) -> dict[str, Any]:
    """JSON-ready view of *state*.

    Parameters
    ----------
    state:
        A completed (or partial) evaluation state.
    include_documents:
        Include the retrieved passage texts.  Off by default; they can be
        large.
    """
    verdict = state.get("qualification_verdict")
    if isinstance(verdict, QualificationVerdict):
        verdict = verdict.value

    flags: list[RedFlag] = state.get("red_flags") or []
    data: dict[str, Any] = {
        "sessionId": state.get("session_id"),
        "redFlags": [flag.to_dict() for flag in flags],
        "redFlagsDegraded": bool(state.get("red_flags_degraded", False)),
    }
    for key, prefix in _DIMENSION_KEYS.items():
        data.update(_dimension_fields(prefix, state.get(key)))
    data["qualificationVerdict"] = verdict
    data["strategyIdeas"] = list(state.get("strategy_ideas") or [])

    if include_documents:
        passages: list[Passage] = state.get("documents") or []
        data["documents"] = [p.text for p in passages]
    return data


def export_json(state: Mapping[str, Any], path: str | Path) -> None:
    """Write ``state_to_dict(state)`` to *path* as indented JSON."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as fh:
        json.dump(state_to_dict(state), fh, indent=2, default=str)
