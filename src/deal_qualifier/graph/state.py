"""LangGraph state definition for the deal evaluation pipeline.

Defines ``EvaluationState``, a ``TypedDict`` that flows through the
LangGraph ``StateGraph``.  Each stage writes only the keys it owns; the two
append-only channels (``documents``, ``stage_events``) use
``Annotated[list, operator.add]`` so every stage can add entries without
overwriting earlier ones.

Note: We intentionally do NOT use ``from __future__ import annotations`` because
LangGraph needs to resolve type hints at runtime via ``get_type_hints()``.
"""

import operator
from typing import Annotated, Any, TypedDict

from deal_qualifier.domain.enums import QualificationVerdict
from deal_qualifier.domain.values import DimensionScore, RedFlag


class EvaluationState(TypedDict, total=False):
    """State flowing through the evaluation graph.

    Fields are grouped into:

    * **Inputs** -- session scope and an optional question.
    * **Stage outputs** -- one key per stage, written once.
    * **Reserved** -- verdict and strategy ideas.
    * **Accumulation channels** -- append-reducers.
    """

    # -- Inputs --------------------------------------------------------------
    session_id: str
    question: str

    # -- Stage outputs -------------------------------------------------------
    red_flags: list[RedFlag]
    red_flags_degraded: bool
    strategic_fit: DimensionScore
    customer_readiness: DimensionScore
    strategic_upside: DimensionScore
    competitive_edge: DimensionScore

    # -- Reserved ------------------------------------------------------------
    qualification_verdict: QualificationVerdict
    strategy_ideas: list[str]

    # -- Accumulation channels (append-reducers) -----------------------------
    documents: Annotated[list, operator.add]        # Passage, in stage order
    stage_events: Annotated[list, operator.add]     # one dict per stage run


def new_state(session_id: str, question: str | None = None, **extra: Any) -> dict[str, Any]:
    """Initial state for one evaluation run.

    Only the session is required; stage outputs start absent so an unrun
    stage can be told apart from one that scored zero.
    """
    if not session_id:
        raise ValueError("session_id must not be empty")
    state: dict[str, Any] = {"session_id": session_id, "documents": [], "stage_events": []}
    if question is not None:
        state["question"] = question
    state.update(extra)
    return state
