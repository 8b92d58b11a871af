"""LangGraph node factories for the evaluation pipeline.

Each node takes an ``EvaluationState`` and returns a partial update dict.
Nodes delegate to the stage agents in ``deal_qualifier.services.scoring``
rather than reimplementing any logic; strategies are injected through
closures so the graph never stores collaborators in state.
"""

from __future__ import annotations

from collections.abc import Sequence

from langchain_core.runnables import RunnableLambda

from deal_qualifier.infrastructure.config import PipelineConfig
from deal_qualifier.services.scoring import StageAgent
from deal_qualifier.services.stages import SCORED_DIMENSIONS, ScoringStageSpec
from deal_qualifier.services.verdict import verdict_node_fn

VERDICT_NODE = "verdict"


def make_stage_node(agent: StageAgent) -> RunnableLambda:
    """Wrap *agent* as a node usable from both ``invoke`` and ``ainvoke``.

    The sync path calls ``agent.run``; the async path awaits
    ``agent.arun`` so retrieval and completion suspend instead of blocking
    the event loop.
    """
    return RunnableLambda(agent.run, afunc=agent.arun, name=agent.name)


def make_verdict_node(
    config: PipelineConfig | None = None,
    dimensions: Sequence[ScoringStageSpec] = SCORED_DIMENSIONS,
) -> RunnableLambda:
    """Deterministic verdict node; makes no model call."""
    return RunnableLambda(verdict_node_fn(config, dimensions), name=VERDICT_NODE)
