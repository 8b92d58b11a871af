"""LangGraph-native evaluation pipeline.

Public API
----------
build_evaluation_graph
    Build and compile the linear stage graph.
EvaluationOrchestrator
    Resolve stages, run them (sync, async, streaming) and cache results.
EvaluationState
    The TypedDict state flowing through the graph.
"""

from deal_qualifier.graph.graph import EvaluationOrchestrator, build_evaluation_graph
from deal_qualifier.graph.nodes import VERDICT_NODE, make_stage_node, make_verdict_node
from deal_qualifier.graph.state import EvaluationState, new_state
from deal_qualifier.graph.streaming import summarize_update

__all__ = [
    "EvaluationOrchestrator",
    "EvaluationState",
    "VERDICT_NODE",
    "build_evaluation_graph",
    "make_stage_node",
    "make_verdict_node",
    "new_state",
    "summarize_update",
]
