"""Deal Qualifier.

Multi-stage RFP qualification pipeline on LangGraph: five retrieval-grounded
stages (red flags, strategic fit, customer readiness, strategic upside,
competitive edge) produce weighted scores and risks for an uploaded deal
document, and a chat synthesizer answers questions over the cached result.
"""

__version__ = "0.1.0"

from deal_qualifier.graph import (
    EvaluationOrchestrator,
    EvaluationState,
    build_evaluation_graph,
)
from deal_qualifier.infrastructure.session_cache import SessionResultCache
from deal_qualifier.services.chat import DealChatSynthesizer, ask

__all__ = [
    "DealChatSynthesizer",
    "EvaluationOrchestrator",
    "EvaluationState",
    "SessionResultCache",
    "ask",
    "build_evaluation_graph",
]
