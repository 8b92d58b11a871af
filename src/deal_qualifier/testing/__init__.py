"""Public testing utilities for the deal qualifier.

Provides a scripted chat model, a static retriever and canned stage
outputs for writing self-contained tests and demos without API keys or a
vector store.
"""

from deal_qualifier.testing.fixtures import (
    STAGE_MARKERS,
    pipeline_routes,
    red_flags_json,
    score_record_json,
    text_pdf_bytes,
)
from deal_qualifier.testing.mock_llm import ScriptedChatModel, StaticRetriever

__all__ = [
    "STAGE_MARKERS",
    "ScriptedChatModel",
    "StaticRetriever",
    "pipeline_routes",
    "red_flags_json",
    "score_record_json",
    "text_pdf_bytes",
]
