"""Shared fixtures for the deal qualifier test suite."""

from __future__ import annotations

import pytest

from deal_qualifier.domain.values import CriterionResult, DimensionScore, Passage, RedFlag
from deal_qualifier.infrastructure.config import PipelineConfig
from deal_qualifier.infrastructure.session_cache import SessionResultCache
from deal_qualifier.testing import (
    ScriptedChatModel,
    StaticRetriever,
    pipeline_routes,
    text_pdf_bytes,
)

# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def passages() -> list[Passage]:
    """Three RFP passages without any stage prompt marker in them."""
    return [
        Passage("The client seeks a partner to modernise its claims platform."),
        Passage("Delivery is expected within nine months across two regions."),
        Passage("Proposals are due on 1 March; budget is capped at 2M."),
    ]


@pytest.fixture
def retriever(passages: list[Passage]) -> StaticRetriever:
    return StaticRetriever(passages)


@pytest.fixture
def pipeline_model() -> ScriptedChatModel:
    """Answers every built-in stage with well-formed JSON (all criteria 4/5)."""
    return ScriptedChatModel(routes=pipeline_routes(score=4, flags=["Tight timeline"]))


@pytest.fixture
def cache() -> SessionResultCache:
    return SessionResultCache()


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig()


# ---------------------------------------------------------------------------
# Value-object fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fit_dimension() -> DimensionScore:
    """Strategic fit scored 1.6 over two criteria."""
    return DimensionScore(
        score=1.6,
        breakdown=(
            CriterionResult("Market Alignment", 4, 0.2, 0.8, "Core market"),
            CriterionResult("Win Probability", 4, 0.2, 0.8, "Known sponsor"),
        ),
    )


@pytest.fixture
def evaluated_state(fit_dimension: DimensionScore, passages: list[Passage]) -> dict:
    """A cached-looking state with one scored dimension and one red flag."""
    return {
        "session_id": "s1",
        "documents": list(passages),
        "red_flags": [RedFlag("Tight timeline", "Flag delivery risk", "Nine months only", "RFP")],
        "red_flags_degraded": False,
        "strategic_fit": fit_dimension,
        "stage_events": [],
    }


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@pytest.fixture
def rfp_pdf() -> bytes:
    return text_pdf_bytes("The insurer needs a new claims platform live within nine months.")
