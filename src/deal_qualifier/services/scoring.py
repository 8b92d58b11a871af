"""Stage agents: retrieve -> prompt -> complete -> parse -> partial update.

One agent class per stage *kind*, configured by a ``ScoringStageSpec``.
Each agent run makes exactly one retrieval call and one completion call and
returns a partial ``EvaluationState`` update holding only the keys the
stage owns, plus its ``documents`` and ``stage_events`` appends.

Failure policy:

* retrieval and completion failures raise ``RetrievalError`` /
  ``CompletionError`` and abort the run;
* unparseable output is recovered locally: the stage substitutes its
  degraded default and the pipeline moves on.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser

from deal_qualifier.domain.enums import StageKind
from deal_qualifier.domain.exceptions import (
    CompletionError,
    DealQualifierError,
    RetrievalError,
)
from deal_qualifier.domain.values import DimensionScore, Passage
from deal_qualifier.infrastructure.config import PipelineConfig
from deal_qualifier.infrastructure.retrieval import Retriever
from deal_qualifier.services.parsing import parse_red_flags, parse_score_record
from deal_qualifier.services.stages import ScoringStageSpec

logger = logging.getLogger(__name__)


class StageAgent(ABC):
    """Shared retrieve/complete plumbing for every stage.

    Parameters
    ----------
    spec:
        The stage definition.
    retriever:
        Session-scoped passage retrieval.
    model:
        LangChain chat model used for the completion call.
    config:
        Pipeline configuration (context separator, reconciliation).
    """

    def __init__(
        self,
        spec: ScoringStageSpec,
        retriever: Retriever,
        model: BaseChatModel,
        config: PipelineConfig | None = None,
    ) -> None:
        self.spec = spec
        self.retriever = retriever
        self.model = model
        self.config = config or PipelineConfig()
        self._chain = self._build_chain()

    def _build_chain(self) -> Any:
        return self.spec.prompt | self.model | StrOutputParser()

    @property
    def name(self) -> str:
        return self.spec.name

    # -- context ---------------------------------------------------------------

    def build_context(self, passages: Sequence[Passage]) -> str:
        """Join passage texts in retrieval order.  No size cap."""
        return self.config.context_separator.join(p.text for p in passages)

    # -- sync path ---------------------------------------------------------------

    def run(self, state: dict[str, Any]) -> dict[str, Any]:
        """Run the stage against *state* and return its partial update."""
        session_id = state["session_id"]
        logger.debug("%s: start session=%s", self.name, session_id)

        try:
            passages = list(self.retriever.retrieve(session_id, self.spec.query))
        except DealQualifierError:
            raise
        except Exception as exc:
            raise self._retrieval_error(session_id, exc) from exc

        context = self.build_context(passages)
        try:
            raw = self._chain.invoke({"context": context})
        except Exception as exc:
            raise self._completion_error(exc) from exc

        return self._finish(passages, raw)

    # -- async path ----------------------------------------------------------------

    async def arun(self, state: dict[str, Any]) -> dict[str, Any]:
        """Async variant of :meth:`run`; suspends at both collaborator calls."""
        session_id = state["session_id"]
        logger.debug("%s: start session=%s (async)", self.name, session_id)

        try:
            passages = list(await self.retriever.aretrieve(session_id, self.spec.query))
        except DealQualifierError:
            raise
        except Exception as exc:
            raise self._retrieval_error(session_id, exc) from exc

        context = self.build_context(passages)
        try:
            raw = await self._chain.ainvoke({"context": context})
        except Exception as exc:
            raise self._completion_error(exc) from exc

        return self._finish(passages, raw)

    # -- helpers -------------------------------------------------------------------

    def _retrieval_error(self, session_id: str, exc: Exception) -> RetrievalError:
        return RetrievalError(
            f"{self.name}: retrieval failed: {exc}",
            session_id=session_id,
            query=self.spec.query,
            details={"stage": self.name, "error_type": type(exc).__name__},
        )

    def _completion_error(self, exc: Exception) -> CompletionError:
        return CompletionError(
            f"{self.name}: completion failed: {exc}",
            stage=self.name,
            details={"error_type": type(exc).__name__},
        )

    def _finish(self, passages: list[Passage], raw: str) -> dict[str, Any]:
        update, degraded = self.build_update(raw)
        update["documents"] = passages
        update["stage_events"] = [
            {
                "stage": self.name,
                "passages": len(passages),
                "degraded": degraded,
                "timestamp": time.time(),
            }
        ]
        return update

    @abstractmethod
    def build_update(self, raw: str) -> tuple[dict[str, Any], bool]:
        """Turn raw model output into ``(partial update, degraded)``."""
        ...


class ScoringAgent(StageAgent):
    """Weighted-criteria stage producing a ``DimensionScore``."""

    def build_update(self, raw: str) -> tuple[dict[str, Any], bool]:
        outcome = parse_score_record(
            raw,
            expected_criteria=self.spec.criterion_names,
            reconcile=self.config.reconcile_scores,
            tolerance=self.config.score_tolerance,
        )
        if outcome.ok:
            dimension: DimensionScore = outcome.payload
            logger.info(
                "%s: score=%.2f criteria=%d%s",
                self.name, dimension.score, len(dimension.breakdown),
                " (reconciled)" if dimension.reconciled else "",
            )
            return {self.spec.state_key: dimension}, False

        logger.warning(
            "%s: failed to parse score output (%s); using zero default.\nRaw output:\n%s",
            self.name, outcome.error, outcome.raw,
        )
        return {self.spec.state_key: DimensionScore.empty(degraded=True)}, True


class RedFlagAgent(StageAgent):
    """Unweighted stage producing a list of ``RedFlag``."""

    def build_update(self, raw: str) -> tuple[dict[str, Any], bool]:
        outcome = parse_red_flags(raw)
        if outcome.ok:
            logger.info("%s: %d red flag(s)", self.name, len(outcome.payload))
            return {self.spec.state_key: outcome.payload, "red_flags_degraded": False}, False

        logger.warning(
            "%s: failed to parse red flags (%s); using empty list.\nRaw output:\n%s",
            self.name, outcome.error, outcome.raw,
        )
        return {self.spec.state_key: [], "red_flags_degraded": True}, True


def create_stage_agent(
    spec: ScoringStageSpec,
    retriever: Retriever,
    model: BaseChatModel,
    config: PipelineConfig | None = None,
) -> StageAgent:
    """Pick the agent class matching ``spec.kind``."""
    if spec.kind is StageKind.FLAGS:
        return RedFlagAgent(spec, retriever, model, config)
    return ScoringAgent(spec, retriever, model, config)
