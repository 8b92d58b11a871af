"""Chat synthesis over a completed evaluation.

``DealChatSynthesizer`` answers free-form questions about a deal.  It
folds a cached ``EvaluationState`` into one prompt: a bounded excerpt of
the retrieved document text, the red flags, every dimension's score and
breakdown, and the verdict / strategy ideas, then calls the chat model
once and returns the trimmed prose.  It never mutates the state or the
cache.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate

from deal_qualifier.domain.enums import QualificationVerdict
from deal_qualifier.domain.exceptions import CompletionError, SessionNotFoundError
from deal_qualifier.domain.values import DimensionScore, Passage, RedFlag
from deal_qualifier.infrastructure.config import PipelineConfig
from deal_qualifier.infrastructure.session_cache import SessionResultCache
from deal_qualifier.services.stages import SCORED_DIMENSIONS, ScoringStageSpec

logger = logging.getLogger(__name__)

SCORE_PLACEHOLDER = "N/A"
VERDICT_PLACEHOLDER = QualificationVerdict.REVIEW.value

_CHAT_PROMPT = ChatPromptTemplate.from_template(
    """You are DealGPT, an AI deal advisor helping a team respond to RFPs and make go/no-go decisions.

Using the context produced by the qualification agents below, answer the user's question.
Be helpful, insightful and action-oriented.

Context:
---
RFP Extract:
{rfp_context}

Red Flags:
{red_flags}

{dimensions}

Qualification Verdict: {qualification_verdict}
Strategy Suggestions:
{strategy_ideas}
---

User Question:
"{question}"

Respond concisely and clearly. Where it helps, recommend specific actions that would improve the win probability."""
)


def document_excerpt(documents: Sequence[Passage], limit: int, separator: str = "\n\n") -> str:
    """First *limit* characters of the de-duplicated passage texts."""
    seen: set[str] = set()
    texts: list[str] = []
    for passage in documents:
        text = passage.text if isinstance(passage, Passage) else str(passage)
        if text in seen:
            continue
        seen.add(text)
        texts.append(text)
    return separator.join(texts)[:limit]


def format_red_flags(flags: Sequence[RedFlag], degraded: bool = False) -> str:
    lines = [str(flag) for flag in flags]
    if degraded:
        lines.append("[degraded: red flag output could not be parsed]")
    return "\n".join(lines) if lines else "None identified."


def format_score(dimension: DimensionScore | None) -> str:
    """Score to two decimals, or the placeholder when the stage never ran."""
    if dimension is None:
        return SCORE_PLACEHOLDER
    return f"{dimension.score:.2f}"


def format_dimension(spec: ScoringStageSpec, dimension: DimensionScore | None) -> str:
    header = f"{spec.label} Score: {format_score(dimension)}"
    if dimension is None:
        return header
    if dimension.degraded:
        header = f"{header} [degraded: parse failure, not a real zero]"
    elif dimension.reconciled:
        header = f"{header} [recomputed from criterion scores]"
    breakdown = json.dumps([c.to_dict() for c in dimension.breakdown], indent=2)
    return f"{header}\n{breakdown}"


class DealChatSynthesizer:
    """Answer questions about an evaluated deal.

    Parameters
    ----------
    model:
        LangChain chat model.
    config:
        Pipeline configuration (excerpt length, separator).
    dimensions:
        Scored stages rendered into the prompt, in order.
    prompt:
        Optional replacement ``ChatPromptTemplate`` with the same variables.
    """

    def __init__(
        self,
        model: BaseChatModel,
        config: PipelineConfig | None = None,
        dimensions: Sequence[ScoringStageSpec] = SCORED_DIMENSIONS,
        prompt: ChatPromptTemplate | None = None,
    ) -> None:
        self.model = model
        self.config = config or PipelineConfig()
        self.dimensions = tuple(dimensions)
        self._prompt = prompt or _CHAT_PROMPT
        self._chain = self._prompt | self.model | StrOutputParser()

    def build_inputs(self, state: Mapping[str, Any], question: str) -> dict[str, str]:
        """Prompt variables for *state* and *question*."""
        verdict = state.get("qualification_verdict")
        if isinstance(verdict, QualificationVerdict):
            verdict_text = verdict.value
        else:
            verdict_text = str(verdict) if verdict else VERDICT_PLACEHOLDER

        ideas = state.get("strategy_ideas") or []
        return {
            "question": question,
            "rfp_context": document_excerpt(
                state.get("documents") or [],
                self.config.chat_excerpt_chars,
                self.config.context_separator,
            ),
            "red_flags": format_red_flags(
                state.get("red_flags") or [], bool(state.get("red_flags_degraded"))
            ),
            "dimensions": "\n\n".join(
                format_dimension(spec, state.get(spec.state_key)) for spec in self.dimensions
            ),
            "qualification_verdict": verdict_text,
            "strategy_ideas": "\n".join(ideas) if ideas else "None yet.",
        }

    def render_prompt(self, state: Mapping[str, Any], question: str) -> str:
        """The exact prompt text sent to the model."""
        return self._prompt.format(**self.build_inputs(state, question))

    def answer(self, state: Mapping[str, Any], question: str) -> str:
        inputs = self.build_inputs(state, question)
        logger.debug("DealChatSynthesizer: session=%s question=%r", state.get("session_id"), question)
        try:
            output = self._chain.invoke(inputs)
        except Exception as exc:
            raise CompletionError(f"chat: completion failed: {exc}", stage="chat") from exc
        return output.strip()

    async def aanswer(self, state: Mapping[str, Any], question: str) -> str:
        inputs = self.build_inputs(state, question)
        try:
            output = await self._chain.ainvoke(inputs)
        except Exception as exc:
            raise CompletionError(f"chat: completion failed: {exc}", stage="chat") from exc
        return output.strip()


def _cached_state(cache: SessionResultCache, session_id: str) -> dict[str, Any]:
    state = cache.get(session_id)
    if state is None:
        raise SessionNotFoundError(session_id)
    return state


def ask(
    cache: SessionResultCache,
    synthesizer: DealChatSynthesizer,
    session_id: str,
    question: str,
) -> str:
    """Answer *question* against the cached evaluation for *session_id*.

    Raises ``SessionNotFoundError`` when nothing is cached for the session.
    """
    return synthesizer.answer(_cached_state(cache, session_id), question)


async def aask(
    cache: SessionResultCache,
    synthesizer: DealChatSynthesizer,
    session_id: str,
    question: str,
) -> str:
    return await synthesizer.aanswer(_cached_state(cache, session_id), question)
