"""Build the evaluation StateGraph and the orchestrator that runs it.

``build_evaluation_graph()`` wires the stage nodes into a linear chain
``START -> stage_1 -> ... -> stage_n [-> verdict] -> END``.  Stages do not
read each other's outputs; the order is fixed so runs are reproducible.

``EvaluationOrchestrator`` resolves the stage order against a registry,
builds one agent per stage and exposes sync, async and streaming runs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from typing import Any

from langchain_core.language_models import BaseChatModel
from langgraph.graph import END, START, StateGraph

from deal_qualifier.domain.enums import StageKind
from deal_qualifier.infrastructure.config import PipelineConfig
from deal_qualifier.infrastructure.registry import StageRegistry
from deal_qualifier.infrastructure.retrieval import Retriever
from deal_qualifier.infrastructure.session_cache import SessionResultCache
from deal_qualifier.graph.nodes import VERDICT_NODE, make_stage_node, make_verdict_node
from deal_qualifier.graph.state import EvaluationState, new_state
from deal_qualifier.services.scoring import StageAgent, create_stage_agent
from deal_qualifier.services.stages import DEFAULT_STAGE_ORDER, default_stage_registry

logger = logging.getLogger(__name__)


def build_evaluation_graph(
    agents: Sequence[StageAgent],
    include_verdict: bool = False,
    config: PipelineConfig | None = None,
    checkpointer: Any | None = None,
    state_schema: type | None = None,
) -> Any:
    """Build and compile the evaluation StateGraph.

    Parameters
    ----------
    agents:
        Stage agents in execution order.  Node names are the stage names.
    include_verdict:
        If True, append the deterministic ``verdict`` node after the last
        stage.
    config:
        Pipeline configuration passed to the verdict node.
    checkpointer:
        Optional LangGraph checkpointer for persistence.
    state_schema:
        Optional state TypedDict to use instead of ``EvaluationState``.

    Returns
    -------
    CompiledStateGraph
        A compiled graph ready for ``.invoke()``, ``.ainvoke()`` or
        ``.stream()``.
    """
    if not agents:
        raise ValueError("An evaluation graph needs at least one stage")

    schema = state_schema if state_schema is not None else EvaluationState
    graph = StateGraph(schema)

    names = [agent.name for agent in agents]
    for agent in agents:
        graph.add_node(agent.name, make_stage_node(agent))

    if include_verdict:
        scored = [a.spec for a in agents if a.spec.kind is StageKind.SCORED]
        graph.add_node(VERDICT_NODE, make_verdict_node(config, scored))
        names.append(VERDICT_NODE)

    graph.add_edge(START, names[0])
    for current, following in zip(names, names[1:]):
        graph.add_edge(current, following)
    graph.add_edge(names[-1], END)

    compile_kwargs: dict[str, Any] = {}
    if checkpointer is not None:
        compile_kwargs["checkpointer"] = checkpointer
    return graph.compile(**compile_kwargs)


class EvaluationOrchestrator:
    """Run the stage pipeline for one session.

    Parameters
    ----------
    retriever:
        Session-scoped retrieval shared by every stage.
    model:
        Chat model shared by every stage.
    stages:
        Ordered stage names; defaults to the five built-in stages.
    registry:
        Where stage names are resolved; defaults to a fresh built-in
        registry.
    cache:
        When set, :meth:`evaluate` stores each completed state here.
    config:
        Pipeline configuration.
    checkpointer:
        Optional LangGraph checkpointer.

    Usage::

        orchestrator = EvaluationOrchestrator(retriever, model)
        state = orchestrator.run({"session_id": "abc"})
        state["strategic_fit"].score
    """

    def __init__(
        self,
        retriever: Retriever,
        model: BaseChatModel,
        *,
        stages: Sequence[str] | None = None,
        registry: StageRegistry | None = None,
        cache: SessionResultCache | None = None,
        config: PipelineConfig | None = None,
        checkpointer: Any | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.registry = registry if registry is not None else default_stage_registry()
        self.specs = self.registry.resolve(stages if stages is not None else DEFAULT_STAGE_ORDER)
        self.cache = cache
        self.agents = [
            create_stage_agent(spec, retriever, model, self.config) for spec in self.specs
        ]
        self.graph = build_evaluation_graph(
            self.agents,
            include_verdict=self.config.include_verdict,
            config=self.config,
            checkpointer=checkpointer,
        )

    @property
    def stage_names(self) -> list[str]:
        names = [agent.name for agent in self.agents]
        if self.config.include_verdict:
            names.append(VERDICT_NODE)
        return names

    @staticmethod
    def initial_state(session_id: str, question: str | None = None) -> dict[str, Any]:
        return new_state(session_id, question)

    @staticmethod
    def _check(initial_state: dict[str, Any]) -> None:
        if not initial_state.get("session_id"):
            raise ValueError("initial_state must carry a non-empty session_id")

    # -- runs ------------------------------------------------------------------

    def run(self, initial_state: dict[str, Any], **invoke_kwargs: Any) -> dict[str, Any]:
        """Run every stage in order and return the final state.

        Retrieval or completion failures propagate and no state is
        returned; parse failures leave degraded defaults in place.
        """
        self._check(initial_state)
        started = time.monotonic()
        logger.info("Evaluating session %s: %s", initial_state["session_id"], self.stage_names)
        result = self.graph.invoke(initial_state, **invoke_kwargs)
        logger.info(
            "Evaluation for session %s finished in %.2fs",
            initial_state["session_id"], time.monotonic() - started,
        )
        return result

    async def arun(self, initial_state: dict[str, Any], **invoke_kwargs: Any) -> dict[str, Any]:
        """Async variant of :meth:`run`."""
        self._check(initial_state)
        started = time.monotonic()
        logger.info("Evaluating session %s (async): %s", initial_state["session_id"], self.stage_names)
        result = await self.graph.ainvoke(initial_state, **invoke_kwargs)
        logger.info(
            "Evaluation for session %s finished in %.2fs",
            initial_state["session_id"], time.monotonic() - started,
        )
        return result

    def stream(
        self, initial_state: dict[str, Any], **stream_kwargs: Any
    ) -> Iterator[tuple[str, dict[str, Any]]]:
        """Yield ``(stage_name, partial_update)`` as each stage completes."""
        self._check(initial_state)
        for chunk in self.graph.stream(initial_state, stream_mode="updates", **stream_kwargs):
            for node_name, update in chunk.items():
                yield node_name, update or {}

    # -- run + cache -------------------------------------------------------------

    def evaluate(self, session_id: str) -> dict[str, Any]:
        """Run a fresh evaluation for *session_id* and cache the result.

        With a cache, the run and the write happen under the session's
        lock, so concurrent evaluations of one session do not interleave.
        """
        if self.cache is None:
            return self.run(self.initial_state(session_id))
        with self.cache.session_lock(session_id):
            state = self.run(self.initial_state(session_id))
            self.cache.put(session_id, state)
        return state

    async def aevaluate(self, session_id: str) -> dict[str, Any]:
        if self.cache is None:
            return await self.arun(self.initial_state(session_id))
        async with self.cache.async_session_lock(session_id):
            state = await self.arun(self.initial_state(session_id))
            self.cache.put(session_id, state)
        return state
