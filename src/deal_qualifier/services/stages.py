"""Declarative definitions of the five evaluation stages.

Every stage is a ``ScoringStageSpec`` value: the retrieval query it asks,
the state key it owns, its prompt template and (for scored stages) its
weighted criteria.  Scored stages share one prompt template; the criteria
list and the example JSON embedded in the prompt are rendered from the
spec's criteria, so weights live in exactly one place.

Weights across the four scored stages sum to 1.0, so the sum of the
dimension totals is itself on the 1-5 scale.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from langchain_core.prompts import ChatPromptTemplate

from deal_qualifier.domain.enums import StageKind
from deal_qualifier.domain.values import Criterion
from deal_qualifier.infrastructure.registry import StageRegistry

# -- Prompts -------------------------------------------------------------------

_SCORING_TEMPLATE = """{persona}

Assess the RFP content below against each criterion. For every criterion return:
- a score between 1 (poor) and 5 (excellent)
- the fixed weight listed below
- the weightedScore, computed as score x weight
- a short reason grounded in the RFP content

Criteria:
{criteria}

Return only a JSON object shaped like this example:
{example}

totalScore is the sum of all weightedScore values.

RFP Content:
{context}
"""

_RED_FLAG_TEMPLATE = """You are an experienced RFP qualification analyst.

Review the RFP content and identify RED FLAGS that reduce the likelihood of
winning the deal or delivering it successfully. Use the guidance below and
explain your reasoning for each red flag you identify.

Red flag guidance (signal -> recommended action -> why it matters -> source):
- Added only to meet a vendor minimum -> Consider disqualification -> Low win probability -> RFP
- Scope favours another vendor -> Escalate to BD/Legal -> Indicates bias -> RFP + internal
- Unrealistic timeline or budget -> Flag delivery risk -> May harm quality or reputation -> RFP
- No stakeholder access -> Escalate internally -> Prevents discovery -> RFP + internal
- Vague or missing evaluation criteria -> Seek clarification -> Unpredictable selection -> RFP

Return a JSON array of red flag objects:
[
  {{
    "flag": "<short label of the issue>",
    "action": "<recommended action>",
    "reason": "<why this is a risk, citing the RFP content>",
    "source": "<RFP or internal>"
  }}
]
Return an empty array if you find no red flags.

RFP Content:
{context}
"""


def _render_criteria(criteria: tuple[Criterion, ...]) -> str:
    lines = []
    for i, c in enumerate(criteria, start=1):
        line = f"{i}. {c.name} (weight {c.weight:.2f}, {c.weight:.0%})"
        if c.question:
            line = f"{line} - {c.question}"
        lines.append(line)
    return "\n".join(lines)


def _render_example(criteria: tuple[Criterion, ...]) -> str:
    breakdown = [
        {
            "criteria": c.name,
            "score": 4,
            "weight": c.weight,
            "weightedScore": round(4 * c.weight, 4),
            "reason": "<one sentence citing the RFP>",
        }
        for c in criteria
    ]
    total = round(sum(entry["weightedScore"] for entry in breakdown), 4)
    return json.dumps({"scoreBreakdown": breakdown, "totalScore": total}, indent=2)


def scoring_prompt(persona: str, criteria: tuple[Criterion, ...]) -> ChatPromptTemplate:
    """Shared scored-stage template with persona, criteria and example bound."""
    return ChatPromptTemplate.from_template(_SCORING_TEMPLATE).partial(
        persona=persona,
        criteria=_render_criteria(criteria),
        example=_render_example(criteria),
    )


# -- Stage spec ----------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class ScoringStageSpec:
    """Everything that distinguishes one stage from another.

    Attributes
    ----------
    name:
        Graph node name, unique within a pipeline.
    state_key:
        The ``EvaluationState`` key this stage owns.
    query:
        Fixed retrieval query.
    prompt:
        Template with a single ``{context}`` input variable.
    criteria:
        Weighted rubric; empty for the red-flag stage.
    kind:
        ``SCORED`` stages yield a ``DimensionScore``; ``FLAGS`` a list of
        ``RedFlag``.
    label:
        Human-readable dimension name.
    """

    name: str
    state_key: str
    query: str
    prompt: ChatPromptTemplate
    criteria: tuple[Criterion, ...] = ()
    kind: StageKind = StageKind.SCORED
    label: str = ""

    def __post_init__(self) -> None:
        if self.kind is StageKind.SCORED and not self.criteria:
            raise ValueError(f"Scored stage '{self.name}' needs at least one criterion")
        if "context" not in self.prompt.input_variables:
            raise ValueError(f"Prompt for stage '{self.name}' must take a {{context}} variable")

    @property
    def criterion_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.criteria)

    @property
    def total_weight(self) -> float:
        return round(sum(c.weight for c in self.criteria), 4)

    @property
    def max_score(self) -> float:
        """Highest achievable total (every criterion scored 5)."""
        return round(sum(c.max_weighted_score for c in self.criteria), 4)


def scored_stage(
    name: str,
    label: str,
    query: str,
    persona: str,
    criteria: tuple[Criterion, ...],
    state_key: str | None = None,
) -> ScoringStageSpec:
    """Build a scored stage from its persona line and criteria."""
    return ScoringStageSpec(
        name=name,
        state_key=state_key or name,
        query=query,
        prompt=scoring_prompt(persona, criteria),
        criteria=criteria,
        kind=StageKind.SCORED,
        label=label,
    )


# -- Built-in stages -------------------------------------------------------------

RED_FLAGS = ScoringStageSpec(
    name="red_flags",
    state_key="red_flags",
    query="Review the RFP for red flags",
    prompt=ChatPromptTemplate.from_template(_RED_FLAG_TEMPLATE),
    kind=StageKind.FLAGS,
    label="Red Flags",
)

STRATEGIC_FIT = scored_stage(
    name="strategic_fit",
    label="Strategic Fit",
    query="Assess RFP strategic alignment",
    persona="You are a strategic deal advisor evaluating how well this RFP fits our business.",
    criteria=(
        Criterion("Market Alignment", 0.10, "Does the opportunity match our core markets and domains?"),
        Criterion("Win Probability", 0.10, "How likely are we to win, given sponsor engagement and competition?"),
        Criterion("Delivery Capability", 0.10, "Can we staff and deliver the scope in the required region and timeframe?"),
        Criterion("Business Justification", 0.05, "Is the revenue and long-term account value worth the pursuit cost?"),
    ),
)

CUSTOMER_READINESS = scored_stage(
    name="customer_readiness",
    label="Customer Readiness",
    query="Assess customer readiness",
    persona="You are an expert deal qualification analyst assessing how ready the customer is to buy.",
    criteria=(
        Criterion("Stakeholder Clarity", 0.10, "Are goals and success metrics clearly defined?"),
        Criterion("Decision-Maker Access", 0.05, "Are sponsors or influencers identified or reachable?"),
        Criterion("Project Background", 0.05, "Are pain points, urgency, or past attempts explained?"),
    ),
)

STRATEGIC_UPSIDE = scored_stage(
    name="strategic_upside",
    label="Strategic Upside",
    query="Evaluate strategic upside of this deal",
    persona="You are a strategic sales advisor evaluating the strategic upside of a potential deal.",
    criteria=(
        Criterion("Long-Term Potential", 0.10, "Can this lead to expansion, upsell, or land-and-expand?"),
        Criterion("Brand/Market Value", 0.05, "Does this win enhance the brand or open a new market segment?"),
    ),
)

COMPETITIVE_EDGE = scored_stage(
    name="competitive_edge",
    label="Competitive Edge",
    query="Evaluate competitive edge for this deal",
    persona="You are a deal pursuit strategist assessing our competitive strength for this RFP.",
    criteria=(
        Criterion("Relevant Experience", 0.10, "Do we have comparable wins, references, or IP?"),
        Criterion("Differentiators", 0.10, "Are our AI, automation, or platform capabilities unique here?"),
        Criterion("Client Relationship", 0.10, "Do we have prior engagement, rapport, or insight into the client?"),
    ),
)

BUILTIN_STAGES: tuple[ScoringStageSpec, ...] = (
    RED_FLAGS,
    STRATEGIC_FIT,
    CUSTOMER_READINESS,
    STRATEGIC_UPSIDE,
    COMPETITIVE_EDGE,
)

DEFAULT_STAGE_ORDER: tuple[str, ...] = tuple(spec.name for spec in BUILTIN_STAGES)

SCORED_DIMENSIONS: tuple[ScoringStageSpec, ...] = tuple(
    spec for spec in BUILTIN_STAGES if spec.kind is StageKind.SCORED
)


def default_stage_registry() -> StageRegistry:
    """A fresh registry holding the five built-in stages."""
    return StageRegistry(BUILTIN_STAGES)
