"""Services: stage definitions, score parsing, stage agents, verdict and chat."""

from deal_qualifier.services.chat import DealChatSynthesizer, aask, ask
from deal_qualifier.services.parsing import (
    parse_json_payload,
    parse_red_flags,
    parse_score_record,
    strip_code_fences,
)
from deal_qualifier.services.scoring import (
    RedFlagAgent,
    ScoringAgent,
    StageAgent,
    create_stage_agent,
)
from deal_qualifier.services.stages import (
    BUILTIN_STAGES,
    COMPETITIVE_EDGE,
    CUSTOMER_READINESS,
    DEFAULT_STAGE_ORDER,
    RED_FLAGS,
    SCORED_DIMENSIONS,
    STRATEGIC_FIT,
    STRATEGIC_UPSIDE,
    ScoringStageSpec,
    default_stage_registry,
    scored_stage,
)
from deal_qualifier.services.verdict import VerdictAssessment, assess_verdict

__all__ = [
    "BUILTIN_STAGES",
    "COMPETITIVE_EDGE",
    "CUSTOMER_READINESS",
    "DEFAULT_STAGE_ORDER",
    "DealChatSynthesizer",
    "RED_FLAGS",
    "RedFlagAgent",
    "SCORED_DIMENSIONS",
    "STRATEGIC_FIT",
    "STRATEGIC_UPSIDE",
    "ScoringAgent",
    "ScoringStageSpec",
    "StageAgent",
    "VerdictAssessment",
    "aask",
    "ask",
    "assess_verdict",
    "create_stage_agent",
    "default_stage_registry",
    "parse_json_payload",
    "parse_red_flags",
    "parse_score_record",
    "scored_stage",
    "strip_code_fences",
]
