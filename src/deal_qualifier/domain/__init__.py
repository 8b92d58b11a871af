"""Domain layer: value objects, enums and exceptions."""

from deal_qualifier.domain.enums import QualificationVerdict, StageKind
from deal_qualifier.domain.exceptions import (
    CompletionError,
    DealQualifierError,
    IngestionError,
    RetrievalError,
    ScoreParseError,
    SessionNotFoundError,
)
from deal_qualifier.domain.values import (
    Criterion,
    CriterionResult,
    DimensionScore,
    ParseOutcome,
    Passage,
    RedFlag,
)

__all__ = [
    "QualificationVerdict",
    "StageKind",
    "DealQualifierError",
    "RetrievalError",
    "CompletionError",
    "ScoreParseError",
    "SessionNotFoundError",
    "IngestionError",
    "Passage",
    "Criterion",
    "CriterionResult",
    "DimensionScore",
    "RedFlag",
    "ParseOutcome",
]
