"""Value objects for deal qualification.

All types here are frozen dataclasses: immutable, compared by value.
They represent retrieved passages, rubric criteria, per-criterion results,
dimension scores and red flags.  Stages build new instances instead of
mutating shared ones, so nothing is aliased across pipeline stages.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ScoreParseError

# Scores are on a 1-5 scale; weights are fractions of the overall total.
MIN_CRITERION_SCORE = 1.0
MAX_CRITERION_SCORE = 5.0

# ---------------------------------------------------------------------------
# Passage
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Passage:
    """A ranked text passage returned by the retrieval collaborator."""

    text: str
    metadata: Mapping[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Criterion / CriterionResult
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Criterion:
    """One named, weighted sub-question of a stage's rubric."""

    name: str
    weight: float
    question: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Criterion.name must not be empty")
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"weight must be in [0, 1], got {self.weight}")

    @property
    def max_weighted_score(self) -> float:
        return MAX_CRITERION_SCORE * self.weight


@dataclass(frozen=True)
class CriterionResult:
    """The model's assessment of a single criterion.

    ``weighted_score`` should equal ``score * weight``; the parser
    reconciles it when the model's arithmetic is off.
    """

    criteria: str
    score: float
    weight: float
    weighted_score: float
    reason: str = ""

    @property
    def expected_weighted_score(self) -> float:
        return round(self.score * self.weight, 4)

    def is_consistent(self, tolerance: float = 1e-6) -> bool:
        """True when ``weighted_score`` matches ``score * weight``."""
        return math.isclose(
            self.weighted_score, self.score * self.weight, abs_tol=tolerance
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire format, matching the keys the model is asked to produce."""
        return {
            "criteria": self.criteria,
            "score": self.score,
            "weight": self.weight,
            "weightedScore": self.weighted_score,
            "reason": self.reason,
        }


# ---------------------------------------------------------------------------
# DimensionScore
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DimensionScore:
    """Aggregate score and breakdown for one scoring dimension.

    ``degraded`` marks the zero default substituted after a parse failure,
    so a real zero can be told apart from a stage that produced nothing
    usable.  ``reconciled`` marks a record whose weighted scores or total
    were recomputed because the model's arithmetic did not add up.
    """

    score: float = 0.0
    breakdown: tuple[CriterionResult, ...] = ()
    degraded: bool = False
    reconciled: bool = False

    @classmethod
    def empty(cls, degraded: bool = False) -> DimensionScore:
        """The ``{score: 0, breakdown: []}`` default."""
        return cls(score=0.0, breakdown=(), degraded=degraded)

    @property
    def criteria_names(self) -> tuple[str, ...]:
        return tuple(c.criteria for c in self.breakdown)

    @property
    def breakdown_total(self) -> float:
        """Sum of the breakdown's weighted scores."""
        return round(sum(c.weighted_score for c in self.breakdown), 4)

    def is_consistent(self, tolerance: float = 1e-6) -> bool:
        """True when every entry and the total agree with the arithmetic."""
        if not all(c.is_consistent(tolerance) for c in self.breakdown):
            return False
        return math.isclose(self.score, self.breakdown_total, abs_tol=tolerance)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "breakdown": [c.to_dict() for c in self.breakdown],
            "degraded": self.degraded,
            "reconciled": self.reconciled,
        }


# ---------------------------------------------------------------------------
# RedFlag
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RedFlag:
    """A risk identified in the deal.  Free text, no uniqueness constraint."""

    flag: str
    action: str = ""
    reason: str = ""
    source: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "flag": self.flag,
            "action": self.action,
            "reason": self.reason,
            "source": self.source,
        }

    def __str__(self) -> str:
        text = self.flag
        if self.reason:
            text = f"{text}: {self.reason}"
        extras = [part for part in (self.action, self.source) if part]
        if extras:
            text = f"{text} ({'; '.join(extras)})"
        return text


# ---------------------------------------------------------------------------
# ParseOutcome
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParseOutcome:
    """Result of parsing raw model output.

    Exactly one of two shapes: ``ok=True`` with a ``payload``, or
    ``ok=False`` with an ``error`` diagnostic.  ``raw`` always carries the
    original text so failures can be logged verbatim.
    """

    ok: bool
    payload: Any = None
    error: str = ""
    raw: str = ""

    @classmethod
    def success(cls, payload: Any, raw: str = "") -> ParseOutcome:
        return cls(ok=True, payload=payload, raw=raw)

    @classmethod
    def failure(cls, error: str, raw: str = "") -> ParseOutcome:
        return cls(ok=False, error=error, raw=raw)

    def unwrap(self) -> Any:
        """Return the payload, or raise ``ScoreParseError`` on failure."""
        if not self.ok:
            raise ScoreParseError(self.error, raw=self.raw)
        return self.payload
