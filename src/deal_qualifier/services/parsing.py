"""Score parser: turn raw model output into structured stage results.

Model output is expected to contain a JSON object (scored stages) or array
(red flags), possibly wrapped in markdown code fences or surrounded by a
sentence of prose.  Every public function here returns a ``ParseOutcome``
and never raises: malformed JSON, wrong shapes and out-of-range numbers
all become failures carrying the raw text for diagnostics.

Shapes are validated with pydantic.  The model's arithmetic is not trusted:
with ``reconcile=True`` each ``weightedScore`` is recomputed from
``score * weight`` and the total from the breakdown, and records whose
numbers had to be corrected are flagged ``reconciled``.
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from deal_qualifier.domain.values import (
    MAX_CRITERION_SCORE,
    MIN_CRITERION_SCORE,
    CriterionResult,
    DimensionScore,
    ParseOutcome,
    RedFlag,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:[A-Za-z]+)?")

# -- Structured output schemas -----------------------------------------------


class CriterionModel(BaseModel):
    """One ``scoreBreakdown`` entry as produced by the model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    criteria: str = Field(min_length=1)
    score: float = Field(ge=MIN_CRITERION_SCORE, le=MAX_CRITERION_SCORE)
    weight: float = Field(ge=0, le=1)
    weighted_score: float | None = Field(default=None, alias="weightedScore")
    reason: str = ""


class ScoreRecordModel(BaseModel):
    """``{scoreBreakdown: [...], totalScore: n}``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    score_breakdown: list[CriterionModel] = Field(alias="scoreBreakdown")
    total_score: float | None = Field(default=None, alias="totalScore")


class RedFlagModel(BaseModel):
    """One red-flag object."""

    model_config = ConfigDict(extra="ignore")

    flag: str = Field(min_length=1)
    action: str = ""
    reason: str = ""
    source: str = ""


# -- JSON extraction ----------------------------------------------------------


def strip_code_fences(raw: str) -> str:
    """Trim whitespace and remove markdown code-fence markers."""
    return _FENCE_RE.sub("", raw.strip()).strip()


def _bracketed_span(text: str) -> str | None:
    """Return the outermost ``{...}`` or ``[...]`` span, if any."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end <= start:
        return None
    return text[start:end + 1]


def parse_json_payload(raw: str | None) -> ParseOutcome:
    """Parse the JSON value embedded in *raw*.

    Tries the fence-stripped text first; if that is not valid JSON, retries
    on the outermost bracketed span to tolerate a leading or trailing
    sentence.  Truncated JSON and plain prose are failures.
    """
    if raw is None:
        return ParseOutcome.failure("no output", raw="")
    if not isinstance(raw, str):
        return ParseOutcome.failure(f"expected text, got {type(raw).__name__}", raw=str(raw))

    text = strip_code_fences(raw)
    if not text:
        return ParseOutcome.failure("empty output", raw=raw)

    try:
        return ParseOutcome.success(json.loads(text), raw=raw)
    except ValueError as exc:
        first_error = exc

    span = _bracketed_span(text)
    if span is not None and span != text:
        try:
            return ParseOutcome.success(json.loads(span), raw=raw)
        except ValueError:
            pass

    return ParseOutcome.failure(f"invalid JSON: {first_error}", raw=raw)


# -- Scored stages ------------------------------------------------------------


def _build_dimension(
    record: ScoreRecordModel, reconcile: bool, tolerance: float
) -> DimensionScore:
    reconciled = False
    results: list[CriterionResult] = []

    for entry in record.score_breakdown:
        expected = round(entry.score * entry.weight, 4)
        weighted = entry.weighted_score
        if weighted is None:
            weighted = expected
            reconciled = True
        elif not math.isclose(weighted, expected, abs_tol=tolerance):
            logger.info(
                "Criterion '%s': model weightedScore %.4f != %.4f (score %.2f x weight %.2f)",
                entry.criteria, weighted, expected, entry.score, entry.weight,
            )
            if reconcile:
                weighted = expected
                reconciled = True
        results.append(
            CriterionResult(
                criteria=entry.criteria,
                score=entry.score,
                weight=entry.weight,
                weighted_score=weighted,
                reason=entry.reason,
            )
        )

    computed_total = round(sum(r.weighted_score for r in results), 4)
    total = record.total_score
    if total is None:
        total = computed_total
        reconciled = True
    elif not math.isclose(total, computed_total, abs_tol=tolerance):
        logger.info(
            "Model totalScore %.4f != breakdown sum %.4f", total, computed_total
        )
        if reconcile:
            total = computed_total
            reconciled = True

    return DimensionScore(
        score=total,
        breakdown=tuple(results),
        degraded=False,
        reconciled=reconciled,
    )


def parse_score_record(
    raw: str | None,
    expected_criteria: Iterable[str] | None = None,
    reconcile: bool = True,
    tolerance: float = 0.01,
) -> ParseOutcome:
    """Parse a scored stage's output into a ``DimensionScore``.

    Parameters
    ----------
    raw:
        Raw model output.
    expected_criteria:
        The stage's declared criterion names.  Mismatches are logged, not
        rejected: the model's breakdown is kept as returned.
    reconcile:
        Recompute weighted scores and the total instead of trusting the
        model's arithmetic.
    tolerance:
        Absolute difference treated as an arithmetic mistake.
    """
    outcome = parse_json_payload(raw)
    if not outcome.ok:
        return outcome

    payload = outcome.payload
    if not isinstance(payload, dict):
        return ParseOutcome.failure(
            f"expected a JSON object, got {type(payload).__name__}", raw=outcome.raw
        )

    try:
        record = ScoreRecordModel.model_validate(payload)
    except ValidationError as exc:
        return ParseOutcome.failure(
            f"invalid score record: {exc.error_count()} validation error(s): {exc}",
            raw=outcome.raw,
        )

    dimension = _build_dimension(record, reconcile=reconcile, tolerance=tolerance)

    if expected_criteria is not None:
        expected = list(expected_criteria)
        unknown = [n for n in dimension.criteria_names if n not in expected]
        missing = [n for n in expected if n not in dimension.criteria_names]
        if unknown or missing:
            logger.warning(
                "Score breakdown criteria mismatch: unknown=%s missing=%s", unknown, missing
            )

    return ParseOutcome.success(dimension, raw=outcome.raw)


# -- Red flags ----------------------------------------------------------------


def parse_red_flags(raw: str | None) -> ParseOutcome:
    """Parse the red-flag stage's output into a list of ``RedFlag``.

    Accepts a JSON array, or an object wrapping the array under
    ``redFlags``.  String entries become flags with no reason; entries that
    are neither objects nor strings are dropped.
    """
    outcome = parse_json_payload(raw)
    if not outcome.ok:
        return outcome

    payload: Any = outcome.payload
    if isinstance(payload, dict) and isinstance(payload.get("redFlags"), list):
        payload = payload["redFlags"]
    if not isinstance(payload, list):
        return ParseOutcome.failure(
            f"expected a JSON array, got {type(payload).__name__}", raw=outcome.raw
        )

    flags: list[RedFlag] = []
    for i, entry in enumerate(payload):
        if isinstance(entry, str):
            if entry.strip():
                flags.append(RedFlag(flag=entry.strip()))
            continue
        if not isinstance(entry, dict):
            logger.warning("Dropping red flag #%d: unsupported entry %r", i, entry)
            continue
        try:
            model = RedFlagModel.model_validate(entry)
        except ValidationError as exc:
            logger.warning("Dropping red flag #%d: %s", i, exc)
            continue
        flags.append(
            RedFlag(
                flag=model.flag,
                action=model.action,
                reason=model.reason,
                source=model.source,
            )
        )

    return ParseOutcome.success(flags, raw=outcome.raw)
