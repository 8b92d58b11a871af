"""Tests for domain value objects and exceptions."""

from __future__ import annotations

import dataclasses

import pytest

from deal_qualifier.domain.enums import QualificationVerdict
from deal_qualifier.domain.exceptions import (
    CompletionError,
    DealQualifierError,
    RetrievalError,
    ScoreParseError,
    SessionNotFoundError,
)
from deal_qualifier.domain.values import (
    Criterion,
    CriterionResult,
    DimensionScore,
    ParseOutcome,
    RedFlag,
)


class TestCriterion:

    def test_valid(self) -> None:
        c = Criterion("Market Alignment", 0.10)
        assert c.max_weighted_score == pytest.approx(0.5)

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError, match="name"):
            Criterion("", 0.1)

    def test_weight_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="weight"):
            Criterion("X", 1.5)

    def test_frozen(self) -> None:
        c = Criterion("X", 0.1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            c.weight = 0.2  # type: ignore[misc]


class TestCriterionResult:

    def test_consistent(self) -> None:
        r = CriterionResult("X", 4, 0.1, 0.4)
        assert r.is_consistent()
        assert r.expected_weighted_score == pytest.approx(0.4)

    def test_inconsistent(self) -> None:
        r = CriterionResult("X", 4, 0.1, 0.5)
        assert not r.is_consistent()

    def test_to_dict_uses_wire_keys(self) -> None:
        d = CriterionResult("X", 4, 0.1, 0.4, "because").to_dict()
        assert d == {
            "criteria": "X",
            "score": 4,
            "weight": 0.1,
            "weightedScore": 0.4,
            "reason": "because",
        }


class TestDimensionScore:

    def test_empty_default(self) -> None:
        d = DimensionScore.empty()
        assert d.score == 0.0
        assert d.breakdown == ()
        assert d.degraded is False

    def test_empty_degraded(self) -> None:
        assert DimensionScore.empty(degraded=True).degraded is True

    def test_degraded_zero_differs_from_real_zero(self) -> None:
        assert DimensionScore.empty(degraded=True) != DimensionScore.empty()

    def test_breakdown_total_and_consistency(self, fit_dimension: DimensionScore) -> None:
        assert fit_dimension.breakdown_total == pytest.approx(1.6)
        assert fit_dimension.is_consistent()
        assert fit_dimension.criteria_names == ("Market Alignment", "Win Probability")

    def test_inconsistent_total(self) -> None:
        d = DimensionScore(score=2.0, breakdown=(CriterionResult("X", 4, 0.1, 0.4),))
        assert not d.is_consistent()

    def test_to_dict(self, fit_dimension: DimensionScore) -> None:
        d = fit_dimension.to_dict()
        assert d["score"] == 1.6
        assert len(d["breakdown"]) == 2
        assert d["degraded"] is False


class TestRedFlag:

    def test_str_full(self) -> None:
        flag = RedFlag("Unrealistic timeline", "Flag delivery risk", "Six weeks for a migration", "RFP")
        assert str(flag) == "Unrealistic timeline: Six weeks for a migration (Flag delivery risk; RFP)"

    def test_str_bare(self) -> None:
        assert str(RedFlag("Vague criteria")) == "Vague criteria"

    def test_to_dict(self) -> None:
        assert RedFlag("A", reason="B").to_dict() == {
            "flag": "A", "action": "", "reason": "B", "source": "",
        }


class TestParseOutcome:

    def test_success_unwrap(self) -> None:
        assert ParseOutcome.success([1, 2]).unwrap() == [1, 2]

    def test_failure_unwrap_raises(self) -> None:
        outcome = ParseOutcome.failure("bad json", raw="{oops")
        with pytest.raises(ScoreParseError, match="bad json") as info:
            outcome.unwrap()
        assert info.value.raw == "{oops"


class TestExceptions:

    def test_hierarchy(self) -> None:
        for exc_type in (RetrievalError, CompletionError, ScoreParseError, SessionNotFoundError):
            assert issubclass(exc_type, DealQualifierError)

    def test_session_not_found_message(self) -> None:
        exc = SessionNotFoundError("abc")
        assert exc.session_id == "abc"
        assert "abc" in str(exc)

    def test_details_default(self) -> None:
        assert DealQualifierError("x").details == {}

    def test_retrieval_error_fields(self) -> None:
        exc = RetrievalError("boom", session_id="s", query="q")
        assert (exc.session_id, exc.query) == ("s", "q")


class TestVerdictEnum:

    def test_wire_values(self) -> None:
        assert [v.value for v in QualificationVerdict] == ["GO", "REVIEW", "NO-GO"]
