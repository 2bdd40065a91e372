"""
Tests for ResultValidator.

Every shape deviation in a judge response must be replaced by a safe default
without raising.
"""

import math

import pytest

from judgementals.agents.components.result_validator import (
    DEFAULT_DISLIKES,
    DEFAULT_LIKES,
    DEFAULT_SUMMARY,
    FALLBACK_DISLIKES,
    FALLBACK_LIKES,
    Fallback,
    Ok,
    ResultValidator,
    is_fallback,
    normalize_score,
    results_of,
)
from judgementals.models.evaluation_models import Judge


@pytest.fixture
def validator():
    return ResultValidator()


@pytest.fixture
def judge():
    return Judge(id="tech", name="Tech Judge", prompt="Evaluate.")


class TestNormalizeScore:

    @pytest.mark.parametrize("value,expected", [
        (1, 1),
        (10, 10),
        (7.4, 7),
        (7.6, 8),
        (0, 5),
        (11, 5),
        (-3, 5),
        ("8", 5),
        (None, 5),
        (True, 5),
        (math.nan, 5),
        (math.inf, 5),
    ])
    def test_normalize(self, value, expected):
        assert normalize_score(value) == expected


class TestResultValidator:

    def test_well_formed_response(self, validator, judge):
        result = validator.validate(
            {"summary": "Great", "score": 9, "likes": ["fast"], "dislikes": ["docs"]},
            judge,
        )
        assert result.judge_id == "tech"
        assert result.judge_name == "Tech Judge"
        assert result.summary == "Great"
        assert result.score == 9
        assert result.likes == ["fast"]
        assert result.dislikes == ["docs"]

    def test_missing_fields_get_defaults(self, validator, judge):
        result = validator.validate({}, judge)
        assert result.summary == DEFAULT_SUMMARY
        assert result.score == 5
        assert result.likes == DEFAULT_LIKES
        assert result.dislikes == DEFAULT_DISLIKES

    def test_wrong_types_get_defaults(self, validator, judge):
        result = validator.validate(
            {"summary": 42, "score": "high", "likes": "nice", "dislikes": [1, 2]},
            judge,
        )
        assert result.summary == DEFAULT_SUMMARY
        assert result.score == 5
        assert result.likes == DEFAULT_LIKES
        assert result.dislikes == DEFAULT_DISLIKES

    def test_out_of_range_score(self, validator, judge):
        assert validator.validate({"score": 15}, judge).score == 5

    def test_non_object_response(self, validator, judge):
        result = validator.validate(["not", "an", "object"], judge)
        assert result.score == 5
        assert result.summary == DEFAULT_SUMMARY

    def test_default_lists_are_not_shared(self, validator, judge):
        first = validator.validate({}, judge)
        first.likes.append("mutated")
        second = validator.validate({}, judge)
        assert second.likes == DEFAULT_LIKES

    def test_fallback_result(self, validator, judge):
        result = validator.fallback_result(judge, "Alpha")
        assert result.score == 5
        assert "Alpha" in result.summary
        assert result.likes == FALLBACK_LIKES
        assert result.dislikes == FALLBACK_DISLIKES

    def test_outcome_variants(self, validator, judge):
        ok = validator.ok({"score": 8}, judge)
        fallback = validator.fallback(judge, "Alpha", "timeout")

        assert isinstance(ok, Ok)
        assert isinstance(fallback, Fallback)
        assert not is_fallback(ok)
        assert is_fallback(fallback)
        assert [r.score for r in results_of([ok, fallback])] == [8, 5]
