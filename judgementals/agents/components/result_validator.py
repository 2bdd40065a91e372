"""
Result Validator

The single place where raw judge output is normalised into a ``JudgeResult``.
Nothing in here raises: every shape deviation is replaced by a safe default.
"""

import math
from dataclasses import dataclass, field
from typing import Any, List, Union

import structlog

from ...models.evaluation_models import Judge, JudgeResult

logger = structlog.get_logger(__name__)

DEFAULT_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10

DEFAULT_SUMMARY = "No summary provided"
DEFAULT_LIKES = ["Evaluation completed"]
DEFAULT_DISLIKES = ["No specific concerns provided"]

FALLBACK_SUMMARY_TEMPLATE = (
    "Unable to complete detailed evaluation for {project_name}. "
    "System encountered an error but judging process continued."
)
FALLBACK_LIKES = [
    "Project was submitted for evaluation",
    "File structure appears organized",
    "Standard naming conventions observed",
]
FALLBACK_DISLIKES = [
    "Could not perform detailed analysis due to system error",
    "Limited technical assessment available",
    "Manual review recommended for complete evaluation",
]


@dataclass(frozen=True)
class Ok:
    """A judge produced a usable evaluation."""
    result: JudgeResult


@dataclass(frozen=True)
class Fallback:
    """A judge failed; ``result`` is the canonical fallback."""
    reason: str
    result: JudgeResult = field(compare=False)


Outcome = Union[Ok, Fallback]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def normalize_score(value: Any) -> int:
    """Clamp-free score check: anything outside 1..10 becomes the default."""
    if not _is_number(value) or (isinstance(value, float) and not math.isfinite(value)):
        return DEFAULT_SCORE
    if value < MIN_SCORE or value > MAX_SCORE:
        return DEFAULT_SCORE
    return int(round(value))


class ResultValidator:
    """Converts raw parsed JSON from a judge into a well-formed JudgeResult."""

    def validate(self, raw: Any, judge: Judge) -> JudgeResult:
        """Build a JudgeResult from whatever the judge returned. Never raises."""
        data = raw if isinstance(raw, dict) else {}
        if not isinstance(raw, dict):
            logger.warning(
                "Judge response is not an object, using defaults",
                judge_id=judge.id,
                response_type=type(raw).__name__
            )

        summary = data.get("summary")
        if not isinstance(summary, str) or not summary:
            summary = DEFAULT_SUMMARY

        likes = data.get("likes")
        dislikes = data.get("dislikes")

        return JudgeResult(
            judge_id=judge.id,
            judge_name=judge.name,
            summary=summary,
            score=normalize_score(data.get("score")),
            likes=list(likes) if _string_list(likes) else list(DEFAULT_LIKES),
            dislikes=list(dislikes) if _string_list(dislikes) else list(DEFAULT_DISLIKES),
        )

    def fallback_result(self, judge: Judge, project_name: str) -> JudgeResult:
        """The canonical substitute used whenever a judge call fails."""
        return JudgeResult(
            judge_id=judge.id,
            judge_name=judge.name,
            summary=FALLBACK_SUMMARY_TEMPLATE.format(project_name=project_name),
            score=DEFAULT_SCORE,
            likes=list(FALLBACK_LIKES),
            dislikes=list(FALLBACK_DISLIKES),
        )

    def ok(self, raw: Any, judge: Judge) -> Ok:
        return Ok(self.validate(raw, judge))

    def fallback(self, judge: Judge, project_name: str, reason: str) -> Fallback:
        return Fallback(reason=reason, result=self.fallback_result(judge, project_name))


def outcome_result(outcome: Outcome) -> JudgeResult:
    return outcome.result


def is_fallback(outcome: Outcome) -> bool:
    return isinstance(outcome, Fallback)


def results_of(outcomes: List[Outcome]) -> List[JudgeResult]:
    return [outcome_result(outcome) for outcome in outcomes]
