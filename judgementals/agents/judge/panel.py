"""
Judge Panel

Runs every configured judge against one project concurrently. Each judge's
task always resolves to a result, real or fallback, so one judge failing never
affects another and the panel as a whole never raises.
"""

import asyncio
import time
from typing import List, Optional

import structlog

from ...exceptions import TransientEvaluationError
from ...models.evaluation_models import Judge, JudgeResult
from ...utils.logging_config import log_judge_outcome, log_performance
from ..components.llm_utils import LLMUtils
from ..components.prompt_budgeter import PromptBudgeter
from ..components.result_validator import (
    Fallback,
    Outcome,
    ResultValidator,
    results_of,
)
from .prompts import JUDGE_RESPONSE_FORMAT, judge_prompt_prefix

logger = structlog.get_logger(__name__)

DEFAULT_MAX_PROMPT_BYTES = int(7.5 * 1024 * 1024)


class JudgePanel:
    """
    Concurrent per-project evaluation by all judges.

    Responsibilities:
    - Build each judge's prompt within the prompt budget
    - Fan out one task per judge and join them in judge-list order
    - Convert raw output through ResultValidator
    - Substitute the canonical fallback for any failure
    """

    def __init__(
        self,
        llm_utils: LLMUtils,
        budgeter: Optional[PromptBudgeter] = None,
        validator: Optional[ResultValidator] = None,
        max_prompt_bytes: int = DEFAULT_MAX_PROMPT_BYTES
    ):
        self.llm_utils = llm_utils
        self.budgeter = budgeter or PromptBudgeter()
        self.validator = validator or ResultValidator()
        self.max_prompt_bytes = max_prompt_bytes
        self.logger = logger.bind(component="JudgePanel")

    async def evaluate(
        self,
        project_name: str,
        formatted_project: str,
        judges: List[Judge]
    ) -> List[JudgeResult]:
        """Return exactly one JudgeResult per judge, in judge order."""
        outcomes = await self.evaluate_outcomes(project_name, formatted_project, judges)
        return results_of(outcomes)

    async def evaluate_outcomes(
        self,
        project_name: str,
        formatted_project: str,
        judges: List[Judge]
    ) -> List[Outcome]:
        """Same as ``evaluate`` but keeps the Ok/Fallback distinction."""
        start_time = time.time()
        self.logger.info(
            "Starting judge panel",
            project_name=project_name,
            judge_count=len(judges)
        )

        tasks = [
            self._evaluate_with_judge(judge, project_name, formatted_project)
            for judge in judges
        ]
        gathered = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: List[Outcome] = []
        for judge, item in zip(judges, gathered):
            if isinstance(item, BaseException):
                outcomes.append(self.validator.fallback(judge, project_name, repr(item)))
            else:
                outcomes.append(item)

        fallback_count = sum(1 for outcome in outcomes if isinstance(outcome, Fallback))
        duration = time.time() - start_time
        log_performance(
            "judge_panel",
            duration,
            project_name=project_name,
            judge_count=len(judges),
            fallback_count=fallback_count
        )
        self.logger.info(
            "Judge panel completed",
            project_name=project_name,
            fallback_count=fallback_count,
            duration_seconds=round(duration, 3)
        )
        return outcomes

    def build_prompt(self, judge: Judge, formatted_project: str) -> str:
        """Judge template + budgeted project text + response format."""
        prefix = judge_prompt_prefix(judge.prompt)
        budgeted = self.budgeter.build(
            prefix, JUDGE_RESPONSE_FORMAT, formatted_project, self.max_prompt_bytes
        )
        if budgeted.truncated:
            self.logger.warning(
                "Project data truncated for judge",
                judge_id=judge.id,
                original_bytes=budgeted.original_bytes
            )
        return budgeted.text

    async def _evaluate_with_judge(
        self,
        judge: Judge,
        project_name: str,
        formatted_project: str
    ) -> Outcome:
        try:
            prompt = self.build_prompt(judge, formatted_project)
            try:
                raw = await self.llm_utils.call_llm_with_json_response(prompt)
            except asyncio.TimeoutError as e:
                raise TransientEvaluationError("Judge call timed out", judge_id=judge.id) from e
            except ValueError as e:
                raise TransientEvaluationError(f"Unparsable judge response: {e}", judge_id=judge.id) from e
            outcome: Outcome = self.validator.ok(raw, judge)

        except Exception as e:
            self.logger.error(
                "Judge evaluation failed, using fallback",
                judge_id=judge.id,
                judge_name=judge.name,
                project_name=project_name,
                error=str(e),
                error_type=type(e).__name__
            )
            outcome = self.validator.fallback(judge, project_name, f"{type(e).__name__}: {e}")

        log_judge_outcome(
            judge.id,
            project_name,
            outcome.result.score,
            isinstance(outcome, Fallback)
        )
        return outcome
