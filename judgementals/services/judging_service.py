"""
Judging Service

End-to-end judging pipeline: for each project, resolve stored file content,
format it, run the judge panel; then let the master judge rank everything.

Projects are evaluated one after another, judges within a project run
concurrently. The pipeline always finishes with one ranked evaluation per
project, whatever fails along the way.
"""

import inspect
import time
from typing import Any, Callable, List, Optional

import structlog

from ..agents.components.llm_utils import LLMUtils
from ..agents.components.project_formatter import ProjectFormatter
from ..agents.components.prompt_budgeter import PromptBudgeter
from ..agents.components.result_validator import ResultValidator
from ..agents.judge.master_ranker import MasterRanker
from ..agents.judge.panel import JudgePanel
from ..exceptions import CriticalPipelineError
from ..models.config_models import SystemConfig
from ..models.evaluation_models import Judge, JudgeResult, ProjectEvaluation
from ..models.project_models import Project
from ..utils.logging_config import log_error, log_performance
from .content_resolver import StorageContentResolver

logger = structlog.get_logger(__name__)

SYSTEM_FALLBACK_JUDGE_ID = "fallback"
SYSTEM_FALLBACK_JUDGE_NAME = "System Fallback"

EvaluationCallback = Callable[[ProjectEvaluation], Any]
RankingCallback = Callable[[List[ProjectEvaluation]], Any]


async def _notify(callback: Optional[Callable], *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def project_error_evaluation(project_name: str, judges: List[Judge]) -> ProjectEvaluation:
    """Evaluation used when a project could not be formatted or judged at all."""
    return ProjectEvaluation(
        project_name=project_name,
        judge_results=[
            JudgeResult(
                judge_id=judge.id,
                judge_name=judge.name,
                summary=f"Error processing project {project_name}. Unable to complete evaluation.",
                score=3,
                likes=["Project was submitted"],
                dislikes=[
                    "Evaluation failed due to processing error",
                    "Technical issues prevented analysis",
                ],
            )
            for judge in judges
        ],
    )


def placeholder_evaluation(project_name: str) -> ProjectEvaluation:
    """Single system-fallback result used after a critical pipeline failure."""
    return ProjectEvaluation(
        project_name=project_name,
        judge_results=[
            JudgeResult(
                judge_id=SYSTEM_FALLBACK_JUDGE_ID,
                judge_name=SYSTEM_FALLBACK_JUDGE_NAME,
                summary=(
                    "Critical system error prevented normal evaluation. "
                    "This is a placeholder result."
                ),
                score=5,
                likes=["Project was submitted for evaluation"],
                dislikes=["System error prevented detailed analysis"],
            )
        ],
    )


class JudgingService:
    """
    Orchestrates the judge panel and the master ranker over a batch.

    Collaborators are injectable; by default they are built from
    ``SystemConfig`` around the given completion service.
    """

    def __init__(
        self,
        completion_service,
        config: Optional[SystemConfig] = None,
        content_resolver: Optional[StorageContentResolver] = None,
        formatter: Optional[ProjectFormatter] = None,
        panel: Optional[JudgePanel] = None,
        ranker: Optional[MasterRanker] = None
    ):
        self.config = config or SystemConfig()
        self.llm_utils = LLMUtils(
            completion_service,
            seed=self.config.judge_seed,
            timeout_seconds=self.config.judge_timeout_seconds
        )
        self.content_resolver = content_resolver or StorageContentResolver()
        self.formatter = formatter or ProjectFormatter(
            max_project_bytes=self.config.max_project_bytes,
            max_file_chars=self.config.max_file_chars
        )
        self.panel = panel or JudgePanel(
            self.llm_utils,
            budgeter=PromptBudgeter(),
            validator=ResultValidator(),
            max_prompt_bytes=self.config.max_prompt_bytes
        )
        self.ranker = ranker or MasterRanker(
            self.llm_utils,
            max_prompt_bytes=self.config.max_prompt_bytes
        )
        self.logger = logger.bind(component="JudgingService")

    async def evaluate_project(self, project: Project, judges: List[Judge]) -> ProjectEvaluation:
        """Resolve, format and judge one project."""
        resolved = await self.content_resolver.resolve(project)
        formatted = self.formatter.format(resolved)
        results = await self.panel.evaluate(project.name, formatted, judges)
        return ProjectEvaluation(project_name=project.name, judge_results=results)

    async def run(
        self,
        projects: List[Project],
        judges: List[Judge],
        on_evaluation: Optional[EvaluationCallback] = None,
        on_ranked: Optional[RankingCallback] = None
    ) -> List[ProjectEvaluation]:
        """
        Judge every project and rank the batch.

        Args:
            projects: Projects to evaluate, in insertion order
            judges: Judge panel
            on_evaluation: Called (and awaited if async) after each project
            on_ranked: Called (and awaited if async) with the ranked batch

        Returns:
            One evaluation per project, sorted by final rank 1..N
        """
        start_time = time.time()
        evaluations: List[ProjectEvaluation] = []

        self.logger.info(
            "Starting judging process",
            project_count=len(projects),
            judge_count=len(judges)
        )

        try:
            for project in projects:
                try:
                    evaluation = await self.evaluate_project(project, judges)
                except Exception as e:
                    self.logger.error(
                        "Error processing project, using error evaluation",
                        project_name=project.name,
                        error=str(e),
                        error_type=type(e).__name__
                    )
                    evaluation = project_error_evaluation(project.name, judges)

                evaluations.append(evaluation)
                await _notify(on_evaluation, evaluation)

            self.logger.info("Completed individual evaluations, starting master judge ranking")
            ranked = await self.ranker.rank(evaluations)
            await _notify(on_ranked, ranked)

        except Exception as e:
            error = CriticalPipelineError(f"Critical error in judging process: {e}")
            log_error(error, {"project_count": len(projects), "evaluated": len(evaluations)})
            self.logger.error(
                "Critical error in judging process, synthesising placeholder results",
                error=str(e),
                error_type=type(e).__name__
            )
            ranked = self.critical_fallback(projects, evaluations)

        log_performance(
            "judging_run",
            time.time() - start_time,
            project_count=len(projects),
            judge_count=len(judges)
        )
        self.logger.info("Judging process completed", project_count=len(ranked))
        return ranked

    def critical_fallback(
        self,
        projects: List[Project],
        completed: List[ProjectEvaluation]
    ) -> List[ProjectEvaluation]:
        """
        Complete result set after an escaped exception.

        Evaluations that finished are kept; every other project gets a
        placeholder. Ranks follow project insertion order.
        """
        by_name = {evaluation.project_name: evaluation for evaluation in completed}
        evaluations = [
            by_name.get(project.name) or placeholder_evaluation(project.name)
            for project in projects
        ]
        for position, evaluation in enumerate(evaluations):
            evaluation.final_rank = position + 1
        return evaluations
