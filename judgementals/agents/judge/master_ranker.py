"""
Master Ranker

Asks a distinguished master judge for a holistic ranking across all evaluated
projects. Whatever happens to that call, every evaluation leaves with a
``final_rank`` and the ranks form a permutation of 1..N.
"""

import asyncio
import math
from typing import Any, Dict, List, Optional

import structlog

from ...exceptions import TransientRankingError
from ...models.evaluation_models import ProjectEvaluation
from ..components.llm_utils import LLMUtils
from ..components.prompt_budgeter import PromptBudgeter
from .panel import DEFAULT_MAX_PROMPT_BYTES
from .prompts import (
    EVALUATIONS_TRUNCATION_MARKER,
    MASTER_JUDGE_PREFIX,
    MASTER_JUDGE_SUFFIX,
    format_evaluations,
)

logger = structlog.get_logger(__name__)


class MasterRanker:
    """
    Final ranking phase.

    Tier 1: the master judge's ``{"rankings": [...]}`` response.
    Tier 2: mean valid judge score, descending, stable on ties.
    Tier 3: insertion order.
    """

    def __init__(
        self,
        llm_utils: LLMUtils,
        budgeter: Optional[PromptBudgeter] = None,
        max_prompt_bytes: int = DEFAULT_MAX_PROMPT_BYTES
    ):
        self.llm_utils = llm_utils
        self.budgeter = budgeter or PromptBudgeter(EVALUATIONS_TRUNCATION_MARKER)
        self.max_prompt_bytes = max_prompt_bytes
        self.logger = logger.bind(component="MasterRanker")

    async def rank(self, evaluations: List[ProjectEvaluation]) -> List[ProjectEvaluation]:
        """
        Assign final ranks and return the evaluations sorted by rank.

        Never raises; ranking failures fall through to the deterministic tiers.
        """
        if not evaluations:
            return []

        try:
            parsed = await self._request_rankings(evaluations)
            ranked = self.apply_rankings(evaluations, parsed)
            self.logger.info("Master judge ranking applied", project_count=len(ranked))
            return ranked

        except Exception as e:
            self.logger.error(
                "Master judge ranking failed, using fallback ranking by average score",
                error=str(e),
                error_type=type(e).__name__
            )

        try:
            return self.fallback_rank(evaluations)
        except Exception as e:
            self.logger.error(
                "Fallback ranking failed, using project order",
                error=str(e),
                error_type=type(e).__name__
            )
            return self.insertion_order_rank(evaluations)

    def build_prompt(self, evaluations: List[ProjectEvaluation]) -> str:
        body = format_evaluations(evaluations)
        return self.budgeter.build(
            MASTER_JUDGE_PREFIX, MASTER_JUDGE_SUFFIX, body, self.max_prompt_bytes
        ).text

    async def _request_rankings(self, evaluations: List[ProjectEvaluation]) -> Any:
        prompt = self.build_prompt(evaluations)
        try:
            return await self.llm_utils.call_llm_with_json_response(prompt)
        except asyncio.TimeoutError as e:
            raise TransientRankingError("Master judge call timed out") from e
        except ValueError as e:
            raise TransientRankingError(f"Unparsable master judge response: {e}") from e

    def apply_rankings(
        self,
        evaluations: List[ProjectEvaluation],
        parsed: Any
    ) -> List[ProjectEvaluation]:
        """
        Apply a master judge response.

        Proposed ranks only decide the order: evaluations are renumbered 1..N,
        with projects the response did not mention placed last in their
        original order.

        Raises:
            TransientRankingError: If the response has no usable rankings
        """
        if not isinstance(parsed, dict) or not isinstance(parsed.get("rankings"), list):
            raise TransientRankingError("Invalid master evaluation response structure")

        known = {evaluation.project_name for evaluation in evaluations}
        proposed: Dict[str, float] = {}
        for entry in parsed["rankings"]:
            if not isinstance(entry, dict):
                continue
            name = entry.get("projectName")
            rank = entry.get("rank")
            if name in known and isinstance(rank, (int, float)) and not isinstance(rank, bool):
                if math.isfinite(rank):
                    proposed[name] = rank

        if not proposed:
            raise TransientRankingError("Master evaluation ranked none of the projects")

        ordered = sorted(
            evaluations,
            key=lambda evaluation: proposed.get(evaluation.project_name, math.inf)
        )
        return self._assign_positions(ordered)

    def fallback_rank(self, evaluations: List[ProjectEvaluation]) -> List[ProjectEvaluation]:
        """Rank by mean valid score, highest first; ties keep original order."""
        ordered = sorted(evaluations, key=lambda evaluation: -evaluation.mean_score())
        ranked = self._assign_positions(ordered)
        self.logger.info(
            "Fallback ranking applied",
            ranking=[(e.project_name, e.final_rank) for e in ranked]
        )
        return ranked

    def insertion_order_rank(self, evaluations: List[ProjectEvaluation]) -> List[ProjectEvaluation]:
        return self._assign_positions(list(evaluations))

    @staticmethod
    def _assign_positions(ordered: List[ProjectEvaluation]) -> List[ProjectEvaluation]:
        for position, evaluation in enumerate(ordered):
            evaluation.final_rank = position + 1
        return ordered
