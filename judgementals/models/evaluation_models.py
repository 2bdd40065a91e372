"""
Evaluation Models for Judgementals

Judges, their per-project results and the aggregated project evaluation.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Judge(BaseModel):
    """A configured judge persona."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Unique judge identifier")
    name: str = Field(..., description="Display name")
    description: str = Field(default="", description="Profile text describing the judge's expertise")
    prompt: str = Field(..., description="Evaluation prompt template")


class JudgeResult(BaseModel):
    """One judge's evaluation of one project. Always present, real or fallback."""

    model_config = ConfigDict(populate_by_name=True)

    judge_id: str = Field(..., alias="judgeId")
    judge_name: str = Field(..., alias="judgeName")
    summary: str = Field(..., description="Free text analysis")
    score: int = Field(..., ge=1, le=10, description="Score from 1 to 10")
    likes: List[str] = Field(default_factory=list)
    dislikes: List[str] = Field(default_factory=list)


class ProjectEvaluation(BaseModel):
    """All judge results for one project plus its final rank."""

    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field(..., alias="projectName")
    judge_results: List[JudgeResult] = Field(default_factory=list, alias="judgeResults")
    final_rank: Optional[int] = Field(default=None, alias="finalRank")

    def valid_scores(self) -> List[int]:
        """Scores that fall inside the 1..10 range."""
        return [
            result.score for result in self.judge_results
            if isinstance(result.score, int) and not isinstance(result.score, bool)
            and 1 <= result.score <= 10
        ]

    def mean_score(self) -> float:
        """Mean of the valid scores, 0 when there are none."""
        scores = self.valid_scores()
        if not scores:
            return 0.0
        return sum(scores) / len(scores)
