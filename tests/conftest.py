"""
Shared fixtures for the Judgementals test suite.
"""

import json
from typing import Callable, List, Union

import pytest

from judgementals.models.evaluation_models import Judge, JudgeResult, ProjectEvaluation
from judgementals.models.project_models import Project, ProjectFile
from judgementals.services.completion_service import CompletionResponse


class ScriptedCompletionService:
    """
    Completion service double.

    ``responder`` maps a prompt to response text, or to an exception that the
    call should raise.
    """

    def __init__(self, responder: Callable[[str], Union[str, BaseException]]):
        self.responder = responder
        self.calls: List[tuple] = []

    async def complete(self, prompt: str, seed: int) -> CompletionResponse:
        self.calls.append((prompt, seed))
        result = self.responder(prompt)
        if isinstance(result, BaseException):
            raise result
        return CompletionResponse(text=result)


def judge_json(score=8, summary="Solid work", likes=None, dislikes=None) -> str:
    return json.dumps({
        "summary": summary,
        "score": score,
        "likes": likes if likes is not None else ["Clean code"],
        "dislikes": dislikes if dislikes is not None else ["Few tests"],
    })


def make_evaluation(project_name: str, scores: List[int]) -> ProjectEvaluation:
    return ProjectEvaluation(
        project_name=project_name,
        judge_results=[
            JudgeResult(
                judge_id=f"j{index}",
                judge_name=f"Judge {index}",
                summary="summary",
                score=score,
                likes=["like"],
                dislikes=["dislike"],
            )
            for index, score in enumerate(scores)
        ],
    )


@pytest.fixture
def judges() -> List[Judge]:
    """Three judges, as in a typical panel."""
    return [
        Judge(id="tech", name="Tech Judge", prompt="Evaluate the technical quality."),
        Judge(id="product", name="Product Judge", prompt="Evaluate the product value."),
        Judge(id="design", name="Design Judge", prompt="Evaluate the user experience."),
    ]


@pytest.fixture
def small_project() -> Project:
    return Project(
        name="Alpha",
        files=[
            ProjectFile(name="app.py", type="text/x-python", size=20, content="print('hello alpha')"),
            ProjectFile(name="README.md", type="text/markdown", size=12, content="# Alpha app"),
        ],
    )


@pytest.fixture
def projects() -> List[Project]:
    return [
        Project(
            name=name,
            files=[ProjectFile(name="README.md", type="text/markdown", size=10, content=f"# {name}")],
        )
        for name in ("Alpha", "Beta", "Gamma")
    ]
