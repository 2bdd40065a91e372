"""
Prompt text for the judge panel and the master judge.
"""

from typing import List

from ...models.evaluation_models import ProjectEvaluation

JUDGE_PROJECT_HEADER = "\n\nProject to evaluate:\n"

JUDGE_RESPONSE_FORMAT = """

Please provide your evaluation in the following JSON format:
{
    "summary": "Your detailed analysis and reasoning",
    "score": <number from 1-10>,
    "likes": ["positive aspect 1", "positive aspect 2", ...],
    "dislikes": ["negative aspect 1", "negative aspect 2", ...]
}"""

MASTER_JUDGE_PREFIX = """You are the master judge for a hackathon. Below are the evaluations from individual judges for each project. Your task is to provide a final relative ranking of all projects based on these evaluations.

Project Evaluations:
"""

MASTER_JUDGE_SUFFIX = """

Please provide a final ranking in JSON format:
{
    "rankings": [
        {"projectName": "Project Name", "rank": 1, "reasoning": "Why this project ranked here"},
        ...
    ]
}"""

EVALUATIONS_TRUNCATION_MARKER = "\n\n... [EVALUATIONS TRUNCATED DUE TO SIZE LIMITS] ..."


def judge_prompt_prefix(judge_prompt: str) -> str:
    return f"{judge_prompt}{JUDGE_PROJECT_HEADER}"


def format_evaluations(evaluations: List[ProjectEvaluation]) -> str:
    """Serialise every evaluation for the master judge."""
    blocks = []
    for evaluation in evaluations:
        lines = [f"Project: {evaluation.project_name}", "Judge Evaluations:"]
        for result in evaluation.judge_results:
            lines.extend([
                f"- {result.judge_name} (Score: {result.score}/10)",
                f"  Summary: {result.summary}",
                f"  Likes: {', '.join(result.likes)}",
                f"  Dislikes: {', '.join(result.dislikes)}",
            ])
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
