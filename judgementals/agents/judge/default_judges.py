"""
Default judge panel used when a session has not configured its own judges.
"""

from typing import List

from ...models.evaluation_models import Judge

_DEFAULT_JUDGES = [
    Judge(
        id="technical",
        name="Technical Excellence Judge",
        description=(
            "Software engineering expert focused on architecture, code quality, "
            "performance, security and testing practices."
        ),
        prompt=(
            "You are a technical expert evaluating hackathon projects with deep expertise "
            "in software engineering fundamentals. Assess architecture, code quality, "
            "correctness, performance, security and test coverage. Reward working, "
            "well-structured implementations over ambitious but unfinished ones."
        ),
    ),
    Judge(
        id="product",
        name="Product & Impact Judge",
        description=(
            "Product strategist focused on problem definition, user value, "
            "feasibility and potential impact."
        ),
        prompt=(
            "You are a product expert evaluating hackathon projects. Assess how clearly "
            "the problem is defined, who the users are, how much value the solution "
            "delivers and whether it could realistically be adopted."
        ),
    ),
    Judge(
        id="design",
        name="User Experience Judge",
        description=(
            "Designer focused on usability, accessibility, presentation and "
            "documentation quality."
        ),
        prompt=(
            "You are a user experience expert evaluating hackathon projects. Assess "
            "usability, accessibility, visual and interaction design, onboarding and "
            "the quality of the documentation a new user would read first."
        ),
    ),
]


def default_judges() -> List[Judge]:
    """Fresh copies of the default panel."""
    return [judge.model_copy(deep=True) for judge in _DEFAULT_JUDGES]
