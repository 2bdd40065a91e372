"""
Judge Components

Building blocks shared by the judge panel and the master ranker:
- ProjectFormatter: bounded project serialization
- PromptBudgeter: deterministic prompt truncation
- ResultValidator: normalisation of raw judge output
- LLMUtils: completion calls and JSON parsing
"""

from .project_formatter import ProjectFormatter
from .prompt_budgeter import PromptBudgeter
from .result_validator import ResultValidator, Ok, Fallback, Outcome
from .llm_utils import LLMUtils

__all__ = [
    'ProjectFormatter',
    'PromptBudgeter',
    'ResultValidator',
    'Ok',
    'Fallback',
    'Outcome',
    'LLMUtils',
]
