"""
Agents Module

AI judges for Judgementals and the components they share.
"""

from .judge import JudgePanel, MasterRanker, default_judges

__all__ = [
    "JudgePanel",
    "MasterRanker",
    "default_judges",
]
