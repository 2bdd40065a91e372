"""
Judge Agents

- JudgePanel: concurrent per-project evaluation by every judge
- MasterRanker: cross-project ranking with deterministic fallbacks
"""

from .panel import JudgePanel
from .master_ranker import MasterRanker
from .default_judges import default_judges

__all__ = [
    'JudgePanel',
    'MasterRanker',
    'default_judges',
]
