"""
Models Module

Data models shared across the judging pipeline and session services.
"""

from .project_models import Project, ProjectFile
from .evaluation_models import Judge, JudgeResult, ProjectEvaluation
from .session_models import SessionState, SESSION_COLLECTION, now_ms
from .config_models import SystemConfig

__all__ = [
    "Project",
    "ProjectFile",
    "Judge",
    "JudgeResult",
    "ProjectEvaluation",
    "SessionState",
    "SESSION_COLLECTION",
    "now_ms",
    "SystemConfig",
]
