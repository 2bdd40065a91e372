"""
Session Models for Judgementals

The persisted judging session. Timestamps are epoch milliseconds, matching the
documents written by the upload collaborators.
"""

import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .evaluation_models import Judge, ProjectEvaluation
from .project_models import Project

SESSION_COLLECTION = "sessions"
DEFAULT_SESSION_NAME = "Untitled Project"


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class SessionState(BaseModel):
    """
    One judging session.

    ``projects`` is co-owned with external uploaders and is always merged on
    save. ``judges`` and ``evaluations`` are owned by the local session.
    The two share-upload flags are UI state: ``None`` means the local side has
    never set them and the remote value should be kept.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = DEFAULT_SESSION_NAME
    projects: List[Project] = Field(default_factory=list)
    judges: List[Judge] = Field(default_factory=list)
    evaluations: List[ProjectEvaluation] = Field(default_factory=list)
    created_at: Optional[int] = Field(default=None, alias="createdAt")
    updated_at: Optional[int] = Field(default=None, alias="updatedAt")
    expires_at: Optional[int] = Field(default=None, alias="expiresAt")
    share_upload_url_generated: Optional[bool] = Field(default=None, alias="shareUploadUrlGenerated")
    share_upload_section_expanded: Optional[bool] = Field(default=None, alias="shareUploadSectionExpanded")

    def is_empty(self) -> bool:
        return not self.projects and not self.judges and not self.evaluations

    def is_expired(self, at_ms: Optional[int] = None) -> bool:
        if self.expires_at is None:
            return False
        return (at_ms if at_ms is not None else now_ms()) > self.expires_at

    def project_names(self) -> List[str]:
        return [project.name for project in self.projects]

    def to_document(self) -> Dict[str, Any]:
        """Serialise to the camelCase document stored in the session collection."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "SessionState":
        """Create from a stored document, tolerating missing list fields."""
        data = dict(data)
        for key in ("projects", "judges", "evaluations"):
            if data.get(key) is None:
                data[key] = []
        return cls.model_validate(data)
