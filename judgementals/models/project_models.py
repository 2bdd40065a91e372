"""
Project Models for Judgementals

Pydantic models for submitted projects and their files. Field aliases match
the camelCase document shape stored in the session collection.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProjectFile(BaseModel):
    """A single submitted file, either inline or stored externally."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., description="File name as uploaded")
    path: str = Field(default="", description="Relative path inside the project")
    type: str = Field(default="application/octet-stream", description="MIME-like content type")
    size: int = Field(default=0, ge=0, description="File size in bytes")
    content: Optional[str] = Field(default=None, description="Inline file content")
    storage_url: Optional[str] = Field(default=None, alias="storageUrl", description="Download URL for stored content")
    storage_path: Optional[str] = Field(default=None, alias="storagePath", description="Storage bucket path")

    @property
    def display_path(self) -> str:
        return self.path or self.name

    @property
    def is_external(self) -> bool:
        """True when the content has to be fetched from storage."""
        return self.content is None and self.storage_url is not None


class Project(BaseModel):
    """A submission identified by its name within a session."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Project name, unique within a session")
    files: List[ProjectFile] = Field(default_factory=list, description="Ordered project files")
    dropped_summary: Optional[List[str]] = Field(
        default=None,
        alias="droppedSummary",
        description="Ingestion notes about files that were filtered out"
    )
