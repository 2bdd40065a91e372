"""
Project Formatter

Renders a project's files into a single bounded text blob for a judge prompt.
Important files (README, entry points, config) come first so that they survive
when the project is too large to include in full.
"""

from typing import List

import structlog

from ...models.project_models import Project, ProjectFile
from .prompt_budgeter import byte_length, slice_bytes

logger = structlog.get_logger(__name__)

DEFAULT_MAX_PROJECT_BYTES = 7 * 1024 * 1024
DEFAULT_MAX_FILE_CHARS = 50000

FILE_TRUNCATION_MARKER = "\n... [FILE TRUNCATED - TOO LARGE] ...\n"
MISSING_CONTENT_PLACEHOLDER = "[Error: No content or storage URL available]"

TEXT_MIME_TYPES = {"application/json"}
TEXT_EXTENSIONS = (".js", ".ts", ".py", ".html", ".css", ".md")
SOURCE_EXTENSIONS = (".py", ".js", ".ts")


def file_priority(filename: str) -> int:
    """Lower is more important."""
    name = filename.lower()
    if "readme" in name:
        return 1
    if "main" in name or "index" in name:
        return 2
    if "config" in name or "package.json" in name:
        return 3
    if name.endswith(".md"):
        return 4
    if name.endswith(SOURCE_EXTENSIONS):
        return 5
    return 10


def is_text_file(project_file: ProjectFile) -> bool:
    return (
        project_file.type.startswith("text/")
        or project_file.type in TEXT_MIME_TYPES
        or project_file.name.endswith(TEXT_EXTENSIONS)
    )


def omitted_files_marker(count: int) -> str:
    return f"\n... [{count} files not included due to size limits] ...\n"


class ProjectFormatter:
    """
    Pure formatter from ``Project`` to prompt text.

    The output never exceeds ``max_project_bytes``. Whole files are appended in
    priority order until the next one would not fit; the remaining files are
    reported in a trailing marker.
    """

    def __init__(
        self,
        max_project_bytes: int = DEFAULT_MAX_PROJECT_BYTES,
        max_file_chars: int = DEFAULT_MAX_FILE_CHARS
    ):
        self.max_project_bytes = max_project_bytes
        self.max_file_chars = max_file_chars

    def format(self, project: Project) -> str:
        """Render the project, truncating to the configured ceiling."""
        header = self._render_header(project)
        ordered = self.sort_files(project.files)
        sections = [self._render_file(f) for f in ordered]

        full = header + "".join(sections)
        if byte_length(full) <= self.max_project_bytes:
            return full

        # Keep room for the widest possible trailer
        reserve = byte_length(omitted_files_marker(len(sections)))
        limit = self.max_project_bytes - reserve

        parts = [header]
        current = byte_length(header)
        omitted = len(sections)
        for index, section in enumerate(sections):
            section_bytes = byte_length(section)
            if current + section_bytes > limit:
                omitted = len(sections) - index
                break
            parts.append(section)
            current += section_bytes

        parts.append(omitted_files_marker(omitted))
        formatted = "".join(parts)

        logger.info(
            "Project formatted with omitted files",
            project_name=project.name,
            total_files=len(sections),
            omitted_files=omitted,
            formatted_bytes=byte_length(formatted)
        )

        # Only reachable when the header alone overflows the ceiling
        return slice_bytes(formatted, self.max_project_bytes)

    def sort_files(self, files: List[ProjectFile]) -> List[ProjectFile]:
        """Stable sort by priority; ties keep their original order."""
        return sorted(files, key=lambda f: file_priority(f.name))

    def _render_header(self, project: Project) -> str:
        return f"Project: {project.name}\n\nFiles and Contents:\n\n"

    def _render_file(self, project_file: ProjectFile) -> str:
        section = f"--- {project_file.display_path} ({project_file.type}) ---\n"

        if not is_text_file(project_file):
            return section + f"[Binary file - {project_file.type}, {project_file.size} bytes]\n\n"

        content = project_file.content
        if content is None:
            content = MISSING_CONTENT_PLACEHOLDER

        if len(content) > self.max_file_chars:
            content = content[:self.max_file_chars] + FILE_TRUNCATION_MARKER

        return section + content + "\n\n"
