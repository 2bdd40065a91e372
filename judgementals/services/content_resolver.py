"""
Storage Content Resolver

Projects uploaded through the share link keep large files in object storage
and only carry a download URL. Before formatting, those files are fetched so
the formatter can stay a pure function of inline content.
"""

from typing import Optional

import aiohttp
import structlog

from ..models.project_models import Project, ProjectFile

logger = structlog.get_logger(__name__)

DOWNLOAD_ERROR_PLACEHOLDER = "[Error: Could not download file content]"


class StorageContentResolver:
    """Downloads ``storage_url`` contents into inline file content."""

    def __init__(self, timeout: int = 30, session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            timeout: Total timeout per download in seconds
            session: Optional shared client session; one is created per call otherwise
        """
        self.timeout = timeout
        self.session = session
        self.logger = logger.bind(component="StorageContentResolver")

    async def resolve(self, project: Project) -> Project:
        """Return a copy of the project whose stored files carry inline content."""
        if not any(f.is_external for f in project.files):
            return project

        if self.session is not None:
            files = [await self._resolve_file(self.session, f) for f in project.files]
        else:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                files = [await self._resolve_file(session, f) for f in project.files]

        return project.model_copy(update={"files": files})

    async def _resolve_file(self, session: aiohttp.ClientSession, project_file: ProjectFile) -> ProjectFile:
        if not project_file.is_external:
            return project_file

        content = await self.download(session, project_file.storage_url)
        return project_file.model_copy(update={"content": content})

    async def download(self, session: aiohttp.ClientSession, storage_url: str) -> str:
        """Fetch text content; any failure yields a placeholder instead."""
        try:
            async with session.get(storage_url) as response:
                if response.status != 200:
                    raise aiohttp.ClientResponseError(
                        response.request_info,
                        response.history,
                        status=response.status,
                        message=f"Failed to download file: {response.status}"
                    )
                return await response.text(errors="replace")

        except Exception as e:
            self.logger.error(
                "Error downloading file from storage",
                storage_url=storage_url,
                error=str(e),
                error_type=type(e).__name__
            )
            return DOWNLOAD_ERROR_PLACEHOLDER
