"""
Tests for StorageContentResolver with a stubbed aiohttp session.
"""

import aiohttp
import pytest

from judgementals.models.project_models import Project, ProjectFile
from judgementals.services.content_resolver import (
    DOWNLOAD_ERROR_PLACEHOLDER,
    StorageContentResolver,
)


class FakeResponse:
    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        self.request_info = None
        self.history = ()

    async def text(self, errors="strict"):
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    def get(self, url):
        self.requested.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def stored_file(name: str, url: str) -> ProjectFile:
    return ProjectFile(name=name, type="text/plain", size=100, storage_url=url)


@pytest.mark.asyncio
class TestStorageContentResolver:

    async def test_inline_project_is_returned_unchanged(self, small_project):
        resolver = StorageContentResolver(session=FakeSession({}))
        assert await resolver.resolve(small_project) is small_project

    async def test_stored_files_are_downloaded(self):
        session = FakeSession({"https://store/a.txt": FakeResponse(200, "downloaded text")})
        project = Project(
            name="P",
            files=[
                ProjectFile(name="inline.md", type="text/markdown", content="inline"),
                stored_file("a.txt", "https://store/a.txt"),
            ],
        )

        resolved = await StorageContentResolver(session=session).resolve(project)

        assert resolved.files[0].content == "inline"
        assert resolved.files[1].content == "downloaded text"
        assert project.files[1].content is None
        assert session.requested == ["https://store/a.txt"]

    async def test_http_error_becomes_placeholder(self):
        session = FakeSession({"https://store/a.txt": FakeResponse(404, "not found")})
        project = Project(name="P", files=[stored_file("a.txt", "https://store/a.txt")])

        resolved = await StorageContentResolver(session=session).resolve(project)

        assert resolved.files[0].content == DOWNLOAD_ERROR_PLACEHOLDER

    async def test_connection_error_becomes_placeholder(self):
        session = FakeSession({"https://store/a.txt": aiohttp.ClientConnectionError("refused")})
        project = Project(name="P", files=[stored_file("a.txt", "https://store/a.txt")])

        resolved = await StorageContentResolver(session=session).resolve(project)

        assert resolved.files[0].content == DOWNLOAD_ERROR_PLACEHOLDER
