"""
Tests for SessionMerger.

The merge-update path must never lose projects added by other writers.
"""

import asyncio

import pytest

from judgementals.exceptions import SessionExpiredError, SessionNotFoundError
from judgementals.models.project_models import Project, ProjectFile
from judgementals.models.session_models import SESSION_COLLECTION, SessionState
from judgementals.services.document_store import InMemoryDocumentStore
from judgementals.services.session_merger import SessionMerger, merge_projects

from conftest import make_evaluation

DAY_MS = 24 * 60 * 60 * 1000


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


class GatedDocumentStore(InMemoryDocumentStore):
    """Holds ``set`` open until the test releases ``gate``."""

    def __init__(self):
        super().__init__()
        self.gate = None
        self.entered = asyncio.Event()

    async def set(self, collection, doc_id, data):
        if self.gate is not None:
            self.entered.set()
            await self.gate.wait()
        await super().set(collection, doc_id, data)


def project(name: str, content: str = "x") -> Project:
    return Project(name=name, files=[ProjectFile(name="README.md", type="text/markdown", content=content)])


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def merger(store, clock):
    return SessionMerger(store, clock=clock)


class TestMergeProjects:

    def test_union_with_local_winning(self):
        merged = merge_projects(
            [project("A", "remote"), project("B", "remote")],
            [project("B", "local"), project("C", "local")],
        )
        assert [p.name for p in merged] == ["A", "B", "C"]
        assert merged[1].files[0].content == "local"

    def test_empty_sides(self):
        assert merge_projects([], []) == []
        assert [p.name for p in merge_projects([project("A")], [])] == ["A"]


@pytest.mark.asyncio
class TestSessionMerger:

    async def test_create_sets_timestamps_and_expiry(self, merger, store, clock):
        session = SessionState(id="s1", projects=[project("A")])
        await merger.create(session)

        document = await store.get(SESSION_COLLECTION, "s1")
        assert document["createdAt"] == clock.now
        assert document["updatedAt"] == clock.now
        assert document["expiresAt"] == clock.now + 7 * DAY_MS
        assert document["shareUploadUrlGenerated"] is False
        assert session.expires_at == clock.now + 7 * DAY_MS

    async def test_save_keeps_external_projects(self, merger, store, judges):
        # Local session holds {A, B}; an uploader appended C to the stored copy
        session = SessionState(id="s1", projects=[project("A"), project("B")], judges=judges)
        await merger.create(session)

        document = await store.get(SESSION_COLLECTION, "s1")
        document["projects"].append(project("C").model_dump(by_alias=True, mode="json"))
        await store.set(SESSION_COLLECTION, "s1", document)

        session.evaluations = [make_evaluation("A", [7])]
        await merger.save(session)

        stored = SessionState.from_document(await store.get(SESSION_COLLECTION, "s1"))
        assert stored.project_names() == ["A", "B", "C"]
        assert [e.project_name for e in stored.evaluations] == ["A"]
        assert [j.id for j in stored.judges] == [j.id for j in judges]
        assert session.project_names() == ["A", "B", "C"]

    async def test_save_keeps_project_added_during_write(self, clock):
        store = GatedDocumentStore()
        merger = SessionMerger(store, clock=clock)
        session = SessionState(id="s1", projects=[project("A")])
        await merger.create(session)

        document = await store.get(SESSION_COLLECTION, "s1")
        document["projects"].append(project("B").model_dump(by_alias=True, mode="json"))
        await store.set(SESSION_COLLECTION, "s1", document)

        store.gate = asyncio.Event()
        save_task = asyncio.create_task(merger.save(session))
        await store.entered.wait()

        session.projects = session.projects + [project("C")]
        store.gate.set()
        await save_task

        assert session.project_names() == ["A", "B", "C"]
        stored = SessionState.from_document(await store.get(SESSION_COLLECTION, "s1"))
        assert stored.project_names() == ["A", "B"]

    async def test_save_is_monotonic_for_projects(self, merger, store):
        session = SessionState(id="s1", projects=[project("A"), project("B")])
        await merger.create(session)

        session.projects = [project("A")]
        await merger.save(session)

        stored = SessionState.from_document(await store.get(SESSION_COLLECTION, "s1"))
        assert set(stored.project_names()) == {"A", "B"}

    async def test_save_preserves_created_and_expiry(self, merger, store, clock):
        session = SessionState(id="s1")
        await merger.create(session)
        created_at = session.created_at
        expires_at = session.expires_at

        clock.now += 1000
        await merger.save(session)

        document = await store.get(SESSION_COLLECTION, "s1")
        assert document["createdAt"] == created_at
        assert document["expiresAt"] == expires_at
        assert document["updatedAt"] == clock.now

    async def test_save_keeps_remote_flags_when_unset_locally(self, merger, store):
        await store.set(SESSION_COLLECTION, "s1", {
            "id": "s1",
            "projects": [],
            "createdAt": 1,
            "expiresAt": 10 ** 13,
            "shareUploadUrlGenerated": True,
            "shareUploadSectionExpanded": True,
        })
        session = SessionState(id="s1", share_upload_section_expanded=False)
        await merger.save(session)

        document = await store.get(SESSION_COLLECTION, "s1")
        assert document["shareUploadUrlGenerated"] is True
        assert document["shareUploadSectionExpanded"] is False

    async def test_save_missing_session_raises(self, merger, store):
        with pytest.raises(SessionNotFoundError):
            await merger.save(SessionState(id="gone", projects=[project("A")]))
        assert store.write_count == 0

    async def test_save_expired_session_raises(self, merger, store, clock):
        session = SessionState(id="s1")
        await merger.create(session)
        writes = store.write_count

        clock.now += 8 * DAY_MS
        with pytest.raises(SessionExpiredError):
            await merger.save(session)
        assert store.write_count == writes

    async def test_load(self, merger, store):
        await merger.create(SessionState(id="s1", name="Demo", projects=[project("A")]))
        loaded = await merger.load("s1")
        assert loaded.name == "Demo"
        assert loaded.project_names() == ["A"]
