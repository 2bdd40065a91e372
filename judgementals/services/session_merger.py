"""
Session Merger

Persists a local judging session against the shared session document without
losing projects that other writers (share-link uploaders) added meanwhile.

Merge contract on update:
- projects: remote keyed by name, overlaid by local ("local wins on same key,
  union otherwise")
- judges, evaluations: written from local state unconditionally
- createdAt, expiresAt: kept from the remote document
- share-upload flags: local value when set, remote value otherwise

The read-modify-write is optimistic, not transactional; two concurrent savers
can race and the last one wins for judges and evaluations.
"""

from typing import Callable, Dict, List, Optional

import structlog

from ..exceptions import DocumentNotFoundError, SessionExpiredError, SessionNotFoundError
from ..models.project_models import Project
from ..models.session_models import SESSION_COLLECTION, SessionState, now_ms

logger = structlog.get_logger(__name__)

DEFAULT_SESSION_TTL_MS = 7 * 24 * 60 * 60 * 1000


def merge_projects(remote: List[Project], local: List[Project]) -> List[Project]:
    """Remote projects first in their order, then new local names; local wins on name clashes."""
    merged: Dict[str, Project] = {}
    for project in remote:
        merged[project.name] = project
    for project in local:
        merged[project.name] = project
    return list(merged.values())


class SessionMerger:
    """Create and merge-update paths for session documents."""

    def __init__(
        self,
        document_store,
        collection: str = SESSION_COLLECTION,
        session_ttl_ms: int = DEFAULT_SESSION_TTL_MS,
        clock: Callable[[], int] = now_ms
    ):
        """
        Args:
            document_store: DocumentStore implementation
            collection: Collection holding session documents
            session_ttl_ms: Lifetime of a newly created session
            clock: Epoch-millisecond clock, injectable for tests
        """
        self.store = document_store
        self.collection = collection
        self.session_ttl_ms = session_ttl_ms
        self.clock = clock
        self.logger = logger.bind(component="SessionMerger")

    async def create(self, session: SessionState) -> SessionState:
        """
        First save of a brand-new session: write everything, no merge.

        Local timestamps and flags are initialised on the passed session.
        """
        timestamp = self.clock()
        session.created_at = timestamp
        session.updated_at = timestamp
        session.expires_at = timestamp + self.session_ttl_ms
        if session.share_upload_url_generated is None:
            session.share_upload_url_generated = False
        if session.share_upload_section_expanded is None:
            session.share_upload_section_expanded = False

        await self.store.set(self.collection, session.id, session.to_document())

        self.logger.info(
            "New session created",
            session_id=session.id,
            projects=len(session.projects),
            judges=len(session.judges),
            evaluations=len(session.evaluations)
        )
        return session

    async def load(self, session_id: str) -> SessionState:
        """
        Read the remote session.

        Raises:
            SessionNotFoundError: The document does not exist
            SessionExpiredError: The document's expiry time has passed
        """
        try:
            document = await self.store.get(self.collection, session_id)
        except DocumentNotFoundError as e:
            raise SessionNotFoundError(session_id) from e

        remote = SessionState.from_document(document)
        if remote.is_expired(self.clock()):
            raise SessionExpiredError(session_id, remote.expires_at)
        return remote

    async def save(self, session: SessionState) -> SessionState:
        """
        Merge-update path for an existing session.

        On success the local session's projects become the merged set and its
        timestamps mirror the stored document.

        Raises:
            SessionNotFoundError: Deleted or cleaned up; nothing is written
            SessionExpiredError: Expired; nothing is written
        """
        remote = await self.load(session.id)
        merged_projects = merge_projects(remote.projects, session.projects)

        timestamp = self.clock()
        merged = SessionState(
            id=session.id,
            name=session.name,
            projects=merged_projects,
            judges=session.judges,
            evaluations=session.evaluations,
            created_at=remote.created_at or timestamp,
            updated_at=timestamp,
            expires_at=remote.expires_at or (timestamp + self.session_ttl_ms),
            share_upload_url_generated=self._pick_flag(
                session.share_upload_url_generated, remote.share_upload_url_generated
            ),
            share_upload_section_expanded=self._pick_flag(
                session.share_upload_section_expanded, remote.share_upload_section_expanded
            ),
        )

        await self.store.set(self.collection, session.id, merged.to_document())

        self.logger.info(
            "Session saved with merged data",
            session_id=session.id,
            external_projects=len(remote.projects),
            local_projects=len(session.projects),
            merged_projects=len(merged_projects)
        )

        # Projects added locally while the write was in flight stay local
        session.projects = merge_projects(merged_projects, session.projects)
        session.created_at = merged.created_at
        session.updated_at = merged.updated_at
        session.expires_at = merged.expires_at
        return merged

    @staticmethod
    def _pick_flag(local: Optional[bool], remote: Optional[bool]) -> bool:
        if local is not None:
            return local
        return bool(remote)
