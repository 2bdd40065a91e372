"""
Session Manager Service for Judgementals

Owns the active judging sessions of this process:
- Creating and loading session documents (with expiry checks)
- Local mutations of projects, judges and evaluations, each wired to the
  matching auto-save trigger
- Running the judging pipeline against a session
- The external uploader write and the periodic cleanup of expired sessions
"""

import uuid
from typing import Dict, List, Optional

import structlog

from ..agents.judge.default_judges import default_judges
from ..exceptions import DocumentNotFoundError, SessionExpiredError, SessionNotFoundError
from ..models.config_models import SystemConfig
from ..models.evaluation_models import Judge, ProjectEvaluation
from ..models.project_models import Project
from ..models.session_models import (
    DEFAULT_SESSION_NAME,
    SESSION_COLLECTION,
    SessionState,
    now_ms,
)
from .autosave_scheduler import AutoSaveScheduler
from .session_merger import SessionMerger

logger = structlog.get_logger(__name__)

CLEANUP_BATCH_LIMIT = 500


def generate_session_id() -> str:
    return uuid.uuid4().hex


class JudgingSession:
    """
    Local state of one session plus its save machinery.

    Soft mutations (projects, judges) schedule a debounced save; recorded
    evaluations and rankings save immediately.
    """

    def __init__(self, state: SessionState, merger: SessionMerger, config: SystemConfig):
        self.state = state
        self.merger = merger
        self.scheduler = AutoSaveScheduler(
            session_provider=lambda: self.state,
            save_func=self._save,
            debounce_seconds=config.autosave_debounce_seconds,
            interval_seconds=config.autosave_interval_seconds
        )
        self.logger = logger.bind(component="JudgingSession", session_id=state.id)

    @property
    def id(self) -> str:
        return self.state.id

    async def _save(self) -> SessionState:
        return await self.merger.save(self.state)

    # Soft mutations

    def add_project(self, project: Project) -> None:
        """Add a project, replacing any existing project with the same name."""
        projects = [p for p in self.state.projects if p.name != project.name]
        projects.append(project)
        self.state.projects = projects
        self.logger.info("Project added", project_name=project.name, file_count=len(project.files))
        self.scheduler.notify_change()

    def remove_project(self, project_name: str) -> bool:
        """
        Remove a project locally.

        Note: the next merge re-adds it if the stored document still has it.
        """
        remaining = [p for p in self.state.projects if p.name != project_name]
        if len(remaining) == len(self.state.projects):
            return False
        self.state.projects = remaining
        self.scheduler.notify_change()
        return True

    def add_judge(self, judge: Judge) -> None:
        judges = [j for j in self.state.judges if j.id != judge.id]
        judges.append(judge)
        self.state.judges = judges
        self.logger.info("Judge added", judge_id=judge.id, judge_name=judge.name)
        self.scheduler.notify_change()

    def remove_judge(self, judge_id: str) -> bool:
        remaining = [j for j in self.state.judges if j.id != judge_id]
        if len(remaining) == len(self.state.judges):
            return False
        self.state.judges = remaining
        self.scheduler.notify_change()
        return True

    def set_share_upload_flags(
        self,
        url_generated: Optional[bool] = None,
        section_expanded: Optional[bool] = None
    ) -> None:
        if url_generated is not None:
            self.state.share_upload_url_generated = url_generated
        if section_expanded is not None:
            self.state.share_upload_section_expanded = section_expanded
        self.scheduler.notify_change()

    # Critical mutations

    def reset_evaluations(self) -> None:
        """Clear results before a new judging run."""
        self.state.evaluations = []
        self.scheduler.mark_changed()

    def record_evaluation(self, evaluation: ProjectEvaluation) -> None:
        """Store one project's judge results and save immediately."""
        evaluations = [
            e for e in self.state.evaluations if e.project_name != evaluation.project_name
        ]
        evaluations.append(evaluation)
        self.state.evaluations = evaluations
        self.scheduler.notify_change(critical=True)

    def record_rankings(self, evaluations: List[ProjectEvaluation]) -> None:
        """Store the ranked batch and save immediately."""
        self.state.evaluations = list(evaluations)
        self.scheduler.notify_change(critical=True)

    async def close(self, flush: bool = True) -> None:
        await self.scheduler.stop(flush=flush)


class SessionManagerService:
    """
    Session lifecycle for the judging backend.

    Active sessions are kept in memory; the document store is the shared
    source of truth for everything other writers may touch.
    """

    def __init__(
        self,
        document_store,
        config: Optional[SystemConfig] = None,
        judging_service=None,
        collection: str = SESSION_COLLECTION
    ):
        """
        Args:
            document_store: DocumentStore implementation
            config: System configuration
            judging_service: JudgingService used by ``judge_session``
            collection: Collection holding session documents
        """
        self.config = config or SystemConfig()
        self.store = document_store
        self.collection = collection
        self.judging_service = judging_service
        self.merger = SessionMerger(
            document_store,
            collection=collection,
            session_ttl_ms=self.config.session_ttl_ms
        )
        self.sessions: Dict[str, JudgingSession] = {}
        self.logger = logger.bind(component="SessionManager")

        self.logger.info("Session Manager Service initialized")

    async def create_session(
        self,
        name: str = DEFAULT_SESSION_NAME,
        projects: Optional[List[Project]] = None,
        judges: Optional[List[Judge]] = None,
        session_id: Optional[str] = None
    ) -> JudgingSession:
        """
        Create and persist a new session.

        Args:
            name: Display name
            projects: Initial projects
            judges: Judge panel; the default panel when omitted
            session_id: Explicit id, generated when omitted

        Returns:
            The active session, auto-save running
        """
        state = SessionState(
            id=session_id or generate_session_id(),
            name=name,
            projects=list(projects or []),
            judges=list(judges) if judges is not None else default_judges(),
        )
        await self.merger.create(state)
        return self._activate(state)

    async def load_session(self, session_id: str) -> JudgingSession:
        """
        Load a stored session and make it active.

        Raises:
            SessionNotFoundError: No such session
            SessionExpiredError: The session has expired
        """
        existing = self.sessions.get(session_id)
        if existing is not None:
            await existing.close(flush=True)

        state = await self.merger.load(session_id)
        self.logger.info(
            "Session loaded",
            session_id=session_id,
            projects=len(state.projects),
            judges=len(state.judges),
            evaluations=len(state.evaluations)
        )
        return self._activate(state)

    def get_session(self, session_id: str) -> Optional[JudgingSession]:
        return self.sessions.get(session_id)

    async def require_session(self, session_id: str) -> JudgingSession:
        """Active session by id, loading it from the store when needed."""
        session = self.sessions.get(session_id)
        if session is None:
            session = await self.load_session(session_id)
        return session

    def _activate(self, state: SessionState) -> JudgingSession:
        session = JudgingSession(state, self.merger, self.config)
        session.scheduler.mark_loaded()
        session.scheduler.start()
        self.sessions[state.id] = session
        return session

    async def judge_session(self, session_id: str) -> List[ProjectEvaluation]:
        """
        Run the judging pipeline over a session's projects.

        Each project's results and the final ranking are saved as they
        arrive; the session is flushed before returning.
        """
        if self.judging_service is None:
            raise RuntimeError("No judging service configured")

        session = await self.require_session(session_id)
        judges = session.state.judges or default_judges()

        session.reset_evaluations()
        evaluations = await self.judging_service.run(
            list(session.state.projects),
            judges,
            on_evaluation=session.record_evaluation,
            on_ranked=session.record_rankings
        )
        await session.scheduler.flush()
        return evaluations

    async def close_session(self, session_id: str, flush: bool = True) -> None:
        session = self.sessions.pop(session_id, None)
        if session is not None:
            await session.close(flush=flush)
            self.logger.info("Session closed", session_id=session_id)

    async def close_all(self) -> None:
        for session_id in list(self.sessions):
            try:
                await self.close_session(session_id)
            except Exception as e:
                self.logger.warning("Failed to flush session on close", session_id=session_id, error=str(e))

    async def delete_session(self, session_id: str) -> bool:
        await self.close_session(session_id, flush=False)
        deleted = await self.store.delete(self.collection, session_id)
        self.logger.info("Session deleted", session_id=session_id, existed=deleted)
        return deleted

    async def append_project_to_session(self, session_id: str, project: Project) -> int:
        """
        External uploader write: append one project to a stored session.

        Only ``projects`` and ``updatedAt`` are touched.

        Returns:
            Number of projects in the session afterwards

        Raises:
            SessionNotFoundError: No such session
            SessionExpiredError: The session has expired
        """
        try:
            document = await self.store.get(self.collection, session_id)
        except DocumentNotFoundError as e:
            raise SessionNotFoundError(session_id) from e

        expires_at = document.get("expiresAt")
        if isinstance(expires_at, (int, float)) and now_ms() > expires_at:
            raise SessionExpiredError(session_id, int(expires_at))

        projects = list(document.get("projects") or [])
        projects.append(project.model_dump(by_alias=True, mode="json"))

        await self.store.update(
            self.collection,
            session_id,
            {"projects": projects, "updatedAt": now_ms()}
        )

        self.logger.info(
            "Project appended to session",
            session_id=session_id,
            project_name=project.name,
            file_count=len(project.files)
        )
        return len(projects)

    async def cleanup_expired_sessions(self, batch_limit: int = CLEANUP_BATCH_LIMIT) -> int:
        """
        Delete one batch of expired sessions.

        Returns:
            Number of sessions deleted
        """
        expired_ids = await self.store.query_expired(self.collection, now_ms(), limit=batch_limit)
        if not expired_ids:
            self.logger.info("No expired sessions to clean up")
            return 0

        deleted = 0
        for session_id in expired_ids:
            await self.close_session(session_id, flush=False)
            if await self.store.delete(self.collection, session_id):
                deleted += 1

        self.logger.info("Cleaned up expired sessions", deleted=deleted)
        return deleted
