"""
Exception hierarchy for Judgementals.

Transient evaluation/ranking errors are raised inside the judge components and
always recovered there. Session errors are surfaced to the caller.
"""

from typing import Optional


class JudgementalsError(Exception):
    """Base class for all Judgementals errors."""


class TransientEvaluationError(JudgementalsError):
    """A single judge call failed, timed out or returned unusable output."""

    def __init__(self, message: str, judge_id: Optional[str] = None):
        super().__init__(message)
        self.judge_id = judge_id


class TransientRankingError(JudgementalsError):
    """The master ranking call failed or returned a malformed body."""


class DocumentNotFoundError(JudgementalsError):
    """Raised by a document store when the requested document does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"Document {collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id


class SessionError(JudgementalsError):
    """Base class for errors that abort a session save or load."""

    def __init__(self, message: str, session_id: str):
        super().__init__(message)
        self.session_id = session_id


class SessionNotFoundError(SessionError):
    """The session document is gone (deleted or cleaned up after expiry)."""

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found", session_id)


class SessionExpiredError(SessionError):
    """The session document exists but its expiry time has passed."""

    def __init__(self, session_id: str, expires_at: int):
        super().__init__(f"Session {session_id} has expired", session_id)
        self.expires_at = expires_at


class CriticalPipelineError(JudgementalsError):
    """An exception escaped the per-project and per-judge guards."""
