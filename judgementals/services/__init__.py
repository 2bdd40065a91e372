"""
Services Module

Judging pipeline, session persistence and the outbound completion service.
"""

from .autosave_scheduler import AutoSaveScheduler, SaveResult, state_fingerprint

from .completion_service import (
    CompletionResponse,
    CompletionService,
    GeminiCompletionService,
    UnavailableCompletionService,
    create_completion_service,
    fallback_evaluation_text
)

from .content_resolver import StorageContentResolver

from .document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    DiskDocumentStore,
    create_document_store
)

from .judging_service import JudgingService

from .session_merger import SessionMerger, merge_projects

from .session_manager_service import JudgingSession, SessionManagerService

__all__ = [
    # Pipeline
    "JudgingService",
    "StorageContentResolver",
    "CompletionResponse",
    "CompletionService",
    "GeminiCompletionService",
    "UnavailableCompletionService",
    "create_completion_service",
    "fallback_evaluation_text",

    # Persistence
    "DocumentStore",
    "InMemoryDocumentStore",
    "DiskDocumentStore",
    "create_document_store",
    "SessionMerger",
    "merge_projects",
    "AutoSaveScheduler",
    "SaveResult",
    "state_fingerprint",
    "JudgingSession",
    "SessionManagerService",
]
