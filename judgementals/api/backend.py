"""
FastAPI Backend for Judgementals

REST endpoints for the AI judging system: a completion proxy for the judges,
the session lifecycle (create, load, external project uploads, delete) and
the full judging run over a stored session.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..exceptions import SessionExpiredError, SessionNotFoundError
from ..models.config_models import SystemConfig
from ..models.evaluation_models import Judge
from ..models.project_models import Project
from ..models.session_models import DEFAULT_SESSION_NAME
from ..services.completion_service import create_completion_service, fallback_evaluation_text
from ..services.document_store import DiskDocumentStore, create_document_store
from ..services.judging_service import JudgingService
from ..services.session_manager_service import SessionManagerService
from ..utils.logging_config import get_logger, setup_logging
from .logging_middleware import LoggingMiddleware, PerformanceLoggingMiddleware

logger = structlog.get_logger(__name__)

CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60

# Global service instances
system_config: Optional[SystemConfig] = None
completion_service = None
document_store = None
judging_service: Optional[JudgingService] = None
session_manager: Optional[SessionManagerService] = None


async def _cleanup_loop(interval_seconds: float):
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await session_manager.cleanup_expired_sessions()
        except Exception as e:
            logger.error("Scheduled session cleanup failed", error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    global system_config, completion_service, document_store, judging_service, session_manager, logger

    system_config = SystemConfig.from_env()
    setup_logging(log_dir=system_config.log_directory, log_level=system_config.log_level)
    logger = get_logger(__name__)

    logger.info("Initializing Judgementals services...")
    completion_service = create_completion_service(
        system_config.gemini_api_key,
        model_name=system_config.gemini_model,
        calls_per_minute=system_config.gemini_rate_limit
    )
    document_store = create_document_store(system_config.store_directory)
    judging_service = JudgingService(completion_service, config=system_config)
    session_manager = SessionManagerService(
        document_store,
        config=system_config,
        judging_service=judging_service
    )
    cleanup_task = asyncio.create_task(_cleanup_loop(CLEANUP_INTERVAL_SECONDS))
    logger.info("Judgementals services initialized successfully")

    yield

    logger.info("Shutting down Judgementals services...")
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass
    await session_manager.close_all()
    if isinstance(document_store, DiskDocumentStore):
        document_store.close()
    completion_service = None
    document_store = None
    judging_service = None
    session_manager = None


# Create FastAPI app
app = FastAPI(
    title="Judgementals API",
    description="AI judge panel for hackathon project evaluation",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LoggingMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
app.add_middleware(PerformanceLoggingMiddleware, slow_request_threshold=60.0)


# Request/Response Models
class CompletionRequest(BaseModel):
    """Request model for the completion proxy."""
    prompt: str = Field("", description="Prompt sent to the model")
    seed: int = Field(12345, description="Seed for consistent judging")


class CreateSessionRequest(BaseModel):
    """Request model for creating a judging session."""
    name: str = Field(DEFAULT_SESSION_NAME, description="Session display name")
    projects: List[Project] = Field(default_factory=list, description="Initial projects")
    judges: Optional[List[Judge]] = Field(
        None,
        description="Judge panel; the default panel when omitted"
    )


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: float
    version: str
    components: Dict[str, str]


def _require_session_manager() -> SessionManagerService:
    if session_manager is None:
        raise HTTPException(status_code=503, detail="Session service not available")
    return session_manager


def _session_http_error(error: Exception) -> HTTPException:
    if isinstance(error, SessionExpiredError):
        return HTTPException(status_code=410, detail=str(error))
    return HTTPException(status_code=404, detail=str(error))


# API Endpoints
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    components = {
        "completion_service": type(completion_service).__name__ if completion_service else "inactive",
        "document_store": type(document_store).__name__ if document_store else "inactive",
        "active_sessions": str(len(session_manager.sessions)) if session_manager else "0",
    }

    rate_limiter = getattr(completion_service, "rate_limiter", None)
    if rate_limiter is not None:
        usage = rate_limiter.get_current_usage()
        components["completion_requests_last_minute"] = str(usage["requests_last_minute"])
        if "calls_per_minute_limit" in usage:
            components["completion_calls_per_minute_limit"] = str(usage["calls_per_minute_limit"])

    return HealthResponse(
        status="healthy",
        timestamp=time.time(),
        version=__version__,
        components=components
    )


@app.post("/api/complete")
async def complete(request: CompletionRequest) -> Dict[str, Any]:
    """
    Completion proxy for judges.

    A failing model call still answers 200 with a neutral evaluation body
    and a warning, so callers always receive something parseable.
    """
    if not request.prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")
    if completion_service is None:
        raise HTTPException(status_code=503, detail="Completion service not available")

    start_time = time.time()
    try:
        response = await completion_service.complete(request.prompt, request.seed)
    except Exception as e:
        logger.error(
            "Completion request failed, returning fallback evaluation",
            error=str(e),
            duration_seconds=round(time.time() - start_time, 3)
        )
        return {
            "success": True,
            "response": fallback_evaluation_text(),
            "usage": {"input_tokens": 0, "output_tokens": 0},
            "warning": "API call failed - using fallback evaluation",
        }

    return {
        "success": True,
        "response": response.text,
        "usage": response.usage,
    }


@app.post("/api/sessions")
async def create_session(request: CreateSessionRequest) -> Dict[str, Any]:
    """Create and persist a new judging session."""
    manager = _require_session_manager()
    session = await manager.create_session(
        name=request.name,
        projects=request.projects,
        judges=request.judges
    )
    return session.state.to_document()


@app.post("/api/sessions/cleanup")
async def cleanup_sessions() -> Dict[str, Any]:
    """Delete one batch of expired sessions."""
    manager = _require_session_manager()
    deleted = await manager.cleanup_expired_sessions()
    return {"success": True, "deleted": deleted}


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str) -> Dict[str, Any]:
    """Load a stored session."""
    manager = _require_session_manager()
    try:
        session = await manager.load_session(session_id)
    except (SessionNotFoundError, SessionExpiredError) as e:
        raise _session_http_error(e)
    return session.state.to_document()


@app.post("/api/sessions/{session_id}/projects")
async def upload_project(session_id: str, project: Project) -> Dict[str, Any]:
    """External uploader: append one project to a stored session."""
    manager = _require_session_manager()
    try:
        project_count = await manager.append_project_to_session(session_id, project)
    except (SessionNotFoundError, SessionExpiredError) as e:
        raise _session_http_error(e)
    return {
        "success": True,
        "sessionId": session_id,
        "projectName": project.name,
        "projectCount": project_count,
    }


@app.post("/api/sessions/{session_id}/judge")
async def judge_session(session_id: str) -> Dict[str, Any]:
    """Run the judge panel and the master judge over a stored session."""
    manager = _require_session_manager()
    try:
        evaluations = await manager.judge_session(session_id)
    except (SessionNotFoundError, SessionExpiredError) as e:
        raise _session_http_error(e)
    return {
        "sessionId": session_id,
        "evaluations": [e.model_dump(by_alias=True, mode="json") for e in evaluations],
    }


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str) -> Dict[str, Any]:
    """Delete a session document."""
    manager = _require_session_manager()
    deleted = await manager.delete_session(session_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return {"success": True, "sessionId": session_id}


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Custom HTTP exception handler."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "timestamp": time.time(),
            "path": str(request.url)
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """General exception handler for unexpected errors."""
    logger.error("Unexpected error", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "timestamp": time.time(),
            "path": str(request.url)
        }
    )
