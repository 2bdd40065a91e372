"""
FastAPI Logging Middleware for Judgementals

Request/response logging for the judging API:
- Request IDs for tracing, bound into the structlog context
- Request/response timing and status codes
- Slow request warnings for the long-running judging endpoints
"""

import time
import uuid
from typing import Callable, List, Optional

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..utils.logging_config import log_api_request, set_request_context

SESSION_PATH_PREFIX = "/api/sessions/"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all API requests and responses.

    Adds an ``X-Request-ID`` header to every logged response.
    """

    def __init__(self, app, exclude_paths: Optional[List[str]] = None):
        """
        Args:
            app: FastAPI application
            exclude_paths: Paths that are passed through without logging
        """
        super().__init__(app)
        self.logger = structlog.get_logger("api.middleware")
        self.exclude_paths = exclude_paths or ["/health", "/docs", "/openapi.json"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = str(uuid.uuid4())
        set_request_context(
            request_id=request_id,
            session_id=self._extract_session_id(request.url.path)
        )

        start_time = time.time()
        self.logger.info(
            "api_request_start",
            request_id=request_id,
            method=request.method,
            url=str(request.url),
            client_ip=self._get_client_ip(request)
        )

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "api_request_error",
                request_id=request_id,
                method=request.method,
                url=str(request.url),
                error_type=type(e).__name__,
                error_message=str(e),
                duration_seconds=round(time.time() - start_time, 4)
            )
            raise

        duration = time.time() - start_time
        self.logger.info(
            "api_request_complete",
            request_id=request_id,
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            duration_seconds=round(duration, 4)
        )
        log_api_request(
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            duration=duration,
            request_id=request_id
        )

        response.headers["X-Request-ID"] = request_id
        return response

    @staticmethod
    def _extract_session_id(path: str) -> Optional[str]:
        if not path.startswith(SESSION_PATH_PREFIX):
            return None
        session_id = path[len(SESSION_PATH_PREFIX):].split("/", 1)[0]
        return session_id or None

    @staticmethod
    def _get_client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"


class PerformanceLoggingMiddleware(BaseHTTPMiddleware):
    """Warns about slow requests and records timings of tracked endpoints."""

    tracked_endpoints = ("/api/complete", "/judge")

    def __init__(self, app, slow_request_threshold: float = 60.0):
        """
        Args:
            app: FastAPI application
            slow_request_threshold: Time in seconds to consider a request slow
        """
        super().__init__(app)
        self.logger = structlog.get_logger("performance")
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        if duration > self.slow_request_threshold:
            self.logger.warning(
                "slow_request",
                method=request.method,
                url=str(request.url),
                duration_seconds=round(duration, 4),
                threshold_seconds=self.slow_request_threshold
            )

        if self._should_track_performance(request.url.path):
            self.logger.info(
                "endpoint_performance",
                endpoint=request.url.path,
                method=request.method,
                duration_seconds=round(duration, 4),
                status_code=response.status_code
            )

        return response

    def _should_track_performance(self, path: str) -> bool:
        return any(path.endswith(tracked) for tracked in self.tracked_endpoints)
