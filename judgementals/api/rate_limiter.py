"""
Completion Rate Limiter

Sliding-window rate limiting for outbound completion calls. A judge panel fans
out one call per judge, so without a limiter a large panel can burst past the
provider's per-minute quota.
"""

import asyncio
import time
from collections import deque
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class UnifiedRateLimiter:
    """
    Sliding-window limiter over per-second and per-minute call counts.

    ``wait_if_needed`` is awaited before each request; concurrent callers are
    serialised on an asyncio lock so the window bookkeeping stays consistent.
    """

    def __init__(
        self,
        calls_per_second: Optional[float] = None,
        calls_per_minute: Optional[int] = None,
        service_name: str = "api"
    ):
        """
        Args:
            calls_per_second: Maximum calls in any one-second window
            calls_per_minute: Maximum calls in any sixty-second window
            service_name: Service name for logging
        """
        self.calls_per_second = calls_per_second
        self.calls_per_minute = calls_per_minute
        self.service_name = service_name

        self.request_times: deque = deque()
        self.lock = asyncio.Lock()

        self.logger = logger.bind(service=f"RateLimiter-{service_name}")
        self.logger.info(
            "Rate limiter initialized",
            calls_per_second=calls_per_second,
            calls_per_minute=calls_per_minute
        )

    @classmethod
    def for_gemini(cls, calls_per_minute: int = 15) -> "UnifiedRateLimiter":
        """Rate limiter configured for the Gemini API free tier."""
        return cls(calls_per_minute=calls_per_minute, service_name="Gemini")

    async def wait_if_needed(self) -> None:
        """Sleep until a call is allowed, then record it."""
        async with self.lock:
            current_time = time.monotonic()
            self._cleanup_old_requests(current_time)

            wait_time = 0.0
            if self.calls_per_second:
                wait_time = max(wait_time, self._window_wait(current_time, 1.0, self.calls_per_second))
            if self.calls_per_minute:
                wait_time = max(wait_time, self._window_wait(current_time, 60.0, self.calls_per_minute))

            if wait_time > 0:
                self.logger.debug(
                    "Rate limit wait required",
                    wait_time=wait_time,
                    current_requests=len(self.request_times)
                )
                await asyncio.sleep(wait_time)
                current_time = time.monotonic()

            self.request_times.append(current_time)

    def _window_wait(self, current_time: float, window: float, limit: float) -> float:
        """Seconds until the oldest call in the window drops out, 0 if under the limit."""
        recent = [t for t in self.request_times if t > current_time - window]
        if len(recent) < limit:
            return 0.0
        return max(0.0, window - (current_time - recent[0]))

    def _cleanup_old_requests(self, current_time: float) -> None:
        cutoff_time = current_time - 60.0
        while self.request_times and self.request_times[0] < cutoff_time:
            self.request_times.popleft()

    def get_current_usage(self) -> dict:
        """Current window usage, for the health endpoint."""
        current_time = time.monotonic()
        minute_requests = len([t for t in self.request_times if t > current_time - 60.0])
        usage = {
            "service": self.service_name,
            "requests_last_minute": minute_requests,
        }
        if self.calls_per_minute:
            usage["calls_per_minute_limit"] = self.calls_per_minute
            usage["minute_usage_percent"] = (minute_requests / self.calls_per_minute) * 100
        return usage

    def reset(self) -> None:
        """Reset limiter state (useful for testing)."""
        self.request_times.clear()
        self.logger.info("Rate limiter reset")
