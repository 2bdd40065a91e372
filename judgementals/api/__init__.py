"""
API Module

HTTP surface for Judgementals and the outbound rate limiter shared with the
completion service.
"""

from .rate_limiter import UnifiedRateLimiter

__all__ = [
    "UnifiedRateLimiter",
]
