"""
Middleware modules for the guardian pickup service.
"""

from .rate_limit import RateLimiter, RateLimitMiddleware

__all__ = [
    "RateLimiter",
    "RateLimitMiddleware"
]
