"""
Rate limiting middleware.

Pickup login is the one unauthenticated endpoint that checks secrets, so it
gets a tight per-IP limit to slow down token guessing. Everything else gets
a generous per-IP limit. Uses in-memory storage (one process).
"""

import os
import time
from collections import deque
from typing import Deque, Dict, Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

LOGIN_PATH = "/pickup/qr/login"
LOGIN_RATE_LIMIT = int(os.getenv("LOGIN_RATE_LIMIT", "10"))
API_RATE_LIMIT = int(os.getenv("API_RATE_LIMIT", "120"))
RATE_LIMIT_WINDOW = 60


class RateLimiter:
    """Sliding-window request counter keyed by an arbitrary string."""

    def __init__(self, clock=time.monotonic, cleanup_interval: int = 300):
        self.clock = clock
        self.requests: Dict[str, Deque[float]] = {}
        self.cleanup_interval = cleanup_interval
        self.last_cleanup = clock()

    def _cleanup(self, now: float, window: int):
        """Drop keys with no requests inside the window, every cleanup_interval seconds."""
        if now - self.last_cleanup < self.cleanup_interval:
            return

        cutoff = now - window
        for key in list(self.requests):
            hits = self.requests[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if not hits:
                del self.requests[key]
        self.last_cleanup = now

    def is_allowed(self, key: str, limit: int, window: int) -> Tuple[bool, Dict[str, str]]:
        """
        Check if request is allowed under rate limit, and count it if so.

        Args:
            key: Unique identifier for rate limit (path group + IP)
            limit: Maximum number of requests allowed
            window: Time window in seconds

        Returns:
            Tuple of (allowed, headers_dict) with X-RateLimit-* headers
        """
        now = self.clock()
        self._cleanup(now, window)
        hits = self.requests.setdefault(key, deque())
        while hits and hits[0] <= now - window:
            hits.popleft()

        allowed = len(hits) < limit
        if allowed:
            hits.append(now)

        reset_in = int(hits[0] + window - now) if hits else window
        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(max(0, limit - len(hits))),
            "X-RateLimit-Reset": str(max(0, reset_in))
        }
        return allowed, headers


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Login: LOGIN_RATE_LIMIT requests/minute per IP
    Other endpoints: API_RATE_LIMIT requests/minute per IP
    """

    def __init__(self, app, limiter: RateLimiter = None, login_limit: int = None, api_limit: int = None):
        super().__init__(app)
        self.limiter = limiter or RateLimiter()
        self.login_limit = login_limit or LOGIN_RATE_LIMIT
        self.api_limit = api_limit or API_RATE_LIMIT

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"

        if request.url.path == LOGIN_PATH:
            key, limit = f"login:{client_ip}", self.login_limit
            detail = "Too many login attempts. Please try again later."
        else:
            key, limit = f"api:{client_ip}", self.api_limit
            detail = "Too many requests. Please slow down."

        allowed, headers = self.limiter.is_allowed(key, limit, RATE_LIMIT_WINDOW)
        if not allowed:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "error": "rate_limited", "message": detail},
                headers=headers
            )

        response = await call_next(request)
        for header_name, header_value in headers.items():
            response.headers[header_name] = header_value
        return response
