"""Rate limiting middleware — in-memory fixed window for auth endpoints.

Learn: Login and student registration are the brute-force targets, so
only those paths are counted: per client IP, per window (default 100
requests / 15 minutes). Counters live in process memory, like the rest
of this single-process app, and reset when the window rolls over.
"""

import time
from typing import Callable, Sequence

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

DEFAULT_PATHS = ("/api/v1/auth/login", "/api/v1/auth/register-student")


class RateLimitMiddleware:
    """Per-IP request cap on the auth endpoints."""

    def __init__(
        self,
        app: ASGIApp,
        limit: int = 100,
        window_seconds: int = 900,
        paths: Sequence[str] = DEFAULT_PATHS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.app = app
        self.limit = limit
        self.window_seconds = window_seconds
        self.paths = tuple(paths)
        self._clock = clock
        self._window = -1
        self._counts: dict[str, int] = {}

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith(self.paths):
            await self.app(scope, receive, send)
            return

        window = int(self._clock() // self.window_seconds)
        if window != self._window:
            self._window = window
            self._counts.clear()

        client = scope.get("client")
        client_ip = client[0] if client else "unknown"
        count = self._counts.get(client_ip, 0) + 1
        self._counts[client_ip] = count

        if count > self.limit:
            response = JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(self.window_seconds)},
            )
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
