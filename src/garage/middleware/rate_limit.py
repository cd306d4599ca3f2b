"""Redis-backed rate limiting middleware."""

import hashlib
import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from garage.redis_client import count_in_window

# Paths exempt from rate limiting
_EXEMPT_PATHS = frozenset({"/health", "/ready"})

# Every box opening triggers an on-chain mint
_OPEN_BOX_PATH = "/gacha/open"


def _client_key(request: Request) -> str:
    """Bearer token digest when present, client IP otherwise."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return "tok:" + hashlib.sha256(auth[7:].encode()).hexdigest()[:32]
    return "ip:" + (request.client.host if request.client else "unknown")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window request counters in Redis, with a tighter budget for opening boxes."""

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        window_seconds: int = 60,
        open_box_per_window: int = 10,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.open_box_per_window = open_box_per_window

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Count the request, return 429 once the window's budget is spent."""
        path = request.url.path
        if path in _EXEMPT_PATHS:
            return await call_next(request)

        if path == _OPEN_BOX_PATH:
            scope, limit = "open", self.open_box_per_window
        else:
            scope, limit = "all", self.requests_per_window

        window = int(time.time()) // self.window_seconds
        rate_key = f"ratelimit:{scope}:{_client_key(request)}:{window}"

        try:
            current_count = await count_in_window(rate_key, self.window_seconds)
        except RuntimeError:
            # Redis not initialized: let the request through without rate limiting
            return await call_next(request)

        if current_count > limit:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Limit"] = str(limit)
        return response
