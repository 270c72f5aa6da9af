"""Per-client admission control.

Each ``{client_ip}_{path}`` key may make ``points`` requests per ``duration``
seconds, counted by a ``limits`` fixed-window limiter. The request that goes
over the limit is rejected and the key stays blocked for ``block_duration``
seconds. Rejected requests are never queued.
"""

from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from typing import Callable, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."

RATE_LIMIT_BYPASS_PATHS: set[str] = {
    "/health",
    "/health/",
}


class BlockingRateLimiter:
    """Fixed-window limit with a block period once a key goes over it."""

    def __init__(
        self,
        points: int,
        duration: int,
        block_duration: float = 0.0,
        storage: Optional[Storage] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if points <= 0 or duration <= 0:
            raise ValueError("points and duration must be positive")
        self.item = RateLimitItemPerSecond(points, duration)
        self.block_duration = block_duration
        self.storage = storage or MemoryStorage()
        self.limiter = FixedWindowRateLimiter(self.storage)
        self.clock = clock
        self._blocked_until: Dict[str, float] = {}
        self._lock = threading.Lock()

    def consume(self, key: str) -> bool:
        """Record one request for ``key``; False means it must be rejected."""
        now = self.clock()
        with self._lock:
            blocked_until = self._blocked_until.get(key)
            if blocked_until is not None:
                if now < blocked_until:
                    return False
                del self._blocked_until[key]
                # A served block starts the key over with a fresh window.
                self.limiter.clear(self.item, key)

        if self.limiter.hit(self.item, key):
            return True

        if self.block_duration > 0:
            with self._lock:
                self._blocked_until[key] = now + self.block_duration
                self._drop_expired_blocks(now)
        return False

    def retry_after(self, key: str) -> int:
        """Whole seconds until ``key`` may be served again."""
        now = self.clock()
        with self._lock:
            blocked_until = self._blocked_until.get(key)
        if blocked_until is not None and blocked_until > now:
            return max(1, math.ceil(blocked_until - now))
        reset_time, _ = self.limiter.get_window_stats(self.item, key)
        return max(1, math.ceil(reset_time - time.time()))

    def reset(self) -> None:
        with self._lock:
            self._blocked_until.clear()
        self.storage.reset()

    def _drop_expired_blocks(self, now: float) -> None:
        expired = [key for key, until in self._blocked_until.items() if until <= now]
        for key in expired:
            del self._blocked_until[key]


def get_client_identifier(request: Request, trust_forwarded: bool = False) -> str:
    """Client address used as the first half of the limiter key."""
    if trust_forwarded:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

    if request.client and request.client.host:
        return request.client.host

    # Unidentifiable clients each get their own bucket.
    return f"unknown:{uuid.uuid4()}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        limiter: BlockingRateLimiter,
        trust_forwarded: bool = False,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.trust_forwarded = trust_forwarded

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if path in RATE_LIMIT_BYPASS_PATHS:
            return await call_next(request)

        identifier = get_client_identifier(request, self.trust_forwarded)
        key = f"{identifier}_{path}"
        if not self.limiter.consume(key):
            retry_after = self.limiter.retry_after(key)
            logger.warning(
                "Rate limit exceeded for %s on %s. Retry in %d seconds.",
                identifier,
                path,
                retry_after,
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "statusCode": status.HTTP_429_TOO_MANY_REQUESTS,
                    "message": RATE_LIMIT_MESSAGE,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.limiter.item.amount),
                },
            )
        return await call_next(request)
