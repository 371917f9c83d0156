"""
NoteCraft Backend: Rate Limiting
==================================

What:  Sliding window rate limiting, used twice: per client IP for every
       request (middleware) and per (email, IP) for failed logins.
Why:   Protects the API and the AI quotas from abuse, and slows down
       password guessing without locking accounts forever.
How:   SlidingWindowLimiter holds the policy (limit, window); a RateLimitStore
       holds the timestamps. The in-memory store serves a single process;
       a shared store (Redis sorted sets) can implement the same interface
       for multi-worker deployments.

Algorithm: Sliding Window Log
    1. Each key gets a list of hit timestamps
    2. On each check, drop timestamps older than the window
    3. If remaining count >= limit, reject; retry after the oldest expires
    4. Otherwise record the hit (middleware) or wait for a failure (login)
"""

import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from notecraft.config import settings
from notecraft.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class RateLimitStore(ABC):
    """Timestamp storage behind a SlidingWindowLimiter."""

    @abstractmethod
    async def add(self, key: str, timestamp: float) -> None:
        ...

    @abstractmethod
    async def recent(self, key: str, since: float) -> List[float]:
        """Timestamps for ``key`` newer than ``since``, oldest first."""
        ...

    @abstractmethod
    async def clear(self, key: str) -> None:
        ...


class InMemoryRateLimitStore(RateLimitStore):
    """
    Process-local store.

    Safe for single-process async (uvicorn). NOT shared between workers.
    """

    # Prune empty keys every this many writes
    CLEANUP_EVERY = 1000

    def __init__(self):
        self._hits: Dict[str, List[float]] = defaultdict(list)
        self._writes = 0

    async def add(self, key: str, timestamp: float) -> None:
        self._hits[key].append(timestamp)
        self._writes += 1
        if self._writes % self.CLEANUP_EVERY == 0:
            self._cleanup(timestamp)

    async def recent(self, key: str, since: float) -> List[float]:
        if key not in self._hits:
            return []
        kept = [ts for ts in self._hits[key] if ts > since]
        if kept:
            self._hits[key] = kept
        else:
            del self._hits[key]
        return kept

    async def clear(self, key: str) -> None:
        self._hits.pop(key, None)

    def _cleanup(self, now: float) -> None:
        # Keys untouched for a day cannot matter to any configured window
        horizon = now - 86400
        stale = [key for key, stamps in self._hits.items() if not stamps or stamps[-1] < horizon]
        for key in stale:
            del self._hits[key]
        if stale:
            logger.debug("Cleaned up %d inactive rate limit keys", len(stale))


class SlidingWindowLimiter:
    """At most ``limit`` hits per ``window`` seconds for each key."""

    def __init__(self, store: RateLimitStore, limit: int, window: int):
        self.store = store
        self.limit = limit
        self.window = window

    async def retry_after(self, key: str, now: Optional[float] = None) -> Optional[int]:
        """Seconds until ``key`` may try again, or None if it is under the limit."""
        now = time.time() if now is None else now
        stamps = await self.store.recent(key, now - self.window)
        if len(stamps) < self.limit:
            return None
        return int(stamps[0] + self.window - now) + 1

    async def hit(self, key: str, now: Optional[float] = None) -> None:
        await self.store.add(key, time.time() if now is None else now)

    async def reset(self, key: str) -> None:
        await self.store.clear(key)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP limit on every request.

    Excluded paths:
        - /health: Health checks should never be rate-limited
        - /docs, /openapi.json, /redoc: API documentation stays reachable
        - OPTIONS requests (CORS preflight) are never counted

    Response on rate limit:
        HTTP 429 with Retry-After header and the standard error body.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limiter: Optional[SlidingWindowLimiter] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = limiter or SlidingWindowLimiter(
            InMemoryRateLimitStore(),
            limit=settings.rate_limit_requests,
            window=settings.rate_limit_window,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's IP; run uvicorn with --proxy-headers
        client_ip = request.client.host if request.client else "unknown"
        key = f"ip:{client_ip}"

        retry_after = await self.limiter.retry_after(key)
        if retry_after is not None:
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                self.limiter.limit,
                self.limiter.window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        await self.limiter.hit(key)
        return await call_next(request)
