"""
NoteCraft Backend: Access Log Middleware
==========================================

What:  One log line per request: method, path, status, duration, request ID.
Why:   Uvicorn's access log has no request ID and no timing.

Privacy:
    Logged: method, path, status, duration, client IP, request ID.
    Never logged: request bodies (note content, passwords) or the
    Authorization header.

Level by status: 5xx ERROR, 4xx WARNING, everything else INFO.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from notecraft.middleware.request_id import request_id_var

logger = logging.getLogger("notecraft.access")

# Probed every few seconds by orchestrators; logging them drowns real traffic
QUIET_PATHS = {"/health"}


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            level_for_status(response.status_code),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
