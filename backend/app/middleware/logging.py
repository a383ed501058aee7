"""
LectureSnap Backend - Access Log Middleware
=============================================

What:  One log line per request: method, path, status, duration, request id,
       user id and client address.
How:   Times the downstream call and picks the level from the status class
       (5xx ERROR, 4xx WARNING, otherwise INFO).
Who:   Logger "lecturesnap.access"; /health probes are not logged.

Request bodies are never logged: they carry photos of lecture material.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("lecturesnap.access")

UNLOGGED_PATHS = {"/health"}


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Typical durations:
        - GET /api/lectures:       10-50ms
        - POST /api/capture/preview: 50-500ms (Pillow, per page)
        - POST /api/lectures:      3-20s (model calls dominate)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        user_id = request.headers.get(request.app.state.config.user_id_header, "-")
        rid = request_id_var.get("")
        status = response.status_code

        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
            },
        )
        return response
