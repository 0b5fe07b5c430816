"""
HTTP middleware
Request ids, timing and access logging
"""

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.logging_config import generate_request_id, set_request_id

logger = logging.getLogger("app.http")

SKIP_LOGGING_PATHS = {"/api/health", "/docs", "/redoc", "/openapi.json"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id (honours an incoming X-Request-ID),
    logs method/path/status/duration and echoes the id in the response
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        path = request.url.path
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id

        if path not in SKIP_LOGGING_PATHS:
            status_code = response.status_code
            if status_code >= 500:
                log_level = logging.ERROR
            elif status_code >= 400:
                log_level = logging.WARNING
            else:
                log_level = logging.INFO

            logger.log(
                log_level,
                f"{request.method} {path} - {status_code} ({duration_ms:.2f}ms)",
                extra={
                    "http_method": request.method,
                    "http_path": path,
                    "http_status": status_code,
                    "duration_ms": round(duration_ms, 2),
                },
            )

        return response
