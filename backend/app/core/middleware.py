"""
Excel Analytics - HTTP Middleware

RequestContextMiddleware   request id, timing headers, access log
SecurityHeadersMiddleware  static hardening headers
UploadSizeLimitMiddleware  rejects bodies above the upload limit early
"""

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from app.core.logging_config import (
    generate_request_id,
    logger,
    set_analysis_id,
    set_request_id,
    set_user_id,
)

# Polled by the frontend and load balancers; not worth an access log line
QUIET_PATHS = frozenset({"/", "/api/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"})

# Uploads are parsed synchronously, so a slow request is usually a big workbook
SLOW_REQUEST_MS = 2000

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags the request with an id (the caller's X-Request-ID when sent),
    logs it once it completes and returns X-Request-ID / X-Response-Time.
    The auth dependencies add user and analysis ids to the same context.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"Unhandled error on {request.method} {request.url.path}")
            raise
        else:
            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"

            if request.url.path not in QUIET_PATHS:
                logger.log_request(request.method, request.url.path, response.status_code, elapsed_ms)
                if elapsed_ms > SLOW_REQUEST_MS:
                    logger.warning(f"Slow request: {request.method} {request.url.path} took {elapsed_ms:.0f}ms")
            return response
        finally:
            set_request_id("")
            set_user_id("")
            set_analysis_id("")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """413 for a declared Content-Length above max_size, before the body is read"""

    def __init__(self, app: ASGIApp, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.warning(f"Rejected {request.url.path}: body of {declared} bytes exceeds {self.max_size}")
            return JSONResponse(
                status_code=413,
                content={
                    "detail": f"File too large. Maximum size is {self.max_size // (1024 * 1024)}MB",
                    "code": "FILE_TOO_LARGE",
                    "details": {"size_bytes": int(declared), "max_size_bytes": self.max_size},
                },
            )
        return await call_next(request)
