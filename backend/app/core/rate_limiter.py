"""
Rate Limiting for the Excel Analytics API
=========================================
slowapi limiter keyed by user id (when known) or client address.

Endpoint limits:
- /api/auth/register: 3 req/min
- /api/auth/login: 5 req/min (brute force protection)
- /api/files/{id}/ai-summary: 10 req/min (AI provider calls)
Everything else falls back to RATE_LIMIT_PER_MINUTE.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import get_user_id, logger

REGISTER_LIMIT = "3/minute"
LOGIN_LIMIT = "5/minute"
AI_SUMMARY_LIMIT = "10/minute"


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key.

    Priority:
    1. Authenticated user ID (set by the auth dependency)
    2. IP address
    """
    user_id = get_user_id()
    if user_id:
        return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Custom handler for rate limit exceeded errors.

    Returns a JSON body with a Retry-After header.
    """
    retry_after = "60"

    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)} on {request.url.path}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please slow down.",
            "code": "RATE_LIMIT_EXCEEDED",
            "details": {"limit": str(exc.detail), "retry_after_seconds": int(retry_after)},
        },
        headers={"Retry-After": retry_after}
    )
