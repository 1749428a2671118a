"""
Rate limiting middleware.

Implements per-IP and per-API-key rate limiting using slowapi.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from legal_case_management.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def get_api_key_from_request(request: Request) -> str | None:
    """Extract API key from request header."""
    return request.headers.get("X-API-Key")


def get_rate_limit_key(request: Request) -> str:
    """Get rate limit key based on IP or API key."""
    api_key = get_api_key_from_request(request)
    if api_key and api_key in settings.api_keys:
        return f"api_key:{api_key}"
    return get_remote_address(request)


def get_rate_limit_for_request(request: Request) -> str:
    """Get rate limit string based on authentication status."""
    if get_rate_limit_key(request).startswith("api_key:"):
        return f"{settings.rate_limit_per_minute_authenticated}/minute"
    return f"{settings.rate_limit_per_minute}/minute"


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    enabled=settings.rate_limit_enabled,
)


def setup_rate_limiter(app) -> None:
    """Configure rate limiting for the FastAPI app."""
    if not settings.rate_limit_enabled:
        logger.info("Rate limiting is disabled")
        return

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        """Handle rate limit exceeded with user-friendly message."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            f"Rate limit exceeded for {get_rate_limit_key(request)}",
            extra={"request_id": request_id},
        )
        retry_after = int(getattr(exc, "retry_after", 0) or 60)

        response = JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": "Too many requests. Please try again later.",
                "detail": f"Rate limit exceeded: {exc.detail}",
                "request_id": request_id,
            },
        )
        response.headers["Retry-After"] = str(retry_after)
        response.headers["X-RateLimit-Limit"] = get_rate_limit_for_request(request).split("/")[0]
        response.headers["X-RateLimit-Remaining"] = "0"
        return response

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    logger.info(
        f"Rate limiting enabled: {settings.rate_limit_per_minute} req/min (unauthenticated), "
        f"{settings.rate_limit_per_minute_authenticated} req/min (authenticated)"
    )
