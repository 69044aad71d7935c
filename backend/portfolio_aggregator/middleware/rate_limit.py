# backend/portfolio_aggregator/middleware/rate_limit.py
"""
Rate limiting with slowapi.

Limits are keyed by client IP. X-Forwarded-For / X-Real-IP are only honored
when the immediate peer is a trusted proxy (or TRUST_PROXY_HEADERS is set),
so clients cannot spoof their way around a limit.

Storage is in-memory, which matches the single-process deployment model.

Usage:
    @router.post("/login")
    @limiter.limit(RATE_LIMIT_AUTH_LOGIN)
    async def login(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from portfolio_aggregator.config import settings
from portfolio_aggregator.schemas.common import ErrorBody, ErrorResponse
from portfolio_aggregator.services.constants import (
    RATE_LIMIT_AUTH_LOGIN,
    RATE_LIMIT_AUTH_REFRESH,
    RATE_LIMIT_AUTH_SIGNUP,
    RATE_LIMIT_CONNECT,
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_HEALTH,
    RATE_LIMIT_MARKET,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 60


def _is_trusted_proxy(request: Request) -> bool:
    if settings.trust_proxy_headers:
        return True
    return get_remote_address(request) in settings.trusted_proxy_ips


def get_client_ip(request: Request) -> str:
    """Resolve the client address used as the rate limit key."""
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First entry is the original client
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer 429 in the standard error envelope with a Retry-After header."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"
    logger.warning(f"Rate limit exceeded for {get_client_ip(request)}: {limit_info}")

    body = ErrorResponse(error=ErrorBody(
        message=f"Too many requests. {limit_info}",
        code="RATE_LIMITED",
    ))
    return JSONResponse(
        status_code=429,
        content=body.model_dump(exclude_none=True),
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


__all__ = [
    "limiter",
    "get_client_ip",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_HEALTH",
    "RATE_LIMIT_AUTH_LOGIN",
    "RATE_LIMIT_AUTH_SIGNUP",
    "RATE_LIMIT_AUTH_REFRESH",
    "RATE_LIMIT_CONNECT",
    "RATE_LIMIT_MARKET",
]
