# backend/portfolio_aggregator/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

Correlation ID sources, in order:
1. X-Correlation-ID request header
2. X-Request-ID request header
3. A generated UUID4

A header value is only used when it is at most 128 characters of
[A-Za-z0-9._-], so nothing else reaches log lines or response headers.

The ID is stored in a context variable for the logging filter and echoed
back in the X-Correlation-ID response header.
"""

import logging
import re
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portfolio_aggregator.utils.context import (
    clear_correlation_id,
    set_correlation_id,
    set_current_user_id,
)

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Incoming IDs that are too long or contain other characters are replaced
MAX_CORRELATION_ID_LENGTH = 128
_SAFE_CORRELATION_ID = re.compile(r"[A-Za-z0-9._-]+")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to every request and response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = self._get_correlation_id(request)
        set_correlation_id(correlation_id)

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
        finally:
            clear_correlation_id()
            set_current_user_id(None)

    @staticmethod
    def _get_correlation_id(request: Request) -> str:
        for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
            value = request.headers.get(header)
            if (
                value
                and len(value) <= MAX_CORRELATION_ID_LENGTH
                and _SAFE_CORRELATION_ID.fullmatch(value)
            ):
                return value
        return str(uuid.uuid4())
