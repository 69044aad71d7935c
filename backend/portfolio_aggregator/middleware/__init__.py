# backend/portfolio_aggregator/middleware/__init__.py
"""
ASGI middleware: correlation ID tracking and slowapi rate limiting.
"""

from portfolio_aggregator.middleware.correlation import CorrelationIdMiddleware
from portfolio_aggregator.middleware.rate_limit import (
    limiter,
    rate_limit_exceeded_handler,
    SlowAPIMiddleware,
)

__all__ = [
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
]
