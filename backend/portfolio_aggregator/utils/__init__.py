# backend/portfolio_aggregator/utils/__init__.py
"""
Cross-cutting utilities.

- logging: logging setup with correlation ID support
- context: request-scoped context variables
"""

from portfolio_aggregator.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    get_current_user_id,
    set_current_user_id,
)
from portfolio_aggregator.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_current_user_id",
    "set_current_user_id",
]
