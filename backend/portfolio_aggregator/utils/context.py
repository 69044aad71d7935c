# backend/portfolio_aggregator/utils/context.py
"""
Request-scoped context storage.

Uses contextvars so values follow the request through await points and
thread offloading (asyncio.to_thread copies the current context).
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_user_id_var: ContextVar[int | None] = ContextVar("user_id", default=None)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, if any."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def get_current_user_id() -> int | None:
    """Return the authenticated user for the current request, if resolved."""
    return _user_id_var.get()


def set_current_user_id(user_id: int | None) -> None:
    _user_id_var.set(user_id)
