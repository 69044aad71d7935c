# backend/portfolio_aggregator/routers/__init__.py
"""
API routers.

- auth: signup, login, token refresh, logout, profile
- portfolio: valuation, allocation, rankings, activity, platform connection
- market: quotes and indices
"""

from portfolio_aggregator.routers.auth import router as auth_router
from portfolio_aggregator.routers.market import router as market_router
from portfolio_aggregator.routers.portfolio import router as portfolio_router

__all__ = [
    "auth_router",
    "market_router",
    "portfolio_router",
]
