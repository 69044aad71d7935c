# backend/portfolio_aggregator/services/portfolio/__init__.py
"""
Portfolio valuation engine and platform connection workflow.

    service.py      PortfolioService (summary, platforms, performance,
                    allocation, top performers, activity)
    performance.py  performance series builders
    connections.py  PlatformConnectionService
    types.py        result dataclasses
"""

from portfolio_aggregator.services.portfolio.connections import PlatformConnectionService
from portfolio_aggregator.services.portfolio.performance import RepresentativeInvestmentSeries
from portfolio_aggregator.services.portfolio.service import PortfolioService
from portfolio_aggregator.services.portfolio.types import (
    ActivityItem,
    Allocation,
    ConnectionResult,
    PerformancePoint,
    PerformanceResult,
    PlatformOverview,
    PortfolioSummary,
    PriceFailure,
    SummaryResult,
    TopPerformer,
)

__all__ = [
    "PortfolioService",
    "PlatformConnectionService",
    "RepresentativeInvestmentSeries",
    "ActivityItem",
    "Allocation",
    "ConnectionResult",
    "PerformancePoint",
    "PerformanceResult",
    "PlatformOverview",
    "PortfolioSummary",
    "PriceFailure",
    "SummaryResult",
    "TopPerformer",
]
