# backend/portfolio_aggregator/services/portfolio/types.py
"""
Result types returned by the portfolio services.

Aggregations that can partially fail (summary, performance) return the
computed value together with a list of PriceFailure entries instead of
dropping the information.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class PriceFailure:
    """
    A holding that could not be priced during an aggregation.

    Attributes:
        symbol: Symbol whose market data request failed
        reason: Error message from the market data layer
        investment_id: Affected investment (None for series-level failures)
    """
    symbol: str
    reason: str
    investment_id: int | None = None


# =============================================================================
# SUMMARY
# =============================================================================


@dataclass(frozen=True)
class PortfolioSummary:
    total_value: Decimal
    total_invested: Decimal
    total_returns: Decimal
    returns_percentage: Decimal
    day_change: Decimal
    day_change_percentage: Decimal
    last_updated: datetime


@dataclass
class SummaryResult:
    """
    Summary figures plus the holdings that fell back to their last value.

    When failures is non-empty, total_value mixes fresh and last-known
    valuations.
    """
    summary: PortfolioSummary
    failures: list[PriceFailure] = field(default_factory=list)
    priced_count: int = 0

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)


# =============================================================================
# PLATFORMS / ALLOCATION / RANKINGS / ACTIVITY
# =============================================================================


@dataclass(frozen=True)
class PlatformOverview:
    id: int
    name: str
    type: str
    status: str
    balance: Decimal
    holdings: int
    last_sync: datetime | None


@dataclass(frozen=True)
class Allocation:
    """Percent of classified holdings value per category (1 dp)."""
    equity: Decimal
    debt: Decimal
    gold: Decimal
    crypto: Decimal


@dataclass(frozen=True)
class TopPerformer:
    id: int
    symbol: str
    name: str
    returns: Decimal | None
    current_value: Decimal


@dataclass(frozen=True)
class ActivityItem:
    id: int
    type: str
    symbol: str
    amount: Decimal
    timestamp: datetime


# =============================================================================
# PERFORMANCE
# =============================================================================


@dataclass(frozen=True)
class PerformancePoint:
    date: datetime
    value: Decimal
    returns: Decimal


@dataclass
class PerformanceResult:
    period: str
    data_points: list[PerformancePoint] = field(default_factory=list)
    failures: list[PriceFailure] = field(default_factory=list)


# =============================================================================
# CONNECTIONS
# =============================================================================


@dataclass(frozen=True)
class ConnectionResult:
    platform_id: int
    name: str
    status: str
