# backend/portfolio_aggregator/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol keeps the portfolio services decoupled from concrete
implementations: the MarketDataService, a test double, or a future
multi-investment performance builder all satisfy these structurally.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_aggregator.models import Platform
    from portfolio_aggregator.services.market_data.base import HistoricalPoint, IndexValue, Quote
    from portfolio_aggregator.services.portfolio.types import PerformanceResult


class MarketDataServiceProtocol(Protocol):
    """Interface required by PortfolioService and the performance builders."""

    async def get_price(self, symbol: str) -> Decimal:
        ...

    async def get_quote(self, symbol: str) -> Quote:
        ...

    async def get_historical_data(self, symbol: str, period: str) -> list[HistoricalPoint]:
        ...

    async def get_bulk_quotes(self, symbols: Sequence[str]) -> dict[str, Quote | None]:
        ...

    async def get_indices(self) -> list[IndexValue]:
        ...


class PerformanceSeriesBuilder(Protocol):
    """
    Builds the portfolio performance series for a period.

    Implementations must not raise on market data failures; they report
    them in PerformanceResult.failures and return whatever points they have.
    """

    async def build(self, platforms: Sequence[Platform], period: str) -> PerformanceResult:
        ...
