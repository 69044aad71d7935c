# backend/portfolio_aggregator/services/portfolio/performance.py
"""
Performance series builders.

RepresentativeInvestmentSeries tracks a single holding (the first platform's
first investment) scaled by its quantity. It is a stand-in for a true
portfolio-weighted series; PortfolioService depends only on the
PerformanceSeriesBuilder protocol, so a multi-investment builder can replace
it without changing the API.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal, ROUND_HALF_UP

from portfolio_aggregator.models import Investment, Platform
from portfolio_aggregator.services.portfolio.types import (
    PerformancePoint,
    PerformanceResult,
    PriceFailure,
)
from portfolio_aggregator.services.protocols import MarketDataServiceProtocol

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")


class RepresentativeInvestmentSeries:
    """Series of the first holding on the first platform, in holding value."""

    def __init__(self, market_data: MarketDataServiceProtocol) -> None:
        self._market_data = market_data

    async def build(self, platforms: Sequence[Platform], period: str) -> PerformanceResult:
        result = PerformanceResult(period=period)

        investment = self._select(platforms)
        if investment is None:
            return result

        try:
            history = await self._market_data.get_historical_data(investment.symbol, period)
        except Exception as e:
            logger.warning(
                f"Performance series unavailable for {investment.symbol} ({period}): {e}"
            )
            result.failures.append(PriceFailure(
                symbol=investment.symbol,
                reason=str(e),
                investment_id=investment.id,
            ))
            return result

        quantity = investment.quantity
        result.data_points = [
            PerformancePoint(
                date=point.date,
                value=(point.value * quantity).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP),
                returns=point.returns,
            )
            for point in history
        ]
        return result

    @staticmethod
    def _select(platforms: Sequence[Platform]) -> Investment | None:
        ordered = sorted(platforms, key=lambda p: p.id)
        if not ordered:
            return None
        investments = sorted(ordered[0].investments, key=lambda i: i.id)
        return investments[0] if investments else None
