# backend/portfolio_aggregator/services/portfolio/service.py
"""
Portfolio valuation engine.

Aggregates a user's platforms and investments into summary figures,
allocation, performance and rankings. get_summary is the only operation that
writes: it refreshes each holding's price and persists the recomputed
valuation.

Partial failure policy:
    A holding whose price cannot be fetched (unknown symbol, provider error,
    timeout) keeps its last persisted current value in the totals and is
    reported in SummaryResult.failures. The request as a whole never fails
    because of one symbol.

Concurrency:
    Prices for distinct symbols are fetched concurrently. The refresh is a
    plain read-then-write without version checks; two summaries for the same
    user may overwrite each other's valuations with equally fresh figures.
"""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from portfolio_aggregator.models import Investment, Platform, Transaction
from portfolio_aggregator.services.constants import (
    ALLOCATION_BUCKETS,
    ALLOCATION_CATEGORIES,
    ALLOCATION_PLACES,
    DEFAULT_ACTIVITY_LIMIT,
    DEFAULT_TOP_PERFORMERS_LIMIT,
    ILLUSTRATIVE_DAY_CHANGE_PERCENT,
    INVESTMENT_STATUS_ACTIVE,
    MONEY_PLACES,
    PERCENT_PLACES,
    PRICE_PLACES,
    VALID_PERIODS,
)
from portfolio_aggregator.services.exceptions import InvalidPeriodError
from portfolio_aggregator.services.portfolio.performance import RepresentativeInvestmentSeries
from portfolio_aggregator.services.portfolio.types import (
    ActivityItem,
    Allocation,
    PerformanceResult,
    PlatformOverview,
    PortfolioSummary,
    PriceFailure,
    SummaryResult,
    TopPerformer,
)
from portfolio_aggregator.services.protocols import (
    MarketDataServiceProtocol,
    PerformanceSeriesBuilder,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
RETURNS_PERCENT_PLACES = Decimal("0.0001")


def _round(value: Decimal, places: Decimal = MONEY_PLACES) -> Decimal:
    return value.quantize(places, rounding=ROUND_HALF_UP)


class PortfolioService:
    """
    Computes portfolio figures for one user at a time.

    Args:
        market_data: Source of current prices and history
        performance_builder: Strategy for get_performance; defaults to the
            representative-investment series
    """

    def __init__(
        self,
        market_data: MarketDataServiceProtocol,
        performance_builder: PerformanceSeriesBuilder | None = None,
    ) -> None:
        self._market_data = market_data
        self._performance = performance_builder or RepresentativeInvestmentSeries(market_data)

    # =========================================================================
    # SUMMARY
    # =========================================================================

    async def get_summary(self, db: Session, user_id: int) -> SummaryResult:
        """
        Refresh every holding's valuation and total the portfolio.

        Returns:
            SummaryResult with rounded figures and any per-holding failures
        """
        platforms = self._load_platforms(db, user_id)
        now = datetime.now(timezone.utc)

        if not platforms:
            return SummaryResult(summary=self._empty_summary(now))

        investments = [inv for platform in platforms for inv in platform.investments]
        prices, errors = await self._fetch_prices({inv.symbol for inv in investments})

        total_value = ZERO
        total_invested = ZERO
        failures: list[PriceFailure] = []

        for investment in investments:
            total_invested += investment.invested_value or ZERO

            price = prices.get(investment.symbol)
            if price is None:
                failures.append(PriceFailure(
                    symbol=investment.symbol,
                    reason=errors[investment.symbol],
                    investment_id=investment.id,
                ))
                total_value += investment.current_value or ZERO
                continue

            self._apply_price(investment, price)
            total_value += investment.current_value

        db.commit()

        if failures:
            logger.warning(
                f"Summary for user {user_id} used last known values for "
                f"{len(failures)} of {len(investments)} holdings"
            )

        total_returns = total_value - total_invested
        returns_percentage = (
            total_returns / total_invested * HUNDRED if total_invested > 0 else ZERO
        )
        day_change = total_value * ILLUSTRATIVE_DAY_CHANGE_PERCENT / HUNDRED

        summary = PortfolioSummary(
            total_value=_round(total_value),
            total_invested=_round(total_invested),
            total_returns=_round(total_returns),
            returns_percentage=_round(returns_percentage, PERCENT_PLACES),
            day_change=_round(day_change),
            day_change_percentage=ILLUSTRATIVE_DAY_CHANGE_PERCENT if total_value > 0 else ZERO,
            last_updated=now,
        )
        return SummaryResult(
            summary=summary,
            failures=failures,
            priced_count=len(investments) - len(failures),
        )

    async def _fetch_prices(self, symbols: set[str]) -> tuple[dict[str, Decimal], dict[str, str]]:
        """Fetch prices concurrently; returns (prices, error message per failed symbol)."""
        ordered = sorted(symbols)
        results = await asyncio.gather(
            *(self._market_data.get_price(symbol) for symbol in ordered),
            return_exceptions=True,
        )

        prices: dict[str, Decimal] = {}
        errors: dict[str, str] = {}
        for symbol, result in zip(ordered, results):
            if isinstance(result, Exception):
                logger.error(f"Price refresh failed for {symbol}: {result}")
                errors[symbol] = str(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                prices[symbol] = result
        return prices, errors

    @staticmethod
    def _apply_price(investment: Investment, price: Decimal) -> None:
        """Recompute a holding's valuation from a fresh price."""
        # Stored at the price column's scale so current_value matches after reload
        price = price.quantize(PRICE_PLACES, rounding=ROUND_HALF_UP)
        invested = investment.invested_value or ZERO
        current_value = price * investment.quantity

        investment.current_price = price
        investment.current_value = current_value
        investment.returns = current_value - invested
        investment.returns_percent = (
            ((current_value - invested) / invested * HUNDRED).quantize(
                RETURNS_PERCENT_PLACES, rounding=ROUND_HALF_UP
            )
            if invested > 0 else None
        )

    @staticmethod
    def _empty_summary(now: datetime) -> PortfolioSummary:
        return PortfolioSummary(
            total_value=_round(ZERO),
            total_invested=_round(ZERO),
            total_returns=_round(ZERO),
            returns_percentage=_round(ZERO),
            day_change=_round(ZERO),
            day_change_percentage=_round(ZERO),
            last_updated=now,
        )

    # =========================================================================
    # PLATFORMS
    # =========================================================================

    def get_platforms(self, db: Session, user_id: int) -> list[PlatformOverview]:
        return [
            PlatformOverview(
                id=platform.id,
                name=platform.name.value,
                type=platform.type.value,
                status=platform.status.value,
                balance=platform.balance,
                holdings=len(platform.investments),
                last_sync=platform.last_sync,
            )
            for platform in self._load_platforms(db, user_id)
        ]

    # =========================================================================
    # PERFORMANCE
    # =========================================================================

    async def get_performance(self, db: Session, user_id: int, period: str) -> PerformanceResult:
        """
        Build the performance series for a period.

        Raises:
            InvalidPeriodError: period is not one of VALID_PERIODS
        """
        if period not in VALID_PERIODS:
            raise InvalidPeriodError(period, VALID_PERIODS)

        platforms = self._load_platforms(db, user_id)
        return await self._performance.build(platforms, period)

    # =========================================================================
    # ALLOCATION
    # =========================================================================

    def get_allocation(self, db: Session, user_id: int) -> Allocation:
        """
        Share of each category in the classified holdings' current value.

        Types outside ALLOCATION_BUCKETS are left out of the total. Tenths are
        distributed by largest remainder, so a non-empty allocation sums to
        exactly 100.0.
        """
        buckets = {category: ZERO for category in ALLOCATION_CATEGORIES}
        for investment in self._load_investments(db, user_id):
            category = ALLOCATION_BUCKETS.get((investment.type or "").strip().lower())
            if category is None:
                continue
            buckets[category] += investment.current_value or ZERO

        total = sum(buckets.values(), ZERO)
        if total <= 0:
            return Allocation(**{category: _round(ZERO, ALLOCATION_PLACES) for category in ALLOCATION_CATEGORIES})

        return Allocation(**self._distribute_percentages(buckets, total))

    @staticmethod
    def _distribute_percentages(buckets: dict[str, Decimal], total: Decimal) -> dict[str, Decimal]:
        # Work in tenths of a percent: floor everything, then hand the
        # leftover tenths to the largest fractional parts.
        scaled = {category: value / total * 1000 for category, value in buckets.items()}
        floors = {category: value.to_integral_value(rounding=ROUND_DOWN) for category, value in scaled.items()}
        leftover = int(1000 - sum(floors.values()))

        by_remainder = sorted(
            ALLOCATION_CATEGORIES,
            key=lambda category: scaled[category] - floors[category],
            reverse=True,
        )
        for category in by_remainder[:leftover]:
            floors[category] += 1

        return {
            category: (floors[category] / 10).quantize(ALLOCATION_PLACES)
            for category in ALLOCATION_CATEGORIES
        }

    # =========================================================================
    # TOP PERFORMERS / ACTIVITY
    # =========================================================================

    def get_top_performers(
        self,
        db: Session,
        user_id: int,
        limit: int = DEFAULT_TOP_PERFORMERS_LIMIT,
    ) -> list[TopPerformer]:
        """
        Active holdings by returns percent, best first.

        Holdings without a returns percent sort last; ties break on symbol
        then ID so the order is stable.
        """
        active = [
            inv for inv in self._load_investments(db, user_id)
            if inv.status == INVESTMENT_STATUS_ACTIVE
        ]
        active.sort(key=lambda inv: (
            inv.returns_percent is None,
            -(inv.returns_percent or ZERO),
            inv.symbol,
            inv.id,
        ))

        return [
            TopPerformer(
                id=inv.id,
                symbol=inv.symbol,
                name=inv.name,
                returns=inv.returns_percent,
                current_value=inv.current_value,
            )
            for inv in active[:limit]
        ]

    def get_activity(
        self,
        db: Session,
        user_id: int,
        limit: int = DEFAULT_ACTIVITY_LIMIT,
    ) -> list[ActivityItem]:
        stmt = (
            select(Transaction)
            .where(Transaction.user_id == user_id)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(limit)
        )
        return [
            ActivityItem(
                id=tx.id,
                type=tx.type,
                symbol=tx.symbol,
                amount=tx.amount,
                timestamp=tx.date,
            )
            for tx in db.execute(stmt).scalars()
        ]

    # =========================================================================
    # QUERIES
    # =========================================================================

    @staticmethod
    def _load_platforms(db: Session, user_id: int) -> list[Platform]:
        stmt = (
            select(Platform)
            .where(Platform.user_id == user_id)
            .options(selectinload(Platform.investments))
            .order_by(Platform.id)
        )
        return list(db.execute(stmt).scalars())

    @staticmethod
    def _load_investments(db: Session, user_id: int) -> list[Investment]:
        stmt = (
            select(Investment)
            .join(Platform, Investment.platform_id == Platform.id)
            .where(Platform.user_id == user_id)
            .order_by(Investment.id)
        )
        return list(db.execute(stmt).scalars())
