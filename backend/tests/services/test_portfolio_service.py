# backend/tests/services/test_portfolio_service.py
"""
Tests for PortfolioService.

This module tests:
- Summary totals, persisted valuations and partial failures
- Platform overview
- Performance series selection and period validation
- Allocation buckets and rounding
- Top performer ordering and activity feed
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from portfolio_aggregator.config import settings
from portfolio_aggregator.models import Investment
from portfolio_aggregator.services.exceptions import InvalidPeriodError, ProviderUnavailableError
from portfolio_aggregator.services.market_data import HistoricalPoint, MarketDataService
from portfolio_aggregator.services.portfolio import PerformanceResult, PortfolioService


@pytest.fixture
def service(market_data) -> PortfolioService:
    return PortfolioService(market_data)


# =============================================================================
# SUMMARY
# =============================================================================


class TestSummary:

    @pytest.mark.asyncio
    async def test_no_platforms_is_all_zero(self, db, service, make_user):
        user = make_user()

        result = await service.get_summary(db, user.id)
        summary = result.summary

        assert summary.total_value == 0
        assert summary.total_invested == 0
        assert summary.total_returns == 0
        assert summary.returns_percentage == 0
        assert summary.last_updated.tzinfo is not None
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_totals(self, db, service, make_user, make_platform, make_investment):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="RELIANCE", quantity="10", avg_price="2500")
        make_investment(platform, symbol="TCS", quantity="5", avg_price="3000")

        result = await service.get_summary(db, user.id)
        summary = result.summary

        # 2850.75 * 10 + 3520.30 * 5
        assert summary.total_value == Decimal("46109.00")
        assert summary.total_invested == Decimal("40000.00")
        assert summary.total_returns == Decimal("6109.00")
        assert summary.returns_percentage == Decimal("15.27")
        assert summary.day_change == Decimal("442.65")
        assert summary.day_change_percentage == Decimal("0.96")
        assert result.priced_count == 2
        assert not result.is_partial

    @pytest.mark.asyncio
    async def test_persisted_value_is_price_times_quantity(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        zerodha = make_platform(user, "zerodha")
        binance = make_platform(user, "binance")
        make_investment(zerodha, symbol="INFY", quantity="3", avg_price="1400")
        make_investment(binance, symbol="BTC", quantity="0.5", avg_price="3000000", type="crypto")

        await service.get_summary(db, user.id)
        db.expire_all()

        for investment in db.query(Investment).all():
            assert investment.current_value == investment.current_price * investment.quantity
            assert investment.returns == investment.current_value - investment.invested_value

    @pytest.mark.asyncio
    async def test_fractional_quantity_keeps_exact_value(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        platform = make_platform(user, "groww")
        make_investment(platform, symbol="RELIANCE", quantity="0.12345678", avg_price="2000")

        await service.get_summary(db, user.id)
        db.expire_all()

        investment = db.query(Investment).one()
        assert investment.current_price == Decimal("2850.75")
        assert investment.current_value == Decimal("351.944415585")
        assert investment.current_value == investment.current_price * investment.quantity
        assert investment.returns == investment.current_value - investment.invested_value

    @pytest.mark.asyncio
    async def test_returns_percent_persisted(self, db, service, make_user, make_platform, make_investment):
        user = make_user()
        platform = make_platform(user)
        inv = make_investment(platform, symbol="INFY", quantity="2", avg_price="1000")

        await service.get_summary(db, user.id)
        db.refresh(inv)

        # (2901 - 2000) / 2000 * 100
        assert inv.returns_percent == Decimal("45.0500")

    @pytest.mark.asyncio
    async def test_zero_invested_has_no_returns_percent(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        platform = make_platform(user, "manual")
        inv = make_investment(platform, symbol="INFY", quantity="1", avg_price="0", invested_value="0")

        result = await service.get_summary(db, user.id)
        db.refresh(inv)

        assert inv.returns_percent is None
        assert result.summary.returns_percentage == 0
        assert result.summary.total_value == Decimal("1450.50")

    @pytest.mark.asyncio
    async def test_unknown_symbol_falls_back_to_last_value(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="TCS", quantity="1", avg_price="3000")
        stale = make_investment(
            platform, symbol="DELISTED", quantity="4", avg_price="100", current_value="380",
        )

        result = await service.get_summary(db, user.id)

        assert result.summary.total_value == Decimal("3900.30")
        assert result.is_partial
        assert result.priced_count == 1
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.symbol == "DELISTED"
        assert failure.investment_id == stale.id
        assert "not found" in failure.reason

        db.refresh(stale)
        assert stale.current_value == Decimal("380")

    @pytest.mark.asyncio
    async def test_provider_error_is_partial_failure(
        self, db, service, stub_provider, make_user, make_platform, make_investment,
    ):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="TCS", quantity="1", avg_price="3000")
        make_investment(platform, symbol="INFY", quantity="1", avg_price="1000")
        stub_provider.fail("INFY", ProviderUnavailableError("stub", "503 from upstream"))

        result = await service.get_summary(db, user.id)

        assert [f.symbol for f in result.failures] == ["INFY"]
        # TCS refreshed, INFY kept at its invested value
        assert result.summary.total_value == Decimal("4520.30")

    @pytest.mark.asyncio
    async def test_timeout_is_partial_failure(
        self, db, stub_provider, make_user, make_platform, make_investment,
    ):
        fast = settings.model_copy(update={"market_data_timeout_seconds": 0.05})
        service = PortfolioService(MarketDataService(fast, provider=stub_provider))
        stub_provider.hang("INFY", 1.0)

        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="TCS", quantity="1", avg_price="3000")
        make_investment(platform, symbol="INFY", quantity="1", avg_price="1000")

        result = await service.get_summary(db, user.id)

        assert len(result.failures) == 1
        assert result.failures[0].symbol == "INFY"
        assert "timed out" in result.failures[0].reason

    @pytest.mark.asyncio
    async def test_shared_symbol_fetched_once(
        self, db, service, stub_provider, make_user, make_platform, make_investment,
    ):
        user = make_user()
        make_investment(make_platform(user, "zerodha"), symbol="TCS", quantity="1")
        make_investment(make_platform(user, "groww"), symbol="TCS", quantity="2")

        await service.get_summary(db, user.id)

        assert stub_provider.calls.count(("price", "TCS")) == 1

    @pytest.mark.asyncio
    async def test_other_users_untouched(self, db, service, make_user, make_platform, make_investment):
        me = make_user(email="me@example.com")
        other = make_user(email="other@example.com")
        make_investment(make_platform(me), symbol="TCS", quantity="1", avg_price="3000")
        theirs = make_investment(make_platform(other), symbol="INFY", quantity="1", avg_price="1000")

        result = await service.get_summary(db, me.id)

        assert result.summary.total_invested == Decimal("3000.00")
        db.refresh(theirs)
        assert theirs.current_value == Decimal("1000")


# =============================================================================
# PLATFORMS
# =============================================================================


class TestPlatforms:

    def test_lists_platforms_with_holding_counts(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        zerodha = make_platform(user, "zerodha", balance=Decimal("1500.50"))
        make_platform(user, "wazirx")
        make_investment(zerodha, symbol="TCS")
        make_investment(zerodha, symbol="INFY")

        overview = service.get_platforms(db, user.id)

        assert [(p.name, p.type, p.holdings) for p in overview] == [
            ("zerodha", "broker", 2),
            ("wazirx", "exchange", 0),
        ]
        assert overview[0].status == "connected"
        assert overview[0].balance == Decimal("1500.50")


# =============================================================================
# PERFORMANCE
# =============================================================================


class TestPerformance:

    @pytest.mark.asyncio
    async def test_invalid_period(self, db, service, make_user):
        user = make_user()

        with pytest.raises(InvalidPeriodError) as exc_info:
            await service.get_performance(db, user.id, "INVALID")
        assert exc_info.value.message.startswith("Invalid period. Must be one of: 1D, 1W")

    @pytest.mark.asyncio
    async def test_no_investments_is_empty(self, db, service, make_user, make_platform):
        user = make_user()
        make_platform(user)

        result = await service.get_performance(db, user.id, "1M")

        assert result.period == "1M"
        assert result.data_points == []
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_series_of_first_holding_scaled_by_quantity(
        self, db, service, stub_provider, make_user, make_platform, make_investment,
    ):
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        stub_provider.history["TCS"] = [
            HistoricalPoint(start, Decimal("100.00"), Decimal("0.00")),
            HistoricalPoint(start + timedelta(days=1), Decimal("110.00"), Decimal("10.00")),
        ]
        user = make_user()
        first = make_platform(user, "zerodha")
        make_investment(first, symbol="TCS", quantity="3")
        make_investment(first, symbol="INFY", quantity="1")
        make_investment(make_platform(user, "groww"), symbol="RELIANCE", quantity="1")

        result = await service.get_performance(db, user.id, "1W")

        assert [p.value for p in result.data_points] == [Decimal("300.00"), Decimal("330.00")]
        assert [p.returns for p in result.data_points] == [Decimal("0.00"), Decimal("10.00")]
        assert ("history", "TCS") in stub_provider.calls

    @pytest.mark.asyncio
    async def test_history_failure_reported(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        inv = make_investment(make_platform(user), symbol="DELISTED")

        result = await service.get_performance(db, user.id, "1M")

        assert result.data_points == []
        assert len(result.failures) == 1
        assert result.failures[0].investment_id == inv.id

    @pytest.mark.asyncio
    async def test_custom_builder(self, db, market_data, make_user):
        class FixedBuilder:
            async def build(self, platforms, period):
                return PerformanceResult(period=period)

        service = PortfolioService(market_data, performance_builder=FixedBuilder())
        result = await service.get_performance(db, make_user().id, "ALL")

        assert result.period == "ALL"


# =============================================================================
# ALLOCATION
# =============================================================================


class TestAllocation:

    def test_empty_is_all_zero(self, db, service, make_user):
        allocation = service.get_allocation(db, make_user().id)
        assert (allocation.equity, allocation.debt, allocation.gold, allocation.crypto) == (0, 0, 0, 0)

    def test_buckets(self, db, service, make_user, make_platform, make_investment):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="TCS", type="Equity", current_value="600")
        make_investment(platform, symbol="HDFC_FUND", type="mutual_fund", current_value="300")
        make_investment(platform, symbol="GOLDBEES", type="gold", current_value="100")
        make_investment(platform, symbol="FLAT", type="real_estate", current_value="5000")

        allocation = service.get_allocation(db, user.id)

        assert allocation.equity == Decimal("60.0")
        assert allocation.debt == Decimal("30.0")
        assert allocation.gold == Decimal("10.0")
        assert allocation.crypto == Decimal("0.0")

    def test_thirds_sum_to_exactly_100(self, db, service, make_user, make_platform, make_investment):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="A", type="equity", current_value="1")
        make_investment(platform, symbol="B", type="debt", current_value="1")
        make_investment(platform, symbol="C", type="crypto", current_value="1")

        allocation = service.get_allocation(db, user.id)
        total = allocation.equity + allocation.debt + allocation.gold + allocation.crypto

        assert total == Decimal("100.0")
        assert sorted([allocation.equity, allocation.debt, allocation.crypto]) == [
            Decimal("33.3"), Decimal("33.3"), Decimal("33.4"),
        ]

    def test_only_unclassified_types_is_zero(self, db, service, make_user, make_platform, make_investment):
        user = make_user()
        make_investment(make_platform(user), symbol="FLAT", type="real_estate", current_value="100")

        allocation = service.get_allocation(db, user.id)
        assert allocation.equity == 0


# =============================================================================
# TOP PERFORMERS / ACTIVITY
# =============================================================================


class TestTopPerformers:

    def test_ordered_by_returns_and_truncated(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="LOW", returns_percent="5")
        make_investment(platform, symbol="MID", returns_percent="16.67")
        make_investment(platform, symbol="TOP", returns_percent="40")
        make_investment(platform, symbol="NEW", returns_percent=None)

        performers = service.get_top_performers(db, user.id, limit=2)

        assert [p.returns for p in performers] == [Decimal("40"), Decimal("16.67")]
        assert [p.symbol for p in performers] == ["TOP", "MID"]

    def test_unpriced_last_and_inactive_excluded(
        self, db, service, make_user, make_platform, make_investment,
    ):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="NEW", returns_percent=None)
        make_investment(platform, symbol="LOSS", returns_percent="-12.5")
        make_investment(platform, symbol="SOLD", returns_percent="99", status="sold")

        performers = service.get_top_performers(db, user.id)

        assert [p.symbol for p in performers] == ["LOSS", "NEW"]

    def test_ties_break_on_symbol(self, db, service, make_user, make_platform, make_investment):
        user = make_user()
        platform = make_platform(user)
        make_investment(platform, symbol="ZED", returns_percent="10")
        make_investment(platform, symbol="ABC", returns_percent="10")

        assert [p.symbol for p in service.get_top_performers(db, user.id)] == ["ABC", "ZED"]


class TestActivity:

    def test_newest_first_limited(self, db, service, make_user, make_transaction):
        user = make_user()
        for days_ago in range(12):
            make_transaction(user, symbol=f"S{days_ago}", days_ago=days_ago)

        activity = service.get_activity(db, user.id)

        assert len(activity) == 10
        assert [a.symbol for a in activity[:3]] == ["S0", "S1", "S2"]

    def test_only_own_transactions(self, db, service, make_user, make_transaction):
        me = make_user(email="me@example.com")
        other = make_user(email="other@example.com")
        make_transaction(me, symbol="MINE")
        make_transaction(other, symbol="THEIRS")

        assert [a.symbol for a in service.get_activity(db, me.id, limit=5)] == ["MINE"]
