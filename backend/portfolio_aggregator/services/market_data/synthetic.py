# backend/portfolio_aggregator/services/market_data/synthetic.py
"""
Synthetic market data provider.

Serves prices from a fixed table of Indian equities, mutual funds and crypto
assets and derives quotes and histories from them with bounded randomness.
Used for development, demos and tests; pass a seed for reproducible output.
"""

import asyncio
import logging
import random
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

from portfolio_aggregator.services.constants import PERIODS
from portfolio_aggregator.services.exceptions import SymbolNotFoundError
from portfolio_aggregator.services.market_data.base import (
    HistoricalPoint,
    IndexValue,
    MarketDataProvider,
    Quote,
)

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")

BASE_PRICES: dict[str, Decimal] = {
    # Equities
    "RELIANCE": Decimal("2850.75"),
    "INFY": Decimal("1450.50"),
    "TCS": Decimal("3520.30"),
    "HDFC": Decimal("1680.25"),
    "ICICIBANK": Decimal("945.80"),
    "SBIN": Decimal("598.45"),
    "BHARTIARTL": Decimal("875.20"),
    "ITC": Decimal("425.60"),
    "KOTAKBANK": Decimal("1785.90"),
    "LT": Decimal("3245.75"),
    "HDFCBANK": Decimal("1625.40"),
    "WIPRO": Decimal("425.80"),
    "TATAMOTORS": Decimal("625.90"),
    "TATASTEEL": Decimal("135.50"),
    "AXISBANK": Decimal("1085.65"),
    "MARUTI": Decimal("10250.30"),
    "SUNPHARMA": Decimal("1545.20"),
    "ADANIPORTS": Decimal("785.40"),
    "ONGC": Decimal("185.75"),
    "POWERGRID": Decimal("245.90"),
    # Mutual funds (NAV)
    "HDFC_EQUITY_FUND": Decimal("850.50"),
    "ICICI_BLUECHIP_FUND": Decimal("95.30"),
    "SBI_SMALL_CAP_FUND": Decimal("125.75"),
    "AXIS_MIDCAP_FUND": Decimal("78.90"),
    # Crypto (INR)
    "BTC": Decimal("3500000"),
    "ETH": Decimal("180000"),
    "BNB": Decimal("25000"),
    "USDT": Decimal("83.50"),
}

INDICES: tuple[IndexValue, ...] = (
    IndexValue("NIFTY50", Decimal("19485.50"), Decimal("125.30"), Decimal("0.65")),
    IndexValue("SENSEX", Decimal("65450.75"), Decimal("285.60"), Decimal("0.44")),
    IndexValue("BANKNIFTY", Decimal("45320.80"), Decimal("-150.25"), Decimal("-0.33")),
    IndexValue("NIFTYIT", Decimal("31245.90"), Decimal("420.50"), Decimal("1.36")),
)

# History trends from 85% to 100% of the current price, +/-5% noise per point
HISTORY_BASELINE = 0.85
HISTORY_TREND = 0.15
HISTORY_NOISE = 0.05

# Daily move for quotes, as a fraction of price
QUOTE_MAX_MOVE = 0.02
VOLUME_RANGE = (500_000, 5_500_000)


def _money(value: float | Decimal) -> Decimal:
    return Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


class SyntheticMarketDataProvider(MarketDataProvider):
    """
    Deterministic-when-seeded market data generator.

    Args:
        seed: Seed for the private random generator (None for OS entropy)
        latency_ms: (min, max) simulated I/O delay per call
        prices: Override the price table (mainly for tests)
    """

    def __init__(
            self,
            seed: int | None = None,
            latency_ms: tuple[int, int] = (10, 50),
            prices: dict[str, Decimal] | None = None,
    ) -> None:
        self._random = random.Random(seed)
        self._latency_ms = latency_ms
        self._prices = dict(BASE_PRICES if prices is None else prices)

    @property
    def name(self) -> str:
        return "synthetic"

    def is_configured(self) -> bool:
        return True

    @property
    def symbols(self) -> list[str]:
        return sorted(self._prices)

    async def get_price(self, symbol: str) -> Decimal:
        await self._simulate_latency()
        return self._lookup(symbol)

    async def get_quote(self, symbol: str) -> Quote:
        await self._simulate_latency()
        price = self._lookup(symbol)

        change = _money(float(price) * self._random.uniform(-QUOTE_MAX_MOVE, QUOTE_MAX_MOVE))
        change_percent = (change / price * 100).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)

        return Quote(
            symbol=symbol.upper(),
            price=price,
            change=change,
            change_percent=change_percent,
            volume=self._random.randint(*VOLUME_RANGE),
            high=price + abs(change),
            low=price - abs(change),
            open=price - change,
            close=price,
            timestamp=datetime.now(timezone.utc),
        )

    async def get_historical_data(self, symbol: str, period: str) -> list[HistoricalPoint]:
        self._validate_period(period)
        await self._simulate_latency()
        current = float(self._lookup(symbol))

        points, lookback = PERIODS[period]
        end = datetime.now(timezone.utc)
        start = end - lookback
        step = (end - start) / (points - 1) if points > 1 else lookback
        baseline = current * HISTORY_BASELINE

        series = []
        for i in range(points):
            progress = i / (points - 1) if points > 1 else 1.0
            factor = (
                HISTORY_BASELINE
                + HISTORY_TREND * progress
                + self._random.uniform(-HISTORY_NOISE, HISTORY_NOISE)
            )
            value = current * factor
            series.append(HistoricalPoint(
                date=start + step * i,
                value=_money(value),
                returns=_money((value - baseline) / baseline * 100),
            ))
        return series

    async def get_indices(self) -> list[IndexValue]:
        await self._simulate_latency()
        return list(INDICES)

    def _lookup(self, symbol: str) -> Decimal:
        price = self._prices.get(symbol.upper())
        if price is None:
            raise SymbolNotFoundError(symbol, provider=self.name)
        return price

    async def _simulate_latency(self) -> None:
        low, high = self._latency_ms
        if high <= 0:
            return
        await asyncio.sleep(self._random.uniform(low, high) / 1000)
