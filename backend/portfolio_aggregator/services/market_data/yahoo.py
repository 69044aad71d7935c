# backend/portfolio_aggregator/services/market_data/yahoo.py
"""
Live-feed market data provider backed by Yahoo Finance.

yfinance is synchronous, so every call runs in a worker thread via
asyncio.to_thread. Symbols are plain exchange tickers (RELIANCE, INFY) and get
the configured exchange suffix appended (RELIANCE.NS).

Error classification follows the message yfinance raises:
- "not found" / "no data" / empty frames -> SymbolNotFoundError
- "rate limit" / "too many requests"     -> RateLimitError (retried)
- anything else                          -> ProviderUnavailableError (retried)
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import yfinance as yf

from portfolio_aggregator.services.constants import PERIODS
from portfolio_aggregator.services.exceptions import (
    ProviderConfigurationError,
    ProviderUnavailableError,
    RateLimitError,
    SymbolNotFoundError,
)
from portfolio_aggregator.services.market_data.base import (
    HistoricalPoint,
    IndexValue,
    MarketDataProvider,
    Quote,
)

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")

INDEX_SYMBOLS: dict[str, str] = {
    "NIFTY50": "^NSEI",
    "SENSEX": "^BSESN",
    "BANKNIFTY": "^NSEBANK",
}

# Intraday resolution only makes sense for the one-day window
_INTERVALS = {"1D": "1h"}


class YahooMarketDataProvider(MarketDataProvider):
    """
    Market data from Yahoo Finance.

    Args:
        symbol_suffix: Exchange suffix without the dot (e.g. "NS", "BO")

    Raises:
        ProviderConfigurationError: If the suffix is not a short alphanumeric code
    """

    def __init__(self, symbol_suffix: str = "NS") -> None:
        suffix = symbol_suffix.strip().lstrip(".").upper()
        if not suffix.isalnum() or len(suffix) > 4:
            raise ProviderConfigurationError(
                f"Invalid Yahoo symbol suffix: '{symbol_suffix}'",
                provider="yahoo",
            )
        self._suffix = suffix

    @property
    def name(self) -> str:
        return "yahoo"

    def is_configured(self) -> bool:
        return bool(self._suffix)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def get_price(self, symbol: str) -> Decimal:
        quote = await self.get_quote(symbol)
        return quote.price

    async def get_quote(self, symbol: str) -> Quote:
        return await self._execute_with_retry(
            asyncio.to_thread, self._fetch_quote, symbol, self._build_symbol(symbol)
        )

    async def get_historical_data(self, symbol: str, period: str) -> list[HistoricalPoint]:
        self._validate_period(period)
        return await self._execute_with_retry(
            asyncio.to_thread, self._fetch_history, symbol, period
        )

    async def get_indices(self) -> list[IndexValue]:
        quotes = await asyncio.gather(*(
            self._execute_with_retry(asyncio.to_thread, self._fetch_quote, name, yahoo_symbol)
            for name, yahoo_symbol in INDEX_SYMBOLS.items()
        ))
        return [
            IndexValue(
                name=name,
                value=quote.price,
                change=quote.change,
                change_percent=quote.change_percent,
            )
            for name, quote in zip(INDEX_SYMBOLS, quotes)
        ]

    # =========================================================================
    # BLOCKING FETCHERS (run in worker threads)
    # =========================================================================

    def _fetch_quote(self, symbol: str, yahoo_symbol: str) -> Quote:
        try:
            df = yf.Ticker(yahoo_symbol).history(period="5d", interval="1d")
        except Exception as e:
            raise self._classify_error(symbol, e) from e

        rows = self._rows(df)
        if not rows:
            raise SymbolNotFoundError(symbol, provider=self.name)

        last = rows[-1]
        price = last["close"]
        previous = rows[-2]["close"] if len(rows) > 1 else last["open"]
        change = (price - previous).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
        change_percent = (
            (change / previous * 100).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
            if previous else Decimal("0")
        )

        return Quote(
            symbol=symbol.upper(),
            price=price,
            change=change,
            change_percent=change_percent,
            volume=last["volume"],
            high=last["high"],
            low=last["low"],
            open=last["open"],
            close=price,
            timestamp=datetime.now(timezone.utc),
        )

    def _fetch_history(self, symbol: str, period: str) -> list[HistoricalPoint]:
        _, lookback = PERIODS[period]
        end = datetime.now(timezone.utc)
        yahoo_symbol = self._build_symbol(symbol)

        logger.debug(f"Fetching {period} history for {yahoo_symbol}")
        try:
            df = yf.Ticker(yahoo_symbol).history(
                start=(end - lookback).strftime("%Y-%m-%d"),
                # end is exclusive in yfinance; include today's bars
                end=(end + timedelta(days=1)).strftime("%Y-%m-%d"),
                interval=_INTERVALS.get(period, "1d"),
            )
        except Exception as e:
            raise self._classify_error(symbol, e) from e

        rows = self._rows(df)
        if not rows:
            raise SymbolNotFoundError(symbol, provider=self.name)

        baseline = rows[0]["close"]
        return [
            HistoricalPoint(
                date=row["date"],
                value=row["close"].quantize(_TWO_PLACES, rounding=ROUND_HALF_UP),
                returns=(
                    ((row["close"] - baseline) / baseline * 100).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
                    if baseline else Decimal("0")
                ),
            )
            for row in rows
        ]

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _build_symbol(self, symbol: str) -> str:
        return f"{symbol.strip().upper()}.{self._suffix}"

    def _rows(self, df) -> list[dict[str, Any]]:
        """Convert a yfinance frame to plain dicts, skipping rows without a close."""
        if df is None or df.empty:
            return []

        rows = []
        for idx, row in df.iterrows():
            close = self._to_decimal(row.get("Close"))
            if close is None:
                continue
            timestamp = idx.to_pydatetime() if hasattr(idx, "to_pydatetime") else idx
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            rows.append({
                "date": timestamp,
                "open": self._to_decimal(row.get("Open")) or close,
                "high": self._to_decimal(row.get("High")) or close,
                "low": self._to_decimal(row.get("Low")) or close,
                "close": close,
                "volume": self._to_int(row.get("Volume")) or 0,
            })
        return rows

    def _classify_error(self, symbol: str, error: Exception) -> Exception:
        error_str = str(error).lower()
        if "not found" in error_str or "no data" in error_str or "delisted" in error_str:
            return SymbolNotFoundError(symbol, provider=self.name)
        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)
        logger.error(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value)).quantize(Decimal("0.00000001"))
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _to_int(value: Any) -> int | None:
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return int(value)
        except (TypeError, ValueError):
            return None
