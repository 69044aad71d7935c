# backend/portfolio_aggregator/services/market_data/base.py
"""
Abstract interface for market data providers.

Every provider exposes the same asynchronous capability set, so the
MarketDataService can swap backends (synthetic generator, live feed) based on
configuration without callers noticing.

Retry behavior for transient failures is shared: subclasses route network
calls through `_execute_with_retry` and tune it with class attributes.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from portfolio_aggregator.services.constants import VALID_PERIODS
from portfolio_aggregator.services.exceptions import (
    InvalidPeriodError,
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class Quote:
    """Point-in-time market snapshot for a single symbol. Not persisted."""
    symbol: str
    price: Decimal
    change: Decimal
    change_percent: Decimal
    volume: int
    high: Decimal
    low: Decimal
    open: Decimal
    close: Decimal
    timestamp: datetime


@dataclass(frozen=True)
class HistoricalPoint:
    """
    One point of a price history.

    Attributes:
        date: Point timestamp (UTC)
        value: Price at that point
        returns: Percent change relative to the series baseline
    """
    date: datetime
    value: Decimal
    returns: Decimal


@dataclass(frozen=True)
class IndexValue:
    name: str
    value: Decimal
    change: Decimal
    change_percent: Decimal


# =============================================================================
# PROVIDER INTERFACE
# =============================================================================


class MarketDataProvider(ABC):
    """
    Abstract base class for market data providers.

    Implementations must provide:
        - name / provider_type
        - get_price, get_quote, get_historical_data, get_indices
        - is_configured

    get_bulk_quotes has a default implementation that fans out to get_quote
    concurrently and degrades per-symbol failures to None.

    Retry Configuration (override in subclasses):
        MAX_RETRY_ATTEMPTS: Total attempts including the first (default: 3)
        RETRY_MIN_WAIT / RETRY_MAX_WAIT: Backoff bounds in seconds
        RETRY_MULTIPLIER: Exponential backoff multiplier
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g., 'synthetic', 'yahoo')."""
        pass

    @property
    def provider_type(self) -> str:
        """Configuration key this provider is selected by."""
        return self.name

    @abstractmethod
    async def get_price(self, symbol: str) -> Decimal:
        """
        Fetch the latest price for a symbol.

        Raises:
            SymbolNotFoundError: Symbol unknown to this provider
            ProviderUnavailableError: Network or API error
        """
        pass

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Fetch a detailed quote (change, volume, OHLC) for a symbol."""
        pass

    @abstractmethod
    async def get_historical_data(self, symbol: str, period: str) -> list[HistoricalPoint]:
        """
        Fetch an ordered price history, oldest first.

        Args:
            symbol: Symbol to look up
            period: One of 1D, 1W, 1M, 3M, 6M, 1Y, ALL

        Raises:
            InvalidPeriodError: Unsupported period code
            SymbolNotFoundError: Symbol unknown to this provider
        """
        pass

    @abstractmethod
    async def get_indices(self) -> list[IndexValue]:
        """Fetch the fixed set of market indices this provider tracks."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Report whether the provider has everything it needs to serve calls."""
        pass

    async def get_bulk_quotes(self, symbols: Sequence[str]) -> dict[str, Quote | None]:
        """
        Fetch quotes for several symbols.

        A failure for one symbol yields a None entry for it; the remaining
        symbols are unaffected.
        """
        unique = list(dict.fromkeys(symbols))
        results = await asyncio.gather(
            *(self.get_quote(symbol) for symbol in unique),
            return_exceptions=True,
        )

        quotes: dict[str, Quote | None] = {}
        for symbol, result in zip(unique, results):
            if isinstance(result, Exception):
                logger.warning(f"[{self.name}] Quote failed for {symbol}: {result}")
                quotes[symbol] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                quotes[symbol] = result
        return quotes

    # =========================================================================
    # SHARED HELPERS
    # =========================================================================

    @staticmethod
    def _validate_period(period: str) -> str:
        if period not in VALID_PERIODS:
            raise InvalidPeriodError(period, VALID_PERIODS)
        return period

    async def _execute_with_retry(
            self,
            func: Callable[..., Awaitable[T]],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Await a coroutine function, retrying transient failures.

        Retries ProviderUnavailableError and RateLimitError with exponential
        backoff. SymbolNotFoundError and anything else propagate immediately.

        Raises:
            The last exception if all attempts fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def _inner() -> T:
            return await func(*args, **kwargs)

        return await _inner()
