# backend/portfolio_aggregator/services/market_data/service.py
"""
Market data service: the one entry point the rest of the app uses for prices.

One instance is built during application startup and handed to the services
that need it. It owns the active provider, enforces a per-call timeout and
logs every failure before re-raising it, so callers decide how to degrade.

switch_provider() replaces the active provider without locking. Reads that
race with a switch may hit either provider; only switch at startup or in tests.
"""

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from decimal import Decimal
from typing import TypeVar

from portfolio_aggregator.config import Settings
from portfolio_aggregator.services.exceptions import (
    ProviderConfigurationError,
    ProviderTimeoutError,
)
from portfolio_aggregator.services.market_data.base import (
    HistoricalPoint,
    IndexValue,
    MarketDataProvider,
    Quote,
)
from portfolio_aggregator.services.market_data.factory import (
    create_provider,
    normalize_provider_type,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MarketDataService:
    """
    Delegates market data calls to the configured provider.

    Args:
        settings: Application settings (provider type, timeout, provider options)
        provider: Use this provider instead of building one from settings
    """

    def __init__(self, settings: Settings, provider: MarketDataProvider | None = None) -> None:
        self._settings = settings
        self._timeout = settings.market_data_timeout_seconds
        self._provider: MarketDataProvider | None = None
        self._provider_type: str | None = None
        if provider is not None:
            self._activate(provider)

    # =========================================================================
    # PROVIDER SELECTION
    # =========================================================================

    def initialize(self, provider_type: str | None = None) -> MarketDataProvider:
        """
        Select and verify the active provider.

        Args:
            provider_type: Overrides settings.market_data_provider

        Raises:
            ProviderConfigurationError: The selected provider reports it is
                not configured
        """
        requested = normalize_provider_type(provider_type or self._settings.market_data_provider)
        provider = create_provider(requested, self._settings)
        self._activate(provider)
        logger.info(
            f"Market data service initialized with provider '{provider.name}' "
            f"(requested '{requested}')"
        )
        return provider

    def switch_provider(self, provider_type: str) -> MarketDataProvider:
        previous = self._provider_type
        provider = self.initialize(provider_type)
        logger.info(f"Switched market data provider from '{previous}' to '{provider.name}'")
        return provider

    def _activate(self, provider: MarketDataProvider) -> None:
        if not provider.is_configured():
            logger.error(f"Market data provider '{provider.name}' is not configured")
            raise ProviderConfigurationError(provider=provider.name)
        self._provider = provider
        self._provider_type = provider.provider_type

    @property
    def provider(self) -> MarketDataProvider:
        if self._provider is None:
            raise ProviderConfigurationError("Market data service has not been initialized")
        return self._provider

    @property
    def provider_type(self) -> str | None:
        return self._provider_type

    @property
    def timeout(self) -> float:
        return self._timeout

    # =========================================================================
    # DELEGATED OPERATIONS
    # =========================================================================

    async def get_price(self, symbol: str) -> Decimal:
        return await self._call("get_price", self.provider.get_price(symbol), symbol)

    async def get_quote(self, symbol: str) -> Quote:
        return await self._call("get_quote", self.provider.get_quote(symbol), symbol)

    async def get_historical_data(self, symbol: str, period: str) -> list[HistoricalPoint]:
        return await self._call(
            "get_historical_data",
            self.provider.get_historical_data(symbol, period),
            f"{symbol} ({period})",
        )

    async def get_bulk_quotes(self, symbols: Sequence[str]) -> dict[str, Quote | None]:
        """
        Quote each symbol under its own timeout.

        A symbol that fails or times out maps to None without affecting the
        others.
        """
        unique = list(dict.fromkeys(symbols))
        results = await asyncio.gather(
            *(self.get_quote(symbol) for symbol in unique),
            return_exceptions=True,
        )

        quotes: dict[str, Quote | None] = {}
        for symbol, result in zip(unique, results):
            if isinstance(result, Exception):
                quotes[symbol] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                quotes[symbol] = result
        return quotes

    async def get_indices(self) -> list[IndexValue]:
        return await self._call("get_indices", self.provider.get_indices())

    async def _call(self, operation: str, awaitable: Awaitable[T], target: str | None = None) -> T:
        """Await a provider call under the timeout, logging and re-raising failures."""
        name = self.provider.name
        label = f"{operation} for {target}" if target else operation
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error(f"[{name}] {label} timed out after {self._timeout:g}s")
            raise ProviderTimeoutError(name, operation, self._timeout)
        except Exception as e:
            logger.error(f"[{name}] {label} failed: {e}")
            raise
