# backend/portfolio_aggregator/services/market_data/__init__.py
"""
Market data package.

    MarketDataProvider (ABC)
    ├── SyntheticMarketDataProvider   fixed price table + bounded randomness
    └── YahooMarketDataProvider       live feed via yfinance

    create_provider()      config-driven selection with synthetic fallback
    MarketDataService      active provider + timeout + failure logging
"""

from portfolio_aggregator.services.market_data.base import (
    MarketDataProvider,
    Quote,
    HistoricalPoint,
    IndexValue,
)
from portfolio_aggregator.services.market_data.synthetic import SyntheticMarketDataProvider
from portfolio_aggregator.services.market_data.yahoo import YahooMarketDataProvider
from portfolio_aggregator.services.market_data.factory import create_provider, PLANNED_PROVIDERS
from portfolio_aggregator.services.market_data.service import MarketDataService

__all__ = [
    "MarketDataProvider",
    "Quote",
    "HistoricalPoint",
    "IndexValue",
    "SyntheticMarketDataProvider",
    "YahooMarketDataProvider",
    "create_provider",
    "PLANNED_PROVIDERS",
    "MarketDataService",
]
