# backend/portfolio_aggregator/services/market_data/factory.py
"""
Configuration-driven provider selection.

Maps a provider-type string to a constructed MarketDataProvider. Anything
that cannot be built (planned integrations, unknown names, a live feed whose
constructor fails) falls back to the synthetic provider with a warning.
"""

import logging
from collections.abc import Callable

from portfolio_aggregator.config import Settings
from portfolio_aggregator.services.market_data.base import MarketDataProvider
from portfolio_aggregator.services.market_data.synthetic import SyntheticMarketDataProvider
from portfolio_aggregator.services.market_data.yahoo import YahooMarketDataProvider

logger = logging.getLogger(__name__)

SYNTHETIC = "synthetic"

# Brokerage integrations that are recognized but not built yet
PLANNED_PROVIDERS = frozenset({"zerodha", "groww", "binance"})

_ALIASES = {"mock": SYNTHETIC}


def _build_synthetic(settings: Settings) -> MarketDataProvider:
    return SyntheticMarketDataProvider(
        seed=settings.synthetic_seed,
        latency_ms=(settings.synthetic_latency_min_ms, settings.synthetic_latency_max_ms),
    )


def _build_yahoo(settings: Settings) -> MarketDataProvider:
    return YahooMarketDataProvider(symbol_suffix=settings.yahoo_symbol_suffix)


PROVIDER_BUILDERS: dict[str, Callable[[Settings], MarketDataProvider]] = {
    SYNTHETIC: _build_synthetic,
    "yahoo": _build_yahoo,
}


def normalize_provider_type(provider_type: str | None) -> str:
    key = (provider_type or SYNTHETIC).strip().lower()
    return _ALIASES.get(key, key)


def create_provider(provider_type: str | None, settings: Settings) -> MarketDataProvider:
    """
    Build the provider for a configured type.

    Args:
        provider_type: Requested type, e.g. "synthetic", "yahoo"
        settings: Application settings used for provider options

    Returns:
        The requested provider, or the synthetic provider when the request
        cannot be satisfied
    """
    key = normalize_provider_type(provider_type)

    if key in PLANNED_PROVIDERS:
        logger.warning(
            f"Market data provider '{key}' is not yet implemented, using {SYNTHETIC} provider"
        )
        return _build_synthetic(settings)

    builder = PROVIDER_BUILDERS.get(key)
    if builder is None:
        logger.warning(
            f"Unknown market data provider '{provider_type}', using {SYNTHETIC} provider"
        )
        return _build_synthetic(settings)

    if key == SYNTHETIC:
        return builder(settings)

    try:
        return builder(settings)
    except Exception as e:
        logger.warning(
            f"Failed to initialize '{key}' provider ({e}), falling back to {SYNTHETIC} provider"
        )
        return _build_synthetic(settings)
