# backend/portfolio_aggregator/container.py
"""
Application service graph.

build_services() wires every long-lived service once, at startup. The result
is stored on app.state and handed to endpoints through dependencies.py, so no
module keeps its own global instance.
"""

import logging
from dataclasses import dataclass

from portfolio_aggregator.config import Settings
from portfolio_aggregator.services.auth import AuthService, TokenService
from portfolio_aggregator.services.market_data import MarketDataProvider, MarketDataService
from portfolio_aggregator.services.portfolio import PlatformConnectionService, PortfolioService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    market_data: MarketDataService
    tokens: TokenService
    auth: AuthService
    portfolio: PortfolioService
    connections: PlatformConnectionService


def build_services(settings: Settings, provider: MarketDataProvider | None = None) -> ServiceContainer:
    """
    Construct the service graph.

    Args:
        settings: Application settings
        provider: Use this market data provider instead of the configured one

    Raises:
        ProviderConfigurationError: The selected provider is not configured
    """
    market_data = MarketDataService(settings, provider=provider)
    if provider is None:
        market_data.initialize()

    tokens = TokenService(settings)
    container = ServiceContainer(
        market_data=market_data,
        tokens=tokens,
        auth=AuthService(tokens),
        portfolio=PortfolioService(market_data),
        connections=PlatformConnectionService(),
    )
    logger.debug(f"Services built with market data provider '{market_data.provider_type}'")
    return container
