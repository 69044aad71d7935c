# backend/portfolio_aggregator/dependencies.py
"""
FastAPI dependencies.

Services come from the ServiceContainer built in the application lifespan.
Tests swap the whole graph with
    app.dependency_overrides[get_services] = lambda: container

Usage in routers:
    @router.get("/summary")
    async def summary(
        current_user: Annotated[User, Depends(get_current_user)],
        service: Annotated[PortfolioService, Depends(get_portfolio_service)],
    ):
        ...
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from portfolio_aggregator.container import ServiceContainer
from portfolio_aggregator.database import get_db
from portfolio_aggregator.models import User
from portfolio_aggregator.services.auth import AuthService
from portfolio_aggregator.services.exceptions import MissingTokenError
from portfolio_aggregator.services.market_data import MarketDataService
from portfolio_aggregator.services.portfolio import PlatformConnectionService, PortfolioService
from portfolio_aggregator.utils.context import set_current_user_id

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


# =============================================================================
# SERVICES
# =============================================================================


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_market_data_service(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> MarketDataService:
    return services.market_data


def get_auth_service(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> AuthService:
    return services.auth


def get_portfolio_service(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> PortfolioService:
    return services.portfolio


def get_connection_service(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> PlatformConnectionService:
    return services.connections


# =============================================================================
# AUTHENTICATION
# =============================================================================


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
    db: Annotated[Session, Depends(get_db)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """
    Resolve the user behind the bearer access token.

    Raises:
        MissingTokenError: No bearer token on the request (401)
        InvalidTokenError: Token invalid, expired, or its user is gone (401)
    """
    if credentials is None or not credentials.credentials:
        raise MissingTokenError()

    user = auth_service.authenticate_access_token(db, credentials.credentials)
    set_current_user_id(user.id)
    return user
