# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- A scriptable market data provider
- Sample data factories (users, platforms, investments, transactions)
- An API client with database and service overrides
"""

import os

# Must be set BEFORE importing portfolio_aggregator modules
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("MARKET_DATA_PROVIDER", "synthetic")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio_aggregator.config import settings
from portfolio_aggregator.container import build_services
from portfolio_aggregator.database import get_db
from portfolio_aggregator.dependencies import get_services
from portfolio_aggregator.main import app
from portfolio_aggregator.middleware.rate_limit import limiter
from portfolio_aggregator.models import (
    Base,
    Investment,
    Platform,
    PlatformName,
    PlatformStatus,
    PlatformType,
    Transaction,
    User,
)
from portfolio_aggregator.services.auth import AuthService, PasswordService, TokenService
from portfolio_aggregator.services.exceptions import SymbolNotFoundError
from portfolio_aggregator.services.market_data import (
    HistoricalPoint,
    IndexValue,
    MarketDataProvider,
    MarketDataService,
    Quote,
)
from portfolio_aggregator.services.portfolio.connections import platform_type_for

DEFAULT_PASSWORD = "password123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# STUB MARKET DATA PROVIDER
# =============================================================================


class StubMarketDataProvider(MarketDataProvider):
    """
    Scriptable provider for tests.

    Prices come from a dict; individual symbols can be made to fail or to
    hang for a while, and every call is counted.
    """

    def __init__(self, prices: dict[str, Decimal] | None = None):
        self.prices: dict[str, Decimal] = dict(prices or {})
        self.errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.history: dict[str, list[HistoricalPoint]] = {}
        self.configured = True
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "stub"

    def is_configured(self) -> bool:
        return self.configured

    def fail(self, symbol: str, error: Exception) -> None:
        self.errors[symbol] = error

    def hang(self, symbol: str, seconds: float) -> None:
        self.delays[symbol] = seconds

    async def _resolve(self, operation: str, symbol: str) -> Decimal:
        self.calls.append((operation, symbol))
        if symbol in self.delays:
            await asyncio.sleep(self.delays[symbol])
        if symbol in self.errors:
            raise self.errors[symbol]
        if symbol not in self.prices:
            raise SymbolNotFoundError(symbol, provider=self.name)
        return self.prices[symbol]

    async def get_price(self, symbol: str) -> Decimal:
        return await self._resolve("price", symbol)

    async def get_quote(self, symbol: str) -> Quote:
        price = await self._resolve("quote", symbol)
        return Quote(
            symbol=symbol,
            price=price,
            change=Decimal("1.50"),
            change_percent=Decimal("0.75"),
            volume=1000,
            high=price + 1,
            low=price - 1,
            open=price,
            close=price,
            timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc),
        )

    async def get_historical_data(self, symbol: str, period: str) -> list[HistoricalPoint]:
        self._validate_period(period)
        await self._resolve("history", symbol)
        return self.history.get(symbol, [])

    async def get_indices(self) -> list[IndexValue]:
        self.calls.append(("indices", ""))
        return [IndexValue("NIFTY50", Decimal("19485.50"), Decimal("125.30"), Decimal("0.65"))]


@pytest.fixture
def stub_provider() -> StubMarketDataProvider:
    return StubMarketDataProvider(prices={
        "RELIANCE": Decimal("2850.75"),
        "TCS": Decimal("3520.30"),
        "INFY": Decimal("1450.50"),
        "BTC": Decimal("3500000"),
        "GOLDBEES": Decimal("55.20"),
    })


@pytest.fixture
def market_data(stub_provider) -> MarketDataService:
    return MarketDataService(settings, provider=stub_provider)


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(settings)


@pytest.fixture
def auth_service(token_service) -> AuthService:
    return AuthService(token_service)


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================


@pytest.fixture
def make_user(db: Session):
    """Factory creating a persisted user with a known password."""

    def _make(
        email: str = "investor@example.com",
        password: str = DEFAULT_PASSWORD,
        name: str = "Test Investor",
        phone: str | None = None,
    ) -> User:
        user = User(
            email=email.lower(),
            hashed_password=PasswordService.hash_password(password),
            name=name,
            phone=phone,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_platform(db: Session):
    """Factory creating a connected platform for a user."""

    def _make(user: User, name: str = "zerodha", balance: Decimal = Decimal("0")) -> Platform:
        platform = Platform(
            user_id=user.id,
            name=PlatformName(name),
            type=platform_type_for(name),
            status=PlatformStatus.CONNECTED,
            balance=balance,
            last_sync=datetime.now(timezone.utc),
        )
        db.add(platform)
        db.commit()
        db.refresh(platform)
        return platform

    return _make


@pytest.fixture
def make_investment(db: Session):
    """
    Factory creating a holding.

    invested_value defaults to quantity * avg_price and current_value to the
    invested value, as if no valuation refresh had run yet.
    """

    def _make(
        platform: Platform,
        symbol: str = "RELIANCE",
        quantity: str = "10",
        avg_price: str = "2500",
        type: str = "equity",
        status: str = "active",
        invested_value: str | None = None,
        current_value: str | None = None,
        returns_percent: str | None = None,
        name: str | None = None,
    ) -> Investment:
        qty = Decimal(quantity)
        invested = Decimal(invested_value) if invested_value is not None else qty * Decimal(avg_price)
        investment = Investment(
            platform_id=platform.id,
            symbol=symbol,
            name=name or f"{symbol} Ltd",
            type=type,
            status=status,
            quantity=qty,
            avg_price=Decimal(avg_price),
            invested_value=invested,
            current_price=Decimal(avg_price),
            current_value=Decimal(current_value) if current_value is not None else invested,
            returns=Decimal("0"),
            returns_percent=Decimal(returns_percent) if returns_percent is not None else None,
        )
        db.add(investment)
        db.commit()
        db.refresh(investment)
        return investment

    return _make


@pytest.fixture
def make_transaction(db: Session):
    """Factory creating a transaction `days_ago` days in the past."""

    def _make(
        user: User,
        symbol: str = "RELIANCE",
        type: str = "buy",
        amount: str = "25000",
        days_ago: int = 0,
        platform: str = "zerodha",
    ) -> Transaction:
        tx = Transaction(
            user_id=user.id,
            type=type,
            symbol=symbol,
            quantity=Decimal("10"),
            price=Decimal("2500"),
            amount=Decimal(amount),
            platform=platform,
            date=datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc) - timedelta(days=days_ago),
        )
        db.add(tx)
        db.commit()
        db.refresh(tx)
        return tx

    return _make


# =============================================================================
# API CLIENT
# =============================================================================


@pytest.fixture
def services(stub_provider):
    """Service graph wired to the stub provider."""
    return build_services(settings, provider=stub_provider)


@pytest.fixture
def client(db: Session, services) -> Iterator[TestClient]:
    """TestClient with the test database and stub-backed services."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_services] = lambda: services

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(token_service):
    """Build bearer headers for a user."""

    def _headers(user: User) -> dict[str, str]:
        token = token_service.create_token(user.id, "access")
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Keep limiter counters from leaking between tests."""
    limiter.reset()
    yield
    limiter.reset()
