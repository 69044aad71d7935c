# backend/portfolio_aggregator/schemas/portfolio.py
"""
Portfolio request/response schemas.

Service results use Decimal; these models emit them as JSON numbers.
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from portfolio_aggregator.schemas.common import CamelModel


class PriceFailureResponse(CamelModel):
    investment_id: int | None = None
    symbol: str
    reason: str


class SummaryResponse(CamelModel):
    total_value: float
    total_invested: float
    total_returns: float
    returns_percentage: float
    day_change: float
    day_change_percentage: float
    last_updated: datetime
    partial_failures: list[PriceFailureResponse] = Field(
        default_factory=list,
        description="Holdings valued at their last known value because pricing failed",
    )


class PlatformResponse(CamelModel):
    id: int
    name: str
    type: str
    status: str
    balance: float
    holdings: int
    last_sync: datetime | None = None


class PerformancePointResponse(CamelModel):
    date: datetime
    value: float
    returns: float


class PerformanceResponse(CamelModel):
    period: str
    data_points: list[PerformancePointResponse]
    partial_failures: list[PriceFailureResponse] = Field(default_factory=list)


class AllocationResponse(CamelModel):
    equity: float
    debt: float
    gold: float
    crypto: float


class TopPerformerResponse(CamelModel):
    id: int
    symbol: str
    name: str
    returns: float | None = Field(None, description="Returns percent")
    current_value: float


class ActivityResponse(CamelModel):
    id: int
    type: str
    symbol: str
    amount: float
    timestamp: datetime


class ConnectPlatformRequest(CamelModel):
    platform: str | None = Field(None, description="Platform name, e.g. zerodha", examples=["zerodha"])
    credentials: dict[str, Any] | None = Field(
        None,
        description="apiKey / apiSecret / accessToken; optional only for manual",
    )


class ConnectPlatformResponse(CamelModel):
    platform_id: int
    name: str
    status: str
