# backend/portfolio_aggregator/schemas/market.py
"""Market data response schemas."""

from datetime import datetime

from portfolio_aggregator.schemas.common import CamelModel


class QuoteResponse(CamelModel):
    symbol: str
    price: float
    change: float
    change_percent: float
    volume: int
    high: float
    low: float
    open: float
    close: float
    timestamp: datetime


class IndexResponse(CamelModel):
    name: str
    value: float
    change: float
    change_percent: float
