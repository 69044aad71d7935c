# backend/portfolio_aggregator/routers/market.py
"""
Market data endpoints (bearer access token required).

- GET /api/market/quote/{symbol}
- GET /api/market/quotes?symbols=RELIANCE,TCS
- GET /api/market/indices
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from portfolio_aggregator.dependencies import get_current_user, get_market_data_service
from portfolio_aggregator.middleware.rate_limit import limiter, RATE_LIMIT_MARKET
from portfolio_aggregator.models import User
from portfolio_aggregator.schemas.common import ApiResponse
from portfolio_aggregator.schemas.market import IndexResponse, QuoteResponse
from portfolio_aggregator.services.exceptions import ValidationError
from portfolio_aggregator.services.market_data import MarketDataService

router = APIRouter(
    prefix="/api/market",
    tags=["Market Data"],
    dependencies=[Depends(get_current_user)],
)

MarketData = Annotated[MarketDataService, Depends(get_market_data_service)]

MAX_BULK_SYMBOLS = 50


@router.get("/quote/{symbol}", response_model=ApiResponse[QuoteResponse])
@limiter.limit(RATE_LIMIT_MARKET)
async def get_quote(request: Request, symbol: str, market_data: MarketData) -> ApiResponse[QuoteResponse]:
    quote = await market_data.get_quote(symbol.upper())
    return ApiResponse(data=QuoteResponse.model_validate(quote))


@router.get("/quotes", response_model=ApiResponse[dict[str, QuoteResponse | None]])
@limiter.limit(RATE_LIMIT_MARKET)
async def get_bulk_quotes(
    request: Request,
    market_data: MarketData,
    symbols: Annotated[str, Query(description="Comma-separated symbols")],
) -> ApiResponse[dict[str, QuoteResponse | None]]:
    """Quotes for several symbols; symbols that fail map to null."""
    requested = [s.strip().upper() for s in symbols.split(",") if s.strip()]
    if not requested:
        raise ValidationError("At least one symbol is required", field="symbols")
    if len(requested) > MAX_BULK_SYMBOLS:
        raise ValidationError(f"At most {MAX_BULK_SYMBOLS} symbols per request", field="symbols")

    quotes = await market_data.get_bulk_quotes(requested)
    return ApiResponse(data={
        symbol: QuoteResponse.model_validate(quote) if quote is not None else None
        for symbol, quote in quotes.items()
    })


@router.get("/indices", response_model=ApiResponse[list[IndexResponse]])
async def get_indices(market_data: MarketData) -> ApiResponse[list[IndexResponse]]:
    indices = await market_data.get_indices()
    return ApiResponse(data=[IndexResponse.model_validate(i) for i in indices])
