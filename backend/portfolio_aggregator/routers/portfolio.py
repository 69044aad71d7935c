# backend/portfolio_aggregator/routers/portfolio.py
"""
Portfolio endpoints (all require a bearer access token).

- GET  /api/portfolio/summary          refreshed totals + partial failures
- GET  /api/portfolio/platforms        connected platforms
- GET  /api/portfolio/performance      value series for a period
- GET  /api/portfolio/allocation       category percentages
- GET  /api/portfolio/top-performers   best holdings by returns percent
- GET  /api/portfolio/activity         latest transactions
- POST /api/portfolio/connect          connect a platform
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from portfolio_aggregator.database import get_db
from portfolio_aggregator.dependencies import (
    get_connection_service,
    get_current_user,
    get_portfolio_service,
)
from portfolio_aggregator.middleware.rate_limit import limiter, RATE_LIMIT_CONNECT
from portfolio_aggregator.models import User
from portfolio_aggregator.schemas.common import ApiResponse
from portfolio_aggregator.schemas.portfolio import (
    ActivityResponse,
    AllocationResponse,
    ConnectPlatformRequest,
    ConnectPlatformResponse,
    PerformancePointResponse,
    PerformanceResponse,
    PlatformResponse,
    PriceFailureResponse,
    SummaryResponse,
    TopPerformerResponse,
)
from portfolio_aggregator.services.constants import (
    DEFAULT_ACTIVITY_LIMIT,
    DEFAULT_PERIOD,
    DEFAULT_TOP_PERFORMERS_LIMIT,
    MAX_LIST_LIMIT,
)
from portfolio_aggregator.services.exceptions import ValidationError
from portfolio_aggregator.services.portfolio import PlatformConnectionService, PortfolioService

router = APIRouter(prefix="/api/portfolio", tags=["Portfolio"])

CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[Session, Depends(get_db)]
Portfolio = Annotated[PortfolioService, Depends(get_portfolio_service)]


@router.get("/summary", response_model=ApiResponse[SummaryResponse])
async def get_summary(
    current_user: CurrentUser,
    db: DbSession,
    service: Portfolio,
) -> ApiResponse[SummaryResponse]:
    """
    Refresh current prices for every holding and return portfolio totals.

    Holdings that could not be priced are valued at their last known value
    and listed in partialFailures.
    """
    result = await service.get_summary(db, current_user.id)
    summary = result.summary
    return ApiResponse(data=SummaryResponse(
        total_value=summary.total_value,
        total_invested=summary.total_invested,
        total_returns=summary.total_returns,
        returns_percentage=summary.returns_percentage,
        day_change=summary.day_change,
        day_change_percentage=summary.day_change_percentage,
        last_updated=summary.last_updated,
        partial_failures=[PriceFailureResponse.model_validate(f) for f in result.failures],
    ))


@router.get("/platforms", response_model=ApiResponse[list[PlatformResponse]])
async def get_platforms(
    current_user: CurrentUser,
    db: DbSession,
    service: Portfolio,
) -> ApiResponse[list[PlatformResponse]]:
    platforms = service.get_platforms(db, current_user.id)
    return ApiResponse(data=[PlatformResponse.model_validate(p) for p in platforms])


@router.get("/performance", response_model=ApiResponse[PerformanceResponse])
async def get_performance(
    current_user: CurrentUser,
    db: DbSession,
    service: Portfolio,
    period: Annotated[str, Query(description="1D, 1W, 1M, 3M, 6M, 1Y or ALL")] = DEFAULT_PERIOD,
) -> ApiResponse[PerformanceResponse]:
    result = await service.get_performance(db, current_user.id, period)
    return ApiResponse(data=PerformanceResponse(
        period=result.period,
        data_points=[PerformancePointResponse.model_validate(p) for p in result.data_points],
        partial_failures=[PriceFailureResponse.model_validate(f) for f in result.failures],
    ))


@router.get("/allocation", response_model=ApiResponse[AllocationResponse])
async def get_allocation(
    current_user: CurrentUser,
    db: DbSession,
    service: Portfolio,
) -> ApiResponse[AllocationResponse]:
    allocation = service.get_allocation(db, current_user.id)
    return ApiResponse(data=AllocationResponse.model_validate(allocation))


@router.get("/top-performers", response_model=ApiResponse[list[TopPerformerResponse]])
async def get_top_performers(
    current_user: CurrentUser,
    db: DbSession,
    service: Portfolio,
    limit: Annotated[int, Query(ge=1, le=MAX_LIST_LIMIT)] = DEFAULT_TOP_PERFORMERS_LIMIT,
) -> ApiResponse[list[TopPerformerResponse]]:
    performers = service.get_top_performers(db, current_user.id, limit=limit)
    return ApiResponse(data=[TopPerformerResponse.model_validate(p) for p in performers])


@router.get("/activity", response_model=ApiResponse[list[ActivityResponse]])
async def get_activity(
    current_user: CurrentUser,
    db: DbSession,
    service: Portfolio,
    limit: Annotated[int, Query(ge=1, le=MAX_LIST_LIMIT)] = DEFAULT_ACTIVITY_LIMIT,
) -> ApiResponse[list[ActivityResponse]]:
    activity = service.get_activity(db, current_user.id, limit=limit)
    return ApiResponse(data=[ActivityResponse.model_validate(a) for a in activity])


@router.post(
    "/connect",
    response_model=ApiResponse[ConnectPlatformResponse],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(RATE_LIMIT_CONNECT)
async def connect_platform(
    request: Request,
    data: ConnectPlatformRequest,
    current_user: CurrentUser,
    db: DbSession,
    service: Annotated[PlatformConnectionService, Depends(get_connection_service)],
) -> ApiResponse[ConnectPlatformResponse]:
    if not data.platform or not data.platform.strip():
        raise ValidationError("Platform name is required", field="platform")

    result = service.connect_platform(
        db,
        current_user.id,
        platform=data.platform,
        credentials=data.credentials,
    )
    return ApiResponse(data=ConnectPlatformResponse.model_validate(result))
