# backend/portfolio_aggregator/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Builds the service graph at startup (lifespan)
- Registers middleware and the exception handlers that translate service
  errors into the response envelope
- Registers routers and the health endpoints
"""

import logging
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_aggregator import __version__
from portfolio_aggregator.config import settings
from portfolio_aggregator.container import build_services
from portfolio_aggregator.database import check_database_health, get_db
from portfolio_aggregator.middleware import (
    CorrelationIdMiddleware,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from portfolio_aggregator.middleware.rate_limit import RATE_LIMIT_HEALTH
from portfolio_aggregator.routers import auth_router, market_router, portfolio_router
from portfolio_aggregator.schemas.common import ErrorBody, ErrorResponse
from portfolio_aggregator.services.exceptions import (
    ForbiddenError,
    MarketDataError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
    ValidationError,
)
from portfolio_aggregator.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# LIFESPAN
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build services before serving traffic.

    A misconfigured market data provider raises ProviderConfigurationError
    here, which aborts startup.
    """
    app.state.started_at = time.monotonic()
    app.state.services = build_services(settings)
    logger.info(
        f"{settings.app_name} started: environment={settings.environment}, "
        f"market_data={app.state.services.market_data.provider_type}"
    )
    yield
    logger.info(f"{settings.app_name} shutting down")


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Aggregated portfolio valuation across brokers, exchanges and manual accounts",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Order matters: last added = first executed
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
# Services raise domain exceptions; these handlers are the only place where
# they become HTTP responses.
# =============================================================================


def _error_response(
    status_code: int,
    message: str,
    code: str,
    stack: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(message=message, code=code, stack=stack))
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning(f"Validation error on {request.url.path}: {exc.message}")
    return _error_response(400, exc.message, "VALIDATION_ERROR")


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    logger.warning(f"Unauthorized on {request.url.path}: {exc.message}")
    return _error_response(401, exc.message, "UNAUTHORIZED", headers={"WWW-Authenticate": "Bearer"})


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError) -> JSONResponse:
    logger.warning(f"Forbidden on {request.url.path}: {exc.message}")
    return _error_response(403, exc.message, "FORBIDDEN")


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.info(f"Not found on {request.url.path}: {exc.message}")
    return _error_response(404, exc.message, "NOT_FOUND")


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    logger.error(f"Market data error on {request.url.path}: {exc.message}")
    return _error_response(503, "Market data is temporarily unavailable", "MARKET_DATA_UNAVAILABLE")


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    # Service errors without a more specific handler are not operational
    return await unhandled_exception_handler(request, exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unmatched routes, wrong methods and any explicit HTTPException."""
    codes = {
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
    }
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Route not found"
    else:
        message = str(exc.detail) if exc.detail else "An error occurred"
    return _error_response(
        exc.status_code,
        message,
        codes.get(exc.status_code, "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first field error as a 400."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        # Drop the "body"/"query" prefix from the location
        field = ".".join(str(part) for part in first["loc"][1:])
        message = f"{field}: {first['msg']}" if field else first["msg"]
    else:
        message = "Request validation failed"
    logger.warning(f"Request validation failed on {request.url.path}: {message}")
    return _error_response(400, message, "VALIDATION_ERROR")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Unexpected errors: full detail in the server log, a generic message to
    the caller. Development responses include the message and traceback.
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    if settings.is_development:
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return _error_response(500, str(exc) or "Internal server error", "INTERNAL_ERROR", stack=stack)
    return _error_response(500, "Internal server error", "INTERNAL_ERROR")


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(auth_router)  # /api/auth/*
app.include_router(portfolio_router)  # /api/portfolio/*
app.include_router(market_router)  # /api/market/*


# =============================================================================
# HEALTH
# =============================================================================


@app.get("/api/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request):
    """Liveness: process is up. Does not touch the database."""
    started_at = getattr(request.app.state, "started_at", None)
    services = getattr(request.app.state, "services", None)
    return {
        "success": True,
        "data": {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started_at, 3) if started_at is not None else 0.0,
            "environment": settings.environment,
            "marketDataProvider": services.market_data.provider_type if services else None,
        },
    }


@app.get("/api/health/ready", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def readiness_check(request: Request, db: Session = Depends(get_db)):
    """Readiness: 503 while the database is unreachable."""
    database = check_database_health(db)
    if database["status"] != "healthy":
        return _error_response(503, "Database unavailable", "SERVICE_UNAVAILABLE")
    return {
        "success": True,
        "data": {"status": "ready", "checks": {"database": database}},
    }
