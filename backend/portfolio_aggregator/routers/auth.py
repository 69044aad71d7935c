# backend/portfolio_aggregator/routers/auth.py
"""
Authentication endpoints.

- POST /api/auth/signup   create an account, returns user + token pair
- POST /api/auth/login    email/password, returns user + token pair
- POST /api/auth/refresh  rotate the refresh token, returns a new pair
- POST /api/auth/logout   revoke the stored refresh token
- GET  /api/auth/me       current user profile

Tokens travel in the JSON body; clients send the access token as a bearer
header and keep the refresh token for /refresh.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from portfolio_aggregator.database import get_db
from portfolio_aggregator.dependencies import get_auth_service, get_current_user
from portfolio_aggregator.middleware.rate_limit import (
    limiter,
    RATE_LIMIT_AUTH_LOGIN,
    RATE_LIMIT_AUTH_REFRESH,
    RATE_LIMIT_AUTH_SIGNUP,
)
from portfolio_aggregator.models import User
from portfolio_aggregator.schemas.auth import (
    AuthResponse,
    LoginRequest,
    RefreshRequest,
    SignupRequest,
    TokenPairResponse,
    UserResponse,
)
from portfolio_aggregator.schemas.common import ApiResponse, MessageResponse
from portfolio_aggregator.services.auth import AuthResult, AuthService, TokenPair

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _token_response(tokens: TokenPair) -> TokenPairResponse:
    return TokenPairResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
    )


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        **_token_response(result.tokens).model_dump(),
    )


@router.post(
    "/signup",
    response_model=ApiResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
@limiter.limit(RATE_LIMIT_AUTH_SIGNUP)
def signup(
    request: Request,
    data: SignupRequest,
    db: Annotated[Session, Depends(get_db)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[AuthResponse]:
    result = auth_service.signup(
        db=db,
        email=data.email,
        password=data.password,
        name=data.name,
        phone=data.phone,
    )
    return ApiResponse(data=_auth_response(result))


@router.post(
    "/login",
    response_model=ApiResponse[AuthResponse],
    summary="Login with email and password",
)
@limiter.limit(RATE_LIMIT_AUTH_LOGIN)
def login(
    request: Request,
    data: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[AuthResponse]:
    result = auth_service.login(db=db, email=data.email, password=data.password)
    return ApiResponse(data=_auth_response(result))


@router.post(
    "/refresh",
    response_model=ApiResponse[TokenPairResponse],
    summary="Rotate the refresh token",
    description=(
        "Exchange the current refresh token for a new pair. The presented token "
        "stops working immediately, as does any token issued before it."
    ),
)
@limiter.limit(RATE_LIMIT_AUTH_REFRESH)
def refresh(
    request: Request,
    data: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[TokenPairResponse]:
    tokens = auth_service.refresh(db=db, refresh_token=data.refresh_token)
    return ApiResponse(data=_token_response(tokens))


@router.post(
    "/logout",
    response_model=ApiResponse[MessageResponse],
    summary="Logout (revoke refresh token)",
)
def logout(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[MessageResponse]:
    auth_service.logout(db=db, user=current_user)
    return ApiResponse(data=MessageResponse(message="Logged out successfully"))


@router.get(
    "/me",
    response_model=ApiResponse[UserResponse],
    summary="Get current user profile",
)
def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> ApiResponse[UserResponse]:
    return ApiResponse(data=UserResponse.model_validate(current_user))
