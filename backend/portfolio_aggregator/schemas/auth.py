# backend/portfolio_aggregator/schemas/auth.py
"""
Authentication request/response schemas.
"""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from portfolio_aggregator.schemas.common import CamelModel


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================


class SignupRequest(CamelModel):
    """Request body for signup."""

    email: EmailStr = Field(..., examples=["user@example.com"])
    password: str = Field(
        ...,
        min_length=8,
        max_length=72,
        description="Password (8 to 72 characters)",
        examples=["Secure1!"],
    )
    name: str = Field(..., min_length=1, max_length=100, examples=["Asha Rao"])
    phone: str | None = Field(None, max_length=32, examples=["+91-9876543210"])

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name must not be blank")
        return v.strip()


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1, description="Refresh token from signup, login or a previous refresh")


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================


class UserResponse(CamelModel):
    """Public view of a user. The password hash is never exposed."""

    id: int
    email: str
    name: str
    phone: str | None = None
    created_at: datetime


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class AuthResponse(TokenPairResponse):
    """Signup/login response: the user plus their new tokens."""

    user: UserResponse
