# backend/portfolio_aggregator/schemas/common.py
"""
Response envelope and shared schema configuration.

Every endpoint answers with
    {"success": true,  "data": ...}
    {"success": false, "error": {"message": ..., "code": ...}}
and uses camelCase field names on the wire.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for API models: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """Successful response envelope."""

    success: bool = True
    data: T


class ErrorBody(BaseModel):
    message: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Stable error code, e.g. VALIDATION_ERROR")
    stack: str | None = Field(
        default=None,
        description="Traceback, only in development for unexpected errors",
    )


class ErrorResponse(BaseModel):
    """Error response envelope used by every exception handler."""

    success: bool = False
    error: ErrorBody


class MessageResponse(BaseModel):
    message: str
