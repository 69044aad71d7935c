# backend/portfolio_aggregator/services/exceptions.py
"""
Service layer exceptions.

These exceptions carry NO HTTP knowledge. The exception handlers in main.py
translate them into response envelopes and status codes.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError                       (operational, 400)
    │   ├── InvalidPeriodError
    │   ├── UserExistsError
    │   ├── UnsupportedPlatformError
    │   ├── PlatformAlreadyConnectedError
    │   └── MissingCredentialsError
    ├── UnauthorizedError                     (operational, 401)
    │   ├── MissingTokenError
    │   ├── InvalidTokenError
    │   └── InvalidCredentialsError
    ├── ForbiddenError                        (operational, 403)
    ├── NotFoundError                         (operational, 404)
    │   ├── UserNotFoundError
    │   └── SymbolNotFoundError
    └── MarketDataError
        ├── ProviderUnavailableError
        ├── ProviderTimeoutError
        ├── RateLimitError
        └── ProviderConfigurationError
"""


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description, safe to show to callers
            for operational subclasses
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when caller input is rejected by business rules.

    Attributes:
        field: The offending field, when there is one
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidPeriodError(ValidationError):
    """Raised for a performance period outside the supported set."""

    def __init__(self, period: str, valid_periods: tuple[str, ...]) -> None:
        self.period = period
        super().__init__(
            f"Invalid period. Must be one of: {', '.join(valid_periods)}",
            field="period",
        )


class UserExistsError(ValidationError):
    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("User with this email already exists", field="email")


class UnsupportedPlatformError(ValidationError):
    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"Invalid platform: {platform}", field="platform")


class PlatformAlreadyConnectedError(ValidationError):
    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"Platform {platform} is already connected", field="platform")


class MissingCredentialsError(ValidationError):
    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__(f"Platform {platform} requires API credentials", field="credentials")


# =============================================================================
# AUTHENTICATION / AUTHORIZATION ERRORS
# =============================================================================


class UnauthorizedError(ServiceError):
    """Base for failures to establish the caller's identity."""


class MissingTokenError(UnauthorizedError):
    def __init__(self, message: str = "No token provided") -> None:
        super().__init__(message)


class InvalidTokenError(UnauthorizedError):
    """
    Raised when a token fails signature, expiry or type checks, or when a
    refresh token no longer matches the one stored for its user.
    """

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class ForbiddenError(ServiceError):
    """Raised when an authenticated caller may not perform an action."""


# =============================================================================
# NOT FOUND ERRORS
# =============================================================================


class NotFoundError(ServiceError):
    """
    Base exception for resource not found errors.

    Attributes:
        resource_type: Type of resource (e.g., "User", "Symbol")
        resource_id: Identifier of the resource
    """

    def __init__(
            self,
            message: str,
            resource_type: str | None = None,
            resource_id: int | str | None = None,
    ) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: int) -> None:
        super().__init__("User not found", resource_type="User", resource_id=user_id)


class SymbolNotFoundError(NotFoundError):
    """
    Raised when a provider has no data for a symbol.

    Attributes:
        symbol: The symbol that was requested
        provider: Name of the provider that reported it missing
    """

    def __init__(self, symbol: str, provider: str | None = None) -> None:
        self.symbol = symbol
        self.provider = provider
        super().__init__(
            f"Symbol {symbol} not found",
            resource_type="Symbol",
            resource_id=symbol,
        )


# =============================================================================
# MARKET DATA ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed (e.g., "yahoo")
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """Raised when the provider cannot be reached or returned garbage. Retryable."""

    def __init__(self, provider: str, reason: str | None = None) -> None:
        self.reason = reason
        message = f"Market data provider '{provider}' is unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message, provider=provider)


class ProviderTimeoutError(MarketDataError):
    def __init__(self, provider: str, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"Market data provider '{provider}' timed out after {timeout:g}s during {operation}",
            provider=provider,
        )


class RateLimitError(MarketDataError):
    """Raised when the upstream feed throttles us. Retryable."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Rate limit exceeded for provider '{provider}'", provider=provider)


class ProviderConfigurationError(MarketDataError):
    """Raised when the selected provider is not usable. Fatal at startup."""

    def __init__(self, message: str = "Market data provider configuration failed",
                 provider: str | None = None) -> None:
        super().__init__(message, provider=provider)


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidPeriodError",
    "UserExistsError",
    "UnsupportedPlatformError",
    "PlatformAlreadyConnectedError",
    "MissingCredentialsError",
    "UnauthorizedError",
    "MissingTokenError",
    "InvalidTokenError",
    "InvalidCredentialsError",
    "ForbiddenError",
    "NotFoundError",
    "UserNotFoundError",
    "SymbolNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "ProviderTimeoutError",
    "RateLimitError",
    "ProviderConfigurationError",
]
