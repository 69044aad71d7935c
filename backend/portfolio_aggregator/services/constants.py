# backend/portfolio_aggregator/services/constants.py
"""
Business constants shared by services and routers.

Values that operators tune per deployment live in config.py instead.
"""

from datetime import timedelta
from decimal import Decimal

# =============================================================================
# PLATFORMS
# =============================================================================

SUPPORTED_PLATFORMS: tuple[str, ...] = (
    "zerodha",
    "groww",
    "upstox",
    "manual",
    "wazirx",
    "binance",
)

BROKER_PLATFORMS = frozenset({"zerodha", "groww", "upstox"})
EXCHANGE_PLATFORMS = frozenset({"wazirx", "binance"})

# Platforms that can be connected without an API credential payload
CREDENTIAL_FREE_PLATFORMS = frozenset({"manual"})

# Keys accepted in the connect request's credentials object
CREDENTIAL_FIELDS = {
    "apiKey": "api_key",
    "apiSecret": "api_secret",
    "accessToken": "access_token",
}

# =============================================================================
# PERFORMANCE PERIODS
# =============================================================================

# Period code -> (number of points, look-back window)
PERIODS: dict[str, tuple[int, timedelta]] = {
    "1D": (24, timedelta(days=1)),
    "1W": (7, timedelta(days=7)),
    "1M": (30, timedelta(days=30)),
    "3M": (90, timedelta(days=90)),
    "6M": (180, timedelta(days=180)),
    "1Y": (365, timedelta(days=365)),
    "ALL": (730, timedelta(days=730)),
}

VALID_PERIODS: tuple[str, ...] = tuple(PERIODS)
DEFAULT_PERIOD = "1M"

# =============================================================================
# ALLOCATION
# =============================================================================

# Investment type (lower-cased) -> allocation bucket
ALLOCATION_BUCKETS: dict[str, str] = {
    "equity": "equity",
    "stock": "equity",
    "debt": "debt",
    "bond": "debt",
    "mutual_fund": "debt",
    "gold": "gold",
    "crypto": "crypto",
}

ALLOCATION_CATEGORIES: tuple[str, ...] = ("equity", "debt", "gold", "crypto")

# =============================================================================
# VALUATION
# =============================================================================

MONEY_PLACES = Decimal("0.01")
PERCENT_PLACES = Decimal("0.01")
ALLOCATION_PLACES = Decimal("0.1")
PRICE_PLACES = Decimal("0.00000001")

# Placeholder day change until a previous-close feed exists
ILLUSTRATIVE_DAY_CHANGE_PERCENT = Decimal("0.96")

DEFAULT_TOP_PERFORMERS_LIMIT = 5
DEFAULT_ACTIVITY_LIMIT = 10
MAX_LIST_LIMIT = 100

INVESTMENT_STATUS_ACTIVE = "active"

# =============================================================================
# RATE LIMITS (slowapi format: "count/period")
# =============================================================================

RATE_LIMIT_DEFAULT = "100/minute"
RATE_LIMIT_HEALTH = "300/minute"
RATE_LIMIT_AUTH_LOGIN = "10/minute"
RATE_LIMIT_AUTH_SIGNUP = "5/minute"
RATE_LIMIT_AUTH_REFRESH = "30/minute"
RATE_LIMIT_CONNECT = "20/minute"
RATE_LIMIT_MARKET = "60/minute"
