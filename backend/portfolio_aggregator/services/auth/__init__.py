"""
Authentication services.

- PasswordService: bcrypt hashing
- TokenService: JWT access/refresh issuance and verification
- AuthService: signup, login, refresh rotation, logout
"""

from portfolio_aggregator.services.auth.password import PasswordService
from portfolio_aggregator.services.auth.tokens import TokenPair, TokenService
from portfolio_aggregator.services.auth.service import AuthResult, AuthService

__all__ = [
    "PasswordService",
    "TokenPair",
    "TokenService",
    "AuthResult",
    "AuthService",
]
