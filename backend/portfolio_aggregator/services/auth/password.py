# backend/portfolio_aggregator/services/auth/password.py
"""
Password hashing and verification using bcrypt via passlib.

Cost factor is 12 in running deployments. The test environment drops it to
4 (bcrypt's minimum) so suites that create many users stay fast.
"""

from passlib.context import CryptContext

from portfolio_aggregator.config import settings

_pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=4 if settings.is_test else 12,
)


class PasswordService:
    """Stateless bcrypt helpers."""

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a plaintext password.

        Returns:
            The bcrypt hash string (algorithm, cost, salt and digest)
        """
        return _pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Check a plaintext password against a stored hash (timing-safe)."""
        return _pwd_context.verify(plain_password, hashed_password)
