# backend/portfolio_aggregator/services/auth/tokens.py
"""
JWT access and refresh token issuance and verification.

Both token kinds carry the user ID in ``sub`` plus a ``type`` claim and are
signed with independent secrets, so a refresh token can never pass as an
access token (and vice versa) even if the type claim were forged.

Every token gets a random ``jti``; two pairs issued for the same user in the
same second are still distinct, which the refresh rotation check relies on.

Access tokens are stateless. The current refresh token is tracked per user
(as a SHA-256 digest, see AuthService) so it can be rotated and revoked.
"""

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from portfolio_aggregator.config import Settings
from portfolio_aggregator.services.exceptions import InvalidTokenError

ACCESS = "access"
REFRESH = "refresh"

# Bearer failures read "Invalid token"; refresh failures name the token kind
_LABELS = {ACCESS: "token", REFRESH: "refresh token"}


@dataclass(frozen=True)
class TokenPair:
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


class TokenService:
    """
    Issues and verifies JWTs.

    Args:
        settings: Supplies secrets, algorithm and lifetimes
    """

    def __init__(self, settings: Settings) -> None:
        self._algorithm = settings.jwt_algorithm
        self._secrets = {
            ACCESS: settings.jwt_access_secret_key,
            REFRESH: settings.jwt_refresh_secret_key,
        }
        self._lifetimes = {
            ACCESS: timedelta(minutes=settings.jwt_access_token_expire_minutes),
            REFRESH: timedelta(days=settings.jwt_refresh_token_expire_days),
        }

    @property
    def access_token_ttl(self) -> timedelta:
        return self._lifetimes[ACCESS]

    @property
    def refresh_token_ttl(self) -> timedelta:
        return self._lifetimes[REFRESH]

    def issue_token_pair(self, user_id: int) -> TokenPair:
        """Create a fresh access/refresh pair for a user."""
        access_token = self._encode(user_id, ACCESS)
        refresh_token = self._encode(user_id, REFRESH)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.access_token_ttl.total_seconds()),
        )

    def create_token(self, user_id: int, token_type: str, expires_delta: timedelta | None = None) -> str:
        """
        Create a single token of the given type.

        Args:
            user_id: Subject of the token
            token_type: "access" or "refresh"
            expires_delta: Override the configured lifetime (negative values
                produce an already-expired token)
        """
        if token_type not in self._secrets:
            raise ValueError(f"Unknown token type: {token_type}")
        return self._encode(user_id, token_type, expires_delta)

    def verify_access(self, token: str) -> int:
        """
        Return the user ID of a valid access token.

        Raises:
            InvalidTokenError: Bad signature, expired, wrong type or bad subject
        """
        return self._verify(token, ACCESS)

    def verify_refresh(self, token: str) -> int:
        """
        Return the user ID of a cryptographically valid refresh token.

        This does not check whether the token is still the user's current
        one; AuthService.refresh does that.

        Raises:
            InvalidTokenError: Bad signature, expired, wrong type or bad subject
        """
        return self._verify(token, REFRESH)

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def _encode(self, user_id: int, token_type: str, expires_delta: timedelta | None = None) -> str:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": now + (expires_delta if expires_delta is not None else self._lifetimes[token_type]),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self._algorithm)

    def _verify(self, token: str, token_type: str) -> int:
        try:
            payload = jwt.decode(token, self._secrets[token_type], algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise InvalidTokenError(f"{_LABELS[token_type].capitalize()} has expired")
        except JWTError:
            raise InvalidTokenError(f"Invalid {_LABELS[token_type]}")

        if payload.get("type") != token_type:
            raise InvalidTokenError(f"Invalid {_LABELS[token_type]}")

        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError(f"Invalid {_LABELS[token_type]}")
