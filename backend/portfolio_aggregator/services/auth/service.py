"""
Core authentication service.

Handles signup, login, refresh-token rotation and logout.

Refresh token state machine (User.refresh_token_hash):
    signup / login  -> slot holds the new token's digest (overwriting any prior one)
    refresh         -> presented token must verify AND match the slot;
                       the slot then moves to the newly issued token
    logout          -> slot cleared; every outstanding refresh token is dead

One slot per user means a new login signs out the user's other sessions
the next time they try to refresh.
"""

import hmac
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio_aggregator.models import User
from portfolio_aggregator.services.auth.password import PasswordService
from portfolio_aggregator.services.auth.tokens import TokenPair, TokenService
from portfolio_aggregator.services.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    UserExistsError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """Outcome of signup/login: the user and their new token pair."""
    user: User
    tokens: TokenPair


class AuthService:
    """
    Manages user credentials and the refresh token lifecycle.

    Args:
        token_service: Issues and verifies the JWTs
    """

    def __init__(self, token_service: TokenService) -> None:
        self._tokens = token_service

    @property
    def token_service(self) -> TokenService:
        return self._tokens

    def signup(
        self,
        db: Session,
        email: str,
        password: str,
        name: str,
        phone: str | None = None,
    ) -> AuthResult:
        """
        Create a user and sign them in.

        The user row, its ID and the persisted refresh token are produced in
        one transaction, so no caller ever sees a user without a token slot
        or tokens bound to a provisional ID.

        Raises:
            UserExistsError: If the email is already registered
        """
        email = email.strip().lower()
        if self._find_by_email(db, email) is not None:
            raise UserExistsError(email)

        user = User(
            email=email,
            hashed_password=PasswordService.hash_password(password),
            name=name.strip(),
            phone=phone,
        )
        db.add(user)
        try:
            db.flush()
            tokens = self._rotate(user)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise UserExistsError(email)

        db.refresh(user)
        logger.info(f"User signed up: id={user.id}")
        return AuthResult(user=user, tokens=tokens)

    def login(self, db: Session, email: str, password: str) -> AuthResult:
        """
        Verify credentials and issue a fresh pair.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password (the
                message does not say which)
        """
        user = self._find_by_email(db, email.strip().lower())
        if user is None or not PasswordService.verify_password(password, user.hashed_password):
            logger.warning("Login failed: invalid credentials")
            raise InvalidCredentialsError()

        tokens = self._rotate(user)
        db.commit()

        logger.info(f"User logged in: id={user.id}")
        return AuthResult(user=user, tokens=tokens)

    def refresh(self, db: Session, refresh_token: str) -> TokenPair:
        """
        Exchange the current refresh token for a new pair.

        Raises:
            InvalidTokenError: Token fails verification, its user is gone,
                or it is not the token currently on record (rotated out or
                logged out)
        """
        user_id = self._tokens.verify_refresh(refresh_token)

        user = db.get(User, user_id)
        if user is None or not self._matches_current(user, refresh_token):
            logger.warning(f"Rejected stale or revoked refresh token for user {user_id}")
            raise InvalidTokenError("Invalid refresh token")

        tokens = self._rotate(user)
        db.commit()

        logger.debug(f"Refresh token rotated for user {user.id}")
        return tokens

    def logout(self, db: Session, user: User) -> None:
        """Clear the user's refresh token slot."""
        user.refresh_token_hash = None
        db.commit()
        logger.info(f"User logged out: id={user.id}")

    def get_user(self, db: Session, user_id: int) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def authenticate_access_token(self, db: Session, token: str) -> User:
        """
        Resolve the user behind a bearer access token.

        Raises:
            InvalidTokenError: Token invalid or its user no longer exists
        """
        user_id = self._tokens.verify_access(token)
        user = db.get(User, user_id)
        if user is None:
            raise InvalidTokenError("Invalid token")
        return user

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _rotate(self, user: User) -> TokenPair:
        """Issue a pair for the user and record its refresh token. Caller commits."""
        tokens = self._tokens.issue_token_pair(user.id)
        user.refresh_token_hash = self._tokens.hash_token(tokens.refresh_token)
        return tokens

    def _matches_current(self, user: User, refresh_token: str) -> bool:
        if user.refresh_token_hash is None:
            return False
        return hmac.compare_digest(user.refresh_token_hash, self._tokens.hash_token(refresh_token))

    @staticmethod
    def _find_by_email(db: Session, email: str) -> User | None:
        return db.execute(select(User).where(User.email == email)).scalar_one_or_none()
