# backend/tests/services/auth/test_auth_service.py
"""
Tests for AuthService.

Tests:
- Signup (normalization, duplicate email, persisted refresh token)
- Login (success, wrong password, unknown email)
- Refresh rotation (rotated-out tokens rejected)
- Logout revocation
- Access token authentication
"""

import pytest

from portfolio_aggregator.models import User
from portfolio_aggregator.services.auth import TokenService
from portfolio_aggregator.services.exceptions import (
    InvalidCredentialsError,
    InvalidTokenError,
    UserExistsError,
    UserNotFoundError,
)


# =============================================================================
# SIGNUP
# =============================================================================


class TestSignup:

    def test_creates_user_and_stores_refresh_digest(self, db, auth_service):
        result = auth_service.signup(db, "New@Example.com ", "password123", " Asha ")

        user = db.get(User, result.user.id)
        assert user.email == "new@example.com"
        assert user.name == "Asha"
        assert user.hashed_password != "password123"
        assert user.refresh_token_hash == TokenService.hash_token(result.tokens.refresh_token)

    def test_tokens_are_bound_to_the_new_user(self, db, auth_service, token_service):
        result = auth_service.signup(db, "bound@example.com", "password123", "Bound")

        assert token_service.verify_access(result.tokens.access_token) == result.user.id
        assert token_service.verify_refresh(result.tokens.refresh_token) == result.user.id

    def test_duplicate_email(self, db, auth_service, make_user):
        make_user(email="taken@example.com")

        with pytest.raises(UserExistsError) as exc_info:
            auth_service.signup(db, "TAKEN@example.com", "password123", "Someone")
        assert exc_info.value.message == "User with this email already exists"

    def test_signup_refresh_token_is_usable(self, db, auth_service):
        result = auth_service.signup(db, "fresh@example.com", "password123", "Fresh")
        assert auth_service.refresh(db, result.tokens.refresh_token).refresh_token


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_success(self, db, auth_service, make_user):
        user = make_user(email="login@example.com", password="password123")

        result = auth_service.login(db, "LOGIN@example.com", "password123")

        assert result.user.id == user.id
        db.refresh(user)
        assert user.refresh_token_hash == TokenService.hash_token(result.tokens.refresh_token)

    def test_wrong_password(self, db, auth_service, make_user):
        make_user(email="login@example.com", password="password123")

        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.login(db, "login@example.com", "wrong-password")
        assert exc_info.value.message == "Invalid credentials"

    def test_unknown_email_same_error(self, db, auth_service):
        with pytest.raises(InvalidCredentialsError):
            auth_service.login(db, "ghost@example.com", "password123")

    def test_login_invalidates_previous_refresh_token(self, db, auth_service, make_user):
        make_user(email="two@example.com")
        first = auth_service.login(db, "two@example.com", "password123")
        auth_service.login(db, "two@example.com", "password123")

        with pytest.raises(InvalidTokenError):
            auth_service.refresh(db, first.tokens.refresh_token)


# =============================================================================
# REFRESH ROTATION
# =============================================================================


class TestRefresh:

    def test_rotation(self, db, auth_service, make_user):
        make_user(email="rotate@example.com")
        r0 = auth_service.login(db, "rotate@example.com", "password123").tokens.refresh_token

        r1 = auth_service.refresh(db, r0).refresh_token
        assert r1 != r0

        # r0 was rotated out
        with pytest.raises(InvalidTokenError) as exc_info:
            auth_service.refresh(db, r0)
        assert exc_info.value.message == "Invalid refresh token"

        # r1 still works, once
        r2 = auth_service.refresh(db, r1).refresh_token
        assert r2 not in (r0, r1)

    def test_access_token_rejected(self, db, auth_service, make_user):
        make_user(email="rotate@example.com")
        tokens = auth_service.login(db, "rotate@example.com", "password123").tokens

        with pytest.raises(InvalidTokenError):
            auth_service.refresh(db, tokens.access_token)

    def test_token_for_deleted_user(self, db, auth_service, token_service):
        orphan = token_service.issue_token_pair(9999)

        with pytest.raises(InvalidTokenError):
            auth_service.refresh(db, orphan.refresh_token)


# =============================================================================
# LOGOUT
# =============================================================================


class TestLogout:

    def test_logout_revokes_refresh_token(self, db, auth_service, make_user):
        user = make_user(email="bye@example.com")
        tokens = auth_service.login(db, "bye@example.com", "password123").tokens

        auth_service.logout(db, user)

        db.refresh(user)
        assert user.refresh_token_hash is None
        with pytest.raises(InvalidTokenError):
            auth_service.refresh(db, tokens.refresh_token)


# =============================================================================
# ACCESS TOKENS / LOOKUP
# =============================================================================


class TestAuthenticateAccessToken:

    def test_valid(self, db, auth_service, make_user, token_service):
        user = make_user()
        token = token_service.create_token(user.id, "access")

        assert auth_service.authenticate_access_token(db, token).id == user.id

    def test_user_gone(self, db, auth_service, token_service):
        token = token_service.create_token(12345, "access")

        with pytest.raises(InvalidTokenError):
            auth_service.authenticate_access_token(db, token)

    def test_get_user_not_found(self, db, auth_service):
        with pytest.raises(UserNotFoundError):
            auth_service.get_user(db, 404)
