# backend/tests/services/auth/test_password.py
"""
Tests for password hashing service.

Tests:
- bcrypt hash format and salting
- Password verification (correct/incorrect)
- Reduced cost factor in the test environment
"""

from portfolio_aggregator.services.auth import PasswordService


class TestPasswordHashing:
    """Tests for password hashing."""

    def test_hash_has_bcrypt_prefix(self):
        hashed = PasswordService.hash_password("mypassword123")
        assert hashed.startswith("$2b$")

    def test_hash_uses_test_cost_factor(self):
        """Test environment hashes with cost 4 to keep the suite fast."""
        hashed = PasswordService.hash_password("mypassword123")
        assert hashed.split("$")[2] == "04"

    def test_same_password_different_hashes(self):
        """Same password should produce different hashes (due to salt)."""
        assert PasswordService.hash_password("pw-123456") != PasswordService.hash_password("pw-123456")


class TestPasswordVerification:

    def test_correct_password(self):
        hashed = PasswordService.hash_password("correct horse")
        assert PasswordService.verify_password("correct horse", hashed) is True

    def test_wrong_password(self):
        hashed = PasswordService.hash_password("correct horse")
        assert PasswordService.verify_password("battery staple", hashed) is False

    def test_case_sensitive(self):
        hashed = PasswordService.hash_password("Password123")
        assert PasswordService.verify_password("password123", hashed) is False
