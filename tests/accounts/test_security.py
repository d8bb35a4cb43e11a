"""
Tests for password hashing, session tokens and temporary passwords.
"""

import string
from datetime import datetime, timedelta

import pytest

from accounts.security import PasswordHasher, TokenIssuer, generate_temporary_password
from storage.models import Role
from utilities.errors import AuthenticationError, InvalidInputError


class TestPasswordHasher:
    """Test cases for PasswordHasher."""

    def test_hash_and_verify(self, hasher):
        hashed = hasher.hash("Secret123")
        assert hashed != "Secret123"
        assert hasher.verify("Secret123", hashed)
        assert not hasher.verify("secret123", hashed)

    def test_rejects_passwords_over_72_bytes(self, hasher):
        with pytest.raises(InvalidInputError):
            hasher.hash("é" * 37)

    def test_verify_never_raises(self, hasher):
        hashed = hasher.hash("Secret123")
        assert not hasher.verify("x" * 100, hashed)
        assert not hasher.verify("Secret123", "not-a-bcrypt-hash")

    def test_unusable_hash_matches_nothing_known(self, hasher):
        hashed = hasher.unusable_hash()
        assert not hasher.verify("", hashed)
        assert not hasher.verify("Secret123", hashed)

    def test_dummy_verification_is_false(self, hasher):
        assert hasher.verify_dummy("anything") is False

    def test_rounds_are_used(self):
        hashed = PasswordHasher(rounds=5).hash("Secret123")
        assert hashed.startswith("$2b$05$")


class TestTokenIssuer:
    """Test cases for TokenIssuer."""

    def test_round_trip(self, tokens):
        token = tokens.issue(42, Role.ADMINISTRATOR)
        claims = tokens.verify(token)
        assert claims.user_id == 42
        assert claims.role == Role.ADMINISTRATOR

    def test_expired_token(self):
        past = datetime.utcnow() - timedelta(hours=2)
        issuer = TokenIssuer("test-secret-key", ttl=timedelta(hours=1), clock=lambda: past)
        token = issuer.issue(1, Role.STUDENT)

        with pytest.raises(AuthenticationError):
            issuer.verify(token)

    def test_wrong_secret(self, tokens):
        other = TokenIssuer("another-secret")
        token = other.issue(1, Role.STUDENT)

        with pytest.raises(AuthenticationError):
            tokens.verify(token)

    def test_garbage_token(self, tokens):
        with pytest.raises(AuthenticationError):
            tokens.verify("not.a.token")


class TestTemporaryPassword:
    """Test cases for generate_temporary_password."""

    def test_composition(self):
        for _ in range(200):
            password = generate_temporary_password(8)
            assert len(password) == 8
            assert any(c in string.ascii_uppercase for c in password)
            assert any(c in string.ascii_lowercase for c in password)
            assert any(c in string.digits for c in password)
            assert all(c in string.ascii_letters + string.digits for c in password)

    def test_custom_length(self):
        assert len(generate_temporary_password(12)) == 12

    def test_minimum_length(self):
        with pytest.raises(ValueError):
            generate_temporary_password(2)

    def test_passwords_differ(self):
        assert len({generate_temporary_password() for _ in range(50)}) > 45
