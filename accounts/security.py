"""
Credential hashing, session tokens and temporary password generation.

Passwords are hashed with bcrypt. Session tokens are HS256 JWTs carrying
the user id and role with a fixed lifetime.
"""

import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, Optional

import bcrypt
import jwt
import structlog

from accounts.models import SessionClaims
from storage.models import Role
from utilities.errors import AuthenticationError, InvalidInputError

logger = structlog.get_logger(__name__)

BCRYPT_MAX_BYTES = 72

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
TEMPORARY_PASSWORD_ALPHABET = UPPERCASE + LOWERCASE + DIGITS


class PasswordHasher:
    """bcrypt hashing with a configurable cost factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        # Compared against when the account does not exist, so unknown
        # handles cost the same time as wrong passwords.
        self._dummy_hash = self.hash(secrets.token_urlsafe(16))

    def hash(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise InvalidInputError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: str) -> bool:
        """Constant-time comparison of a password against a stored hash."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Over-long passwords and malformed hashes never match.
            return False

    def verify_dummy(self, password: str) -> bool:
        self.verify(password, self._dummy_hash)
        return False

    def unusable_hash(self) -> str:
        """Hash of a random secret nobody knows."""
        return self.hash(secrets.token_urlsafe(32))


class TokenIssuer:
    """Issues and verifies signed session tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=1),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl
        self.clock = clock or datetime.utcnow

    def issue(self, user_id: int, role: Role) -> str:
        issued_at = self.clock()
        payload = {
            "sub": str(user_id),
            "role": role.value,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionClaims:
        """
        Decode a session token.

        Raises:
            AuthenticationError: If the token is expired, tampered with or malformed
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
            return SessionClaims(user_id=int(payload["sub"]), role=Role(payload["role"]))
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Session token expired.") from e
        except (jwt.InvalidTokenError, KeyError, ValueError) as e:
            logger.warning("Rejected session token", error=str(e))
            raise AuthenticationError("Invalid session token.") from e


def generate_temporary_password(length: int = 8) -> str:
    """
    Generate a temporary password.

    Contains at least one uppercase letter, one lowercase letter and one
    digit; the rest is drawn uniformly from the combined alphabet and the
    result is shuffled, all from the OS CSPRNG.
    """
    if length < 3:
        raise ValueError("Temporary passwords need at least 3 characters")

    characters = [
        secrets.choice(UPPERCASE),
        secrets.choice(LOWERCASE),
        secrets.choice(DIGITS),
    ]
    characters.extend(
        secrets.choice(TEMPORARY_PASSWORD_ALPHABET) for _ in range(length - len(characters))
    )
    secrets.SystemRandom().shuffle(characters)
    return "".join(characters)
