"""Authentication service for JWT-based authentication.

Bearer tokens are stateless HS256 JWTs. Logins are accepted with either a
configured API key or a username/password pair whose argon2 hash is stored
in the settings.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from types import MappingProxyType
from typing import Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from jwt.exceptions import PyJWTError

from fail2rest.core.config import Settings

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# Argon2 password hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


class AuthError(Exception):
    """Base authentication error."""

    pass


class InvalidTokenError(AuthError):
    """JWT token is malformed, unsigned, signed with the wrong key or algorithm."""

    pass


class TokenExpiredError(InvalidTokenError):
    """JWT token has expired."""

    pass


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash using constant-time comparison."""
    try:
        ph.verify(password_hash, password)
        return True
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError):
        logger.warning("Stored password hash could not be verified (malformed hash?)")
        return False


@dataclass(frozen=True)
class ApiKeyCredential:
    api_key: str = field(repr=False)


@dataclass(frozen=True)
class PasswordCredential:
    username: str
    password: str = field(repr=False)


Credential = ApiKeyCredential | PasswordCredential


@dataclass(frozen=True)
class TokenClaims:
    authorized: bool
    issued_at: datetime
    expires_at: datetime


class AuthService:
    """Issues and validates bearer tokens and checks login credentials.

    All state is fixed at construction and only read afterwards, so a single
    instance is shared by every request without locking.
    """

    def __init__(
        self,
        secret_key: str,
        token_lifetime: timedelta,
        api_keys: list[str] | None = None,
        users: dict[str, str] | None = None,
    ):
        self._secret_key = secret_key
        self._token_lifetime = token_lifetime
        self._api_keys = frozenset(key for key in api_keys or [] if key)
        self._users = MappingProxyType(
            {username: hashed for username, hashed in (users or {}).items() if username and hashed}
        )
        # Unknown usernames are verified against this so they cost the same
        # as a wrong password
        self._dummy_hash = hash_password("fail2rest-dummy-password")

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthService":
        return cls(
            secret_key=settings.jwt_secret_key,
            token_lifetime=timedelta(minutes=settings.jwt_token_expire_minutes),
            api_keys=settings.api_keys,
            users=settings.users,
        )

    def has_auth_configured(self) -> bool:
        """True if at least one API key or user is configured."""
        return bool(self._api_keys) or bool(self._users)

    def generate_token(self) -> tuple[str, datetime]:
        """Create a signed token and return it with its absolute expiry."""
        issued_at = datetime.now(UTC).replace(microsecond=0)
        expires_at = issued_at + self._token_lifetime
        payload = {
            "authorized": True,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret_key, algorithm=JWT_ALGORITHM)
        # PyJWT 2.x returns str; older type stubs may declare bytes
        return str(token), expires_at

    def validate_token(self, token: str) -> TokenClaims:
        """Verify a token's algorithm, signature and expiry."""
        try:
            header = jwt.get_unverified_header(token)
        except PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        # Reject "none" and any algorithm other than the one we sign with
        # before the signature is even looked at
        if header.get("alg") != JWT_ALGORITHM:
            raise InvalidTokenError("Invalid token: unexpected signing algorithm")

        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self._secret_key,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        return TokenClaims(
            authorized=payload.get("authorized") is True,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )

    def validate_api_key(self, api_key: str) -> bool:
        """O(1) membership test; the empty string is never a valid key."""
        if not api_key:
            return False
        return api_key in self._api_keys

    def validate_credentials(self, username: str, password: str) -> bool:
        """Check a username/password pair.

        Unknown usernames and wrong passwords are indistinguishable to the
        caller, including in timing, to prevent user enumeration.
        """
        password_hash = self._users.get(username)
        if password_hash is None:
            verify_password(password, self._dummy_hash)
            return False
        return verify_password(password, password_hash)

    def authenticate(self, credential: Credential) -> bool:
        """Validate either credential variant."""
        if isinstance(credential, ApiKeyCredential):
            return self.validate_api_key(credential.api_key)
        if isinstance(credential, PasswordCredential):
            return self.validate_credentials(credential.username, credential.password)
        raise TypeError(f"Unsupported credential type: {type(credential).__name__}")
