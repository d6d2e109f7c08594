"""Password hashing and access tokens.

Passwords are hashed with Argon2id. Access tokens are HS256 JWTs whose
payload carries the access-control claims (role, company) so that request
authorization needs no database read.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from jose import JWTError, jwt

from src.config.settings import get_settings


ACCESS_TOKEN_TYPE = "access"

# OWASP minimums for Argon2id
_password_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19456,  # KiB
    parallelism=1,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Check a password. Returns (is_valid, new_hash).

    ``new_hash`` is set when the stored hash uses outdated parameters.
    """
    try:
        _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False, None

    if _password_hasher.check_needs_rehash(password_hash):
        return True, hash_password(password)
    return True, None


# ==============================================================================
# Access tokens
# ==============================================================================


@dataclass(frozen=True)
class AccessClaims:
    """Identity and access-control claims carried by an access token."""

    user_id: UUID
    email: str
    role: str
    company_id: UUID | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sub": str(self.user_id),
            "email": self.email,
            "role": self.role,
        }
        if self.company_id:
            payload["company_id"] = str(self.company_id)
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AccessClaims":
        """Raises JWTError when a claim is missing or malformed."""
        try:
            company_id = payload.get("company_id")
            return cls(
                user_id=UUID(payload["sub"]),
                email=payload["email"],
                role=payload["role"],
                company_id=UUID(company_id) if company_id else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Malformed access token claims: {e}"
            raise JWTError(msg) from e


def create_access_token(claims: AccessClaims, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    now = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)

    payload = claims.to_payload()
    payload.update(
        {
            "iss": settings.app_name,
            "iat": now,
            "exp": now + lifetime,
            "type": ACCESS_TOKEN_TYPE,
        }
    )
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


def decode_access_token(token: str) -> AccessClaims:
    """Verify signature, expiry, issuer and token type.

    Raises:
        JWTError: If the token is invalid for any reason
    """
    settings = get_settings()
    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
        issuer=settings.app_name,
    )
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        msg = f"Invalid token type: expected '{ACCESS_TOKEN_TYPE}'"
        raise JWTError(msg)
    return AccessClaims.from_payload(payload)
