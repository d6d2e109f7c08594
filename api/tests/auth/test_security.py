"""Tests for auth security functions."""

from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from jose import JWTError, jwt

from src.auth.security import (
    AccessClaims,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from src.config.settings import get_settings


class TestPasswordHashing:
    def test_hash_password_uses_argon2id(self) -> None:
        hashed = hash_password("SecurePassword123")
        assert hashed.startswith("$argon2id$")

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        assert hash_password("SecurePassword123") != hash_password("SecurePassword123")

    def test_verify_password_correct(self) -> None:
        hashed = hash_password("SecurePassword123")
        is_valid, new_hash = verify_password("SecurePassword123", hashed)
        assert is_valid is True
        assert new_hash is None  # No rehash needed for fresh hash

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("SecurePassword123")
        assert verify_password("WrongPassword456", hashed) == (False, None)

    def test_verify_password_invalid_hash(self) -> None:
        assert verify_password("SecurePassword123", "not-a-hash") == (False, None)



def make_claims(company_id: UUID | None = None) -> AccessClaims:
    return AccessClaims(
        user_id=uuid4(),
        email="user@example.com",
        role="company_admin",
        company_id=company_id,
    )


def encode(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.auth_secret_key, algorithm=settings.auth_algorithm)


class TestAccessToken:
    def test_round_trip_carries_claims(self) -> None:
        claims = make_claims(company_id=uuid4())
        assert decode_access_token(create_access_token(claims)) == claims

    def test_payload_fields(self) -> None:
        claims = make_claims()
        payload = jwt.get_unverified_claims(create_access_token(claims))

        assert payload["sub"] == str(claims.user_id)
        assert payload["iss"] == get_settings().app_name
        assert payload["type"] == "access"
        assert "company_id" not in payload

    def test_expired_token_rejected(self) -> None:
        token = create_access_token(make_claims(), expires_delta=timedelta(seconds=-1))
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_wrong_token_type_rejected(self) -> None:
        payload = make_claims().to_payload()
        payload.update({"type": "refresh", "iss": get_settings().app_name})
        with pytest.raises(JWTError):
            decode_access_token(encode(payload))

    def test_foreign_issuer_rejected(self) -> None:
        payload = make_claims().to_payload()
        payload.update({"type": "access", "iss": "someone-else"})
        with pytest.raises(JWTError):
            decode_access_token(encode(payload))

    def test_missing_claims_rejected(self) -> None:
        token = encode({"sub": "not-a-uuid", "type": "access", "iss": get_settings().app_name})
        with pytest.raises(JWTError, match="Malformed"):
            decode_access_token(token)
