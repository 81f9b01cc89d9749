from __future__ import annotations

import pytest
from jose import jwt

from app.auth.security import (
    create_access_token,
    decode_access_token,
    generate_reset_token,
    hash_password,
    hash_token,
    verify_password,
)
from app.core.config import settings
from app.core.errors import UnauthorizedError


def test_password_hash_roundtrip() -> None:
    hashed = hash_password("s3cret!")
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_rejects_missing_or_unknown_hash() -> None:
    assert verify_password("anything", None) is False
    assert verify_password("anything", "hash") is False


def test_access_token_carries_subject_and_roles() -> None:
    token = create_access_token(subject="42", roles=["ADMIN"])
    claims = decode_access_token(token)
    assert claims["sub"] == "42"
    assert claims["roles"] == ["ADMIN"]
    assert claims["exp"] > claims["iat"]


def test_expired_token_is_rejected() -> None:
    token = create_access_token(subject="1", expires_minutes=-5)
    with pytest.raises(UnauthorizedError) as excinfo:
        decode_access_token(token)
    assert excinfo.value.code == "token_expired"


def test_token_signed_with_other_secret_is_rejected() -> None:
    forged = jwt.encode({"sub": "1"}, "not-the-secret", algorithm=settings.JWT_ALG)
    with pytest.raises(UnauthorizedError) as excinfo:
        decode_access_token(forged)
    assert excinfo.value.message == "Invalid token"


def test_reset_token_hash_matches() -> None:
    raw, stored = generate_reset_token()
    assert raw != stored
    assert hash_token(raw) == stored
