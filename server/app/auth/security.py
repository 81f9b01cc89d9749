from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import UnauthorizedError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(password, hashed_password)
    except ValueError:
        # Unrecognised hash format.
        return False


def create_access_token(subject: str, roles: Iterable[str] = (), expires_minutes: int | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
    claims: dict[str, Any] = {
        "sub": subject,
        "roles": list(roles),
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(minutes=lifetime)).timestamp()),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except ExpiredSignatureError as exc:
        raise UnauthorizedError("Token expired", code="token_expired") from exc
    except JWTError as exc:
        raise UnauthorizedError("Invalid token", code="invalid_token") from exc


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> tuple[str, str]:
    """Return a raw password reset token and the hash stored for it."""

    raw = secrets.token_urlsafe(32)
    return raw, hash_token(raw)
