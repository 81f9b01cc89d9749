from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from app.auth.roles import ROLE_DESCRIPTIONS
from app.core.config import settings
from app.models.role import Role
from app.models.user import User


def now_utc() -> datetime:
    """Naive UTC timestamp, matching how the schema stores datetimes."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_password_strength(password: str) -> None:
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long.")
    if password.strip() != password:
        raise ValueError("Password must not start or end with whitespace.")


def ensure_roles(db: Session, role_names: Iterable[str]) -> list[Role]:
    """Load roles by name, creating any known role that is not seeded yet."""

    names = list(dict.fromkeys(role_names))
    roles = list(db.query(Role).filter(Role.name.in_(names)).all())
    found = {role.name for role in roles}
    for name in names:
        if name in found:
            continue
        if name not in ROLE_DESCRIPTIONS:
            raise ValueError(f"Unknown role: {name}")
        role = Role(name=name, description=ROLE_DESCRIPTIONS[name])
        db.add(role)
        roles.append(role)
    return roles


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()
