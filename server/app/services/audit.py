from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from app.models.member import Member
from app.models.member_audit import MemberAudit

_TRACKED_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "age",
    "birth_date",
    "gender",
    "address",
    "occupation",
    "notes",
    "join_date",
    "cell_id",
    "is_active",
)


def snapshot_member(member: Member) -> Dict[str, Any]:
    """Capture tracked fields so later changes can be diffed."""

    data: Dict[str, Any] = {field: getattr(member, field) for field in _TRACKED_FIELDS}
    data["ministries"] = ",".join(
        sorted(str(membership.ministry_id) for membership in member.ministry_memberships if membership.is_active)
    )
    return data


def _to_string(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    return str(value)


def record_member_changes(db: Session, member: Member, previous_snapshot: Dict[str, Any], actor_id: int | None) -> int:
    """Add one audit row per changed field and return how many were written."""

    current_snapshot = snapshot_member(member)
    written = 0
    for field, old_value in previous_snapshot.items():
        new_value = current_snapshot.get(field)
        if old_value == new_value:
            continue
        db.add(
            MemberAudit(
                member_id=member.id,
                field=field,
                old_value=_to_string(old_value),
                new_value=_to_string(new_value),
                changed_by_id=actor_id,
            )
        )
        written += 1
    return written
