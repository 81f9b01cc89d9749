"""Member to ministry assignments, shared by the members and ministries routes."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.models.member import Member
from app.models.ministry import MemberMinistry, Ministry
from app.services.user_accounts import now_utc


def find_membership(db: Session, member_id: int, ministry_id: int) -> MemberMinistry | None:
    return (
        db.query(MemberMinistry)
        .filter(MemberMinistry.member_id == member_id, MemberMinistry.ministry_id == ministry_id)
        .first()
    )


def add_membership(db: Session, member: Member, ministry: Ministry, role: str) -> MemberMinistry:
    """Add a member to a ministry, reviving a previous membership if there is one."""

    membership = find_membership(db, member.id, ministry.id)
    if membership is not None and membership.is_active:
        raise ConflictError("Member is already in this ministry")

    if membership is None:
        membership = MemberMinistry(member_id=member.id, ministry_id=ministry.id, role=role, is_active=True)
        db.add(membership)
    else:
        membership.is_active = True
        membership.role = role
        membership.joined_at = now_utc()
    db.flush()
    return membership


def get_active_membership(db: Session, member_id: int, ministry_id: int) -> MemberMinistry:
    membership = find_membership(db, member_id, ministry_id)
    if membership is None or not membership.is_active:
        raise NotFoundError("Member is not in this ministry")
    return membership


def remove_membership(db: Session, member_id: int, ministry_id: int) -> MemberMinistry:
    membership = get_active_membership(db, member_id, ministry_id)
    membership.is_active = False
    db.flush()
    return membership


def active_member_counts(db: Session, ministry_ids: list[int]) -> dict[int, int]:
    if not ministry_ids:
        return {}
    rows = (
        db.query(MemberMinistry.ministry_id, func.count(MemberMinistry.id))
        .filter(MemberMinistry.ministry_id.in_(ministry_ids), MemberMinistry.is_active.is_(True))
        .group_by(MemberMinistry.ministry_id)
        .all()
    )
    return {ministry_id: count for ministry_id, count in rows}
