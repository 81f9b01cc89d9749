from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from slugify import slugify
from sqlalchemy import desc, func, or_
from sqlalchemy.orm import Session, selectinload

from app.auth import roles
from app.auth.deps import require_roles
from app.core.db import get_db
from app.models.event import Event
from app.models.member import Member
from app.models.ministry import MemberMinistry, Ministry
from app.models.user import User
from app.routers.params import ListParams, list_params
from app.schemas.common import DeletionResult
from app.schemas.ministry import (
    MemberSummary,
    MinistryCreate,
    MinistryDetail,
    MinistryEventRef,
    MinistryListResponse,
    MinistryMemberAdd,
    MinistryMemberListResponse,
    MinistryMemberOut,
    MinistryMemberRoleUpdate,
    MinistryMembershipCount,
    MinistryOut,
    MinistryRole,
    MinistryStats,
    MinistryType,
    MinistryTypeCount,
    MinistryUpdate,
)
from app.services.lookups import get_member_or_404, get_ministry_or_404
from app.services.membership import active_member_counts, add_membership, get_active_membership, remove_membership
from app.services.pagination import LIKE_ESCAPE, apply_sort, like_pattern, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ministries", tags=["ministries"])

READ_ROLES = roles.ALL_ROLES
WRITE_ROLES = (roles.ADMIN, roles.SUPER_ADMIN, roles.MINISTRY_LEADER)
DELETE_ROLES = (roles.SUPER_ADMIN,)

SORTABLE_FIELDS = {
    "name": Ministry.name,
    "type": Ministry.type,
    "created_at": Ministry.created_at,
    "updated_at": Ministry.updated_at,
}

RECENT_EVENTS = 10


def _active_event_counts(db: Session, ministry_ids: list[int]) -> dict[int, int]:
    if not ministry_ids:
        return {}
    rows = (
        db.query(Event.ministry_id, func.count(Event.id))
        .filter(Event.ministry_id.in_(ministry_ids), Event.is_active.is_(True))
        .group_by(Event.ministry_id)
        .all()
    )
    return {ministry_id: count for ministry_id, count in rows}


def _serialize_ministry(ministry: Ministry, member_count: int, event_count: int) -> MinistryOut:
    return MinistryOut(
        id=ministry.id,
        name=ministry.name,
        slug=ministry.slug,
        type=ministry.type,
        description=ministry.description,
        leader_id=ministry.leader_id,
        leader=MemberSummary.from_orm(ministry.leader) if ministry.leader else None,
        meeting_schedule=ministry.meeting_schedule,
        contact_info=ministry.contact_info,
        is_active=ministry.is_active,
        member_count=member_count,
        event_count=event_count,
        created_at=ministry.created_at,
        updated_at=ministry.updated_at,
    )


def _serialize_membership(membership: MemberMinistry) -> MinistryMemberOut:
    return MinistryMemberOut(
        member=MemberSummary.from_orm(membership.member),
        role=membership.role,
        is_active=membership.is_active,
        joined_at=membership.joined_at,
    )


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Ministry.id).filter(func.lower(Ministry.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Ministry.id != exclude_id)
    if query.first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ministry with this name already exists")


def _unique_slug(db: Session, name: str, exclude_id: int | None = None) -> str:
    base = slugify(name) or "ministry"
    candidate = base
    suffix = 2
    while True:
        query = db.query(Ministry.id).filter(Ministry.slug == candidate)
        if exclude_id is not None:
            query = query.filter(Ministry.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1


def _build_detail(db: Session, ministry: Ministry) -> MinistryDetail:
    memberships = (
        db.query(MemberMinistry)
        .options(selectinload(MemberMinistry.member))
        .filter(MemberMinistry.ministry_id == ministry.id, MemberMinistry.is_active.is_(True))
        .order_by(MemberMinistry.joined_at.asc())
        .all()
    )
    events = (
        db.query(Event)
        .filter(Event.ministry_id == ministry.id, Event.is_active.is_(True))
        .order_by(Event.date.desc())
        .limit(RECENT_EVENTS)
        .all()
    )
    event_count = _active_event_counts(db, [ministry.id]).get(ministry.id, 0)
    summary = _serialize_ministry(ministry, len(memberships), event_count)
    return MinistryDetail(
        **summary.dict(),
        members=[_serialize_membership(membership) for membership in memberships],
        events=[MinistryEventRef.from_orm(event) for event in events],
    )


@router.get("", response_model=MinistryListResponse)
def list_ministries(
    *,
    params: ListParams = Depends(list_params),
    search: Optional[str] = Query(default=None),
    ministry_type: Optional[MinistryType] = Query(default=None, alias="type"),
    is_active: Optional[bool] = Query(default=True),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> MinistryListResponse:
    query = db.query(Ministry)
    if is_active is not None:
        query = query.filter(Ministry.is_active.is_(is_active))
    if ministry_type:
        query = query.filter(Ministry.type == ministry_type)
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                func.lower(Ministry.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Ministry.description).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    query = apply_sort(query, SORTABLE_FIELDS, params.sort_by, params.sort_order, default_field="name", tiebreaker=Ministry.id)
    page = paginate(query.options(selectinload(Ministry.leader)), params.page, params.limit)

    ids = [ministry.id for ministry in page.items]
    member_counts = active_member_counts(db, ids)
    event_counts = _active_event_counts(db, ids)
    items = [
        _serialize_ministry(ministry, member_counts.get(ministry.id, 0), event_counts.get(ministry.id, 0))
        for ministry in page.items
    ]
    return MinistryListResponse(**page.envelope(items))


@router.get("/stats", response_model=MinistryStats)
def ministry_stats(db: Session = Depends(get_db)) -> MinistryStats:
    total = db.query(func.count(Ministry.id)).scalar() or 0
    active = db.query(func.count(Ministry.id)).filter(Ministry.is_active.is_(True)).scalar() or 0

    type_rows = (
        db.query(Ministry.type, func.count(Ministry.id))
        .group_by(Ministry.type)
        .order_by(Ministry.type)
        .all()
    )

    member_count = func.count(MemberMinistry.id)
    membership_rows = (
        db.query(Ministry.id, Ministry.name, member_count)
        .join(MemberMinistry, MemberMinistry.ministry_id == Ministry.id)
        .filter(MemberMinistry.is_active.is_(True))
        .group_by(Ministry.id, Ministry.name)
        .order_by(desc(member_count), Ministry.name)
        .all()
    )

    return MinistryStats(
        total=total,
        active=active,
        inactive=total - active,
        by_type=[MinistryTypeCount(type=ministry_type, count=count) for ministry_type, count in type_rows],
        membership=[
            MinistryMembershipCount(ministry_id=ministry_id, ministry_name=name or "Unknown", member_count=count)
            for ministry_id, name, count in membership_rows
        ],
    )


@router.post("", response_model=MinistryDetail, status_code=status.HTTP_201_CREATED)
def create_ministry(
    payload: MinistryCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MinistryDetail:
    _ensure_unique_name(db, payload.name)
    if payload.leader_id is not None:
        get_member_or_404(db, payload.leader_id, detail="Leader not found")

    ministry = Ministry(**payload.dict(), slug=_unique_slug(db, payload.name))
    db.add(ministry)
    db.commit()
    db.refresh(ministry)
    logger.info("ministry_created", extra={"ministry_id": ministry.id, "actor": user.email})
    return _build_detail(db, ministry)


@router.get("/{ministry_id:int}", response_model=MinistryDetail)
def get_ministry(
    ministry_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> MinistryDetail:
    return _build_detail(db, get_ministry_or_404(db, ministry_id))


@router.put("/{ministry_id:int}", response_model=MinistryDetail)
def update_ministry(
    ministry_id: int,
    payload: MinistryUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MinistryDetail:
    ministry = get_ministry_or_404(db, ministry_id)
    changes = payload.changes()

    if "name" in changes and changes["name"] != ministry.name:
        _ensure_unique_name(db, changes["name"], exclude_id=ministry.id)
        ministry.slug = _unique_slug(db, changes["name"], exclude_id=ministry.id)
    if changes.get("leader_id") is not None:
        get_member_or_404(db, changes["leader_id"], detail="Leader not found")

    for field, value in changes.items():
        setattr(ministry, field, value)
    db.commit()
    db.refresh(ministry)
    logger.info("ministry_updated", extra={"ministry_id": ministry.id, "actor": user.email})
    return _build_detail(db, ministry)


@router.delete("/{ministry_id:int}", response_model=DeletionResult)
def delete_ministry(
    ministry_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*DELETE_ROLES)),
) -> DeletionResult:
    ministry = get_ministry_or_404(db, ministry_id)

    if active_member_counts(db, [ministry.id]).get(ministry.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete ministry with active members. Remove all members first.",
        )
    if _active_event_counts(db, [ministry.id]).get(ministry.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete ministry with active events. Cancel or reassign them first.",
        )

    db.delete(ministry)
    db.commit()
    logger.info("ministry_deleted", extra={"ministry_id": ministry_id, "actor": user.email, "outcome": "deleted"})
    return DeletionResult(id=ministry_id, outcome="deleted", detail="Ministry deleted successfully")


@router.get("/{ministry_id:int}/members", response_model=MinistryMemberListResponse)
def list_ministry_members(
    ministry_id: int,
    *,
    params: ListParams = Depends(list_params),
    search: Optional[str] = Query(default=None),
    role: Optional[MinistryRole] = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> MinistryMemberListResponse:
    get_ministry_or_404(db, ministry_id)
    query = (
        db.query(MemberMinistry)
        .join(Member, Member.id == MemberMinistry.member_id)
        .filter(MemberMinistry.ministry_id == ministry_id, MemberMinistry.is_active.is_(True))
    )
    if role:
        query = query.filter(MemberMinistry.role == role)
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                func.lower(Member.first_name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Member.last_name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Member.email).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    sortable = {
        "joined_at": MemberMinistry.joined_at,
        "role": MemberMinistry.role,
        "first_name": Member.first_name,
        "last_name": Member.last_name,
    }
    query = apply_sort(
        query,
        sortable,
        params.sort_by,
        params.sort_order,
        default_field="joined_at",
        default_order="desc",
        tiebreaker=MemberMinistry.id,
    )
    page = paginate(query.options(selectinload(MemberMinistry.member)), params.page, params.limit)
    return MinistryMemberListResponse(**page.envelope([_serialize_membership(item) for item in page.items]))


@router.post(
    "/{ministry_id:int}/members",
    response_model=MinistryMemberOut,
    status_code=status.HTTP_201_CREATED,
)
def add_ministry_member(
    ministry_id: int,
    payload: MinistryMemberAdd,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MinistryMemberOut:
    ministry = get_ministry_or_404(db, ministry_id)
    member = get_member_or_404(db, payload.member_id)
    membership = add_membership(db, member, ministry, payload.role)
    db.commit()
    db.refresh(membership)
    logger.info("ministry_member_added", extra={"ministry_id": ministry.id, "member_id": member.id, "actor": user.email})
    return _serialize_membership(membership)


@router.put("/{ministry_id:int}/members/{member_id:int}", response_model=MinistryMemberOut)
def update_ministry_member_role(
    ministry_id: int,
    member_id: int,
    payload: MinistryMemberRoleUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MinistryMemberOut:
    get_ministry_or_404(db, ministry_id)
    membership = get_active_membership(db, member_id, ministry_id)
    membership.role = payload.role
    db.commit()
    db.refresh(membership)
    logger.info("ministry_member_role_changed", extra={"ministry_id": ministry_id, "member_id": member_id, "actor": user.email})
    return _serialize_membership(membership)


@router.delete("/{ministry_id:int}/members/{member_id:int}", response_model=MinistryMemberOut)
def remove_ministry_member(
    ministry_id: int,
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MinistryMemberOut:
    get_ministry_or_404(db, ministry_id)
    membership = remove_membership(db, member_id, ministry_id)
    db.commit()
    db.refresh(membership)
    logger.info("ministry_member_removed", extra={"ministry_id": ministry_id, "member_id": member_id, "actor": user.email})
    return _serialize_membership(membership)
