from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import desc, func
from sqlalchemy.orm import Session, load_only, selectinload

from app.auth import roles
from app.auth.deps import require_roles
from app.core.db import get_db
from app.models.cell import Cell
from app.models.contribution import Contribution
from app.models.event import Event, EventAttendance
from app.models.member import Member
from app.models.ministry import MemberMinistry, Ministry
from app.models.user import User
from app.routers.params import ListParams, list_params
from app.schemas.member import (
    AgeGroupCount,
    CellCount,
    CellRef,
    GenderCount,
    MemberAttendanceRef,
    MemberAuditOut,
    MemberContributionRef,
    MemberCreate,
    MemberDeletionResult,
    MemberDetail,
    MemberExportResponse,
    MemberGender,
    MemberListItem,
    MemberListResponse,
    MemberMinistryAssign,
    MemberMinistryRef,
    MemberOut,
    MemberStats,
    MemberUpdate,
    MinistryCount,
)
from app.services.audit import record_member_changes, snapshot_member
from app.services.exports import csv_response, rows_as_records
from app.services.lookups import get_cell_or_404, get_member_or_404, get_ministry_or_404
from app.services.members_query import SORTABLE_FIELDS, build_members_query
from app.services.membership import add_membership, remove_membership
from app.services.pagination import apply_sort, paginate
from app.services.statistics import age_histogram

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/members", tags=["members"])

READ_ROLES = roles.ALL_ROLES
WRITE_ROLES = (roles.ADMIN, roles.SUPER_ADMIN, roles.LEADER)
DELETE_ROLES = (roles.ADMIN, roles.SUPER_ADMIN)
EXPORT_ROLES = (roles.ADMIN, roles.SUPER_ADMIN, roles.LEADER)

MEMBER_EXPORT_HEADERS = [
    "Name",
    "Email",
    "Phone",
    "Age",
    "Gender",
    "Cell",
    "Ministries",
    "Join Date",
    "Status",
]

RECENT_CONTRIBUTIONS = 5
RECENT_ATTENDANCE = 10


def _member_options():
    return (
        selectinload(Member.cell),
        selectinload(Member.ministry_memberships).selectinload(MemberMinistry.ministry),
    )


def _ministry_refs(member: Member) -> list[MemberMinistryRef]:
    return [
        MemberMinistryRef(
            id=membership.ministry.id,
            name=membership.ministry.name,
            role=membership.role,
            joined_at=membership.joined_at,
        )
        for membership in member.ministry_memberships
        if membership.is_active
    ]


def _serialize_member(member: Member) -> MemberListItem:
    base = MemberOut.from_orm(member)
    return MemberListItem(
        **base.dict(),
        cell=CellRef.from_orm(member.cell) if member.cell else None,
        ministries=_ministry_refs(member),
    )


def _ensure_unique_email(db: Session, email: str, exclude_id: int | None = None) -> None:
    query = db.query(Member.id).filter(func.lower(Member.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(Member.id != exclude_id)
    if query.first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Member with this email already exists")


@router.get("", response_model=MemberListResponse)
def list_members(
    *,
    params: ListParams = Depends(list_params),
    search: Optional[str] = Query(default=None),
    cell_id: Optional[int] = Query(default=None, ge=1),
    ministry_id: Optional[int] = Query(default=None, ge=1),
    gender: Optional[MemberGender] = Query(default=None),
    is_active: bool = Query(default=True),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> MemberListResponse:
    query = build_members_query(
        db,
        search=search,
        cell_id=cell_id,
        ministry_id=ministry_id,
        gender=gender,
        is_active=is_active,
    )
    query = apply_sort(
        query,
        SORTABLE_FIELDS,
        params.sort_by,
        params.sort_order,
        default_field="last_name",
        tiebreaker=Member.id,
    )
    page = paginate(query.options(*_member_options()), params.page, params.limit)
    return MemberListResponse(**page.envelope([_serialize_member(member) for member in page.items]))


@router.get("/stats", response_model=MemberStats)
def member_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> MemberStats:
    total = db.query(func.count(Member.id)).scalar() or 0
    active = db.query(func.count(Member.id)).filter(Member.is_active.is_(True)).scalar() or 0

    gender_rows = (
        db.query(Member.gender, func.count(Member.id))
        .filter(Member.is_active.is_(True))
        .group_by(Member.gender)
        .all()
    )
    by_gender = sorted(
        (GenderCount(gender=gender or "Not specified", count=count) for gender, count in gender_rows),
        key=lambda item: (-item.count, item.gender),
    )

    member_count = func.count(Member.id)
    cell_rows = (
        db.query(Cell.id, Cell.name, member_count)
        .join(Member, Member.cell_id == Cell.id)
        .filter(Member.is_active.is_(True))
        .group_by(Cell.id, Cell.name)
        .order_by(desc(member_count), Cell.name)
        .all()
    )

    membership_count = func.count(MemberMinistry.id)
    ministry_rows = (
        db.query(Ministry.id, Ministry.name, membership_count)
        .join(MemberMinistry, MemberMinistry.ministry_id == Ministry.id)
        .join(Member, Member.id == MemberMinistry.member_id)
        .filter(MemberMinistry.is_active.is_(True), Member.is_active.is_(True))
        .group_by(Ministry.id, Ministry.name)
        .order_by(desc(membership_count), Ministry.name)
        .all()
    )

    aged_members = (
        db.query(Member)
        .options(load_only(Member.age, Member.birth_date))
        .filter(Member.is_active.is_(True))
        .all()
    )
    histogram = age_histogram(member.effective_age() for member in aged_members)

    return MemberStats(
        total=total,
        active=active,
        inactive=total - active,
        by_gender=by_gender,
        by_cell=[CellCount(cell_id=cell_id, cell_name=name, count=count) for cell_id, name, count in cell_rows],
        by_ministry=[
            MinistryCount(ministry_id=ministry_id, ministry_name=name or "Unknown", count=count)
            for ministry_id, name, count in ministry_rows
        ],
        by_age_group=[AgeGroupCount(age_group=label, count=count) for label, count in histogram.items()],
    )


@router.get("/export", response_model=None)
def export_members(
    *,
    export_format: Literal["csv", "json"] = Query(default="csv", alias="format"),
    cell_id: Optional[int] = Query(default=None, ge=1),
    ministry_id: Optional[int] = Query(default=None, ge=1),
    is_active: Optional[bool] = Query(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*EXPORT_ROLES)),
):
    query = build_members_query(db, cell_id=cell_id, ministry_id=ministry_id, is_active=is_active)
    members = (
        query.options(*_member_options())
        .order_by(Member.last_name.asc(), Member.first_name.asc(), Member.id.asc())
        .all()
    )
    rows = [
        [
            member.full_name,
            member.email,
            member.phone,
            member.effective_age(),
            member.gender,
            member.cell.name if member.cell else None,
            "; ".join(ref.name for ref in _ministry_refs(member)),
            member.join_date,
            "Active" if member.is_active else "Inactive",
        ]
        for member in members
    ]
    logger.info("members_exported", extra={"actor": user.email, "format": export_format, "rows": len(rows)})

    if export_format == "json":
        records = rows_as_records(MEMBER_EXPORT_HEADERS, rows)
        return MemberExportResponse(items=records, count=len(records))
    return csv_response("members.csv", MEMBER_EXPORT_HEADERS, rows)


@router.post("", response_model=MemberListItem, status_code=status.HTTP_201_CREATED)
def create_member(
    payload: MemberCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MemberListItem:
    data = payload.dict()
    if data.get("email"):
        data["email"] = data["email"].lower()
        _ensure_unique_email(db, data["email"])
    if payload.cell_id is not None:
        get_cell_or_404(db, payload.cell_id)

    member = Member(**{key: value for key, value in data.items() if value is not None})
    db.add(member)
    db.commit()
    db.refresh(member)

    logger.info("member_created", extra={"member_id": member.id, "actor": user.email})
    return _serialize_member(member)


@router.get("/{member_id:int}", response_model=MemberDetail)
def get_member(
    member_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> MemberDetail:
    member = (
        db.query(Member)
        .options(*_member_options())
        .filter(Member.id == member_id)
        .first()
    )
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    contributions = (
        db.query(Contribution)
        .filter(Contribution.member_id == member.id)
        .order_by(Contribution.date.desc(), Contribution.id.desc())
        .limit(RECENT_CONTRIBUTIONS)
        .all()
    )
    attendance_rows = (
        db.query(EventAttendance, Event.title)
        .join(Event, Event.id == EventAttendance.event_id)
        .filter(EventAttendance.member_id == member.id)
        .order_by(EventAttendance.recorded_at.desc())
        .limit(RECENT_ATTENDANCE)
        .all()
    )

    summary = _serialize_member(member)
    return MemberDetail(
        **summary.dict(),
        recent_contributions=[
            MemberContributionRef(id=item.id, amount=item.amount, type=item.type, date=item.date)
            for item in contributions
        ],
        recent_attendance=[
            MemberAttendanceRef(
                event_id=attendance.event_id,
                event_title=title,
                status=attendance.status,
                recorded_at=attendance.recorded_at,
            )
            for attendance, title in attendance_rows
        ],
    )


@router.put("/{member_id:int}", response_model=MemberListItem)
def update_member(
    member_id: int,
    payload: MemberUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MemberListItem:
    member = get_member_or_404(db, member_id)
    previous = snapshot_member(member)
    changes = payload.changes()

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        _ensure_unique_email(db, changes["email"], exclude_id=member.id)
    if changes.get("cell_id") is not None:
        get_cell_or_404(db, changes["cell_id"])

    for field, value in changes.items():
        setattr(member, field, value)

    db.flush()
    changed = record_member_changes(db, member, previous, user.id)
    db.commit()
    db.refresh(member)

    logger.info("member_updated", extra={"member_id": member.id, "actor": user.email, "rows": changed})
    return _serialize_member(member)


@router.delete("/{member_id:int}", response_model=MemberDeletionResult)
def delete_member(
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*DELETE_ROLES)),
) -> MemberDeletionResult:
    member = get_member_or_404(db, member_id)

    has_contributions = db.query(Contribution.id).filter(Contribution.member_id == member.id).first() is not None
    has_ministries = (
        db.query(MemberMinistry.id)
        .filter(MemberMinistry.member_id == member.id, MemberMinistry.is_active.is_(True))
        .first()
        is not None
    )

    if has_contributions or has_ministries:
        previous = snapshot_member(member)
        member.is_active = False
        db.flush()
        record_member_changes(db, member, previous, user.id)
        db.commit()
        logger.info("member_deactivated", extra={"member_id": member.id, "actor": user.email, "outcome": "deactivated"})
        return MemberDeletionResult(
            id=member_id,
            outcome="deactivated",
            detail="Member deactivated because contributions or ministry memberships reference it",
        )

    db.delete(member)
    db.commit()
    logger.info("member_deleted", extra={"member_id": member_id, "actor": user.email, "outcome": "deleted"})
    return MemberDeletionResult(id=member_id, outcome="deleted", detail="Member deleted successfully")


@router.get("/{member_id:int}/history", response_model=list[MemberAuditOut])
def member_history(
    member_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> list[MemberAuditOut]:
    member = get_member_or_404(db, member_id)
    return [MemberAuditOut.from_orm(entry) for entry in member.audit_entries]


@router.post(
    "/{member_id:int}/ministries",
    response_model=MemberListItem,
    status_code=status.HTTP_201_CREATED,
)
def assign_member_ministry(
    member_id: int,
    payload: MemberMinistryAssign,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MemberListItem:
    member = get_member_or_404(db, member_id)
    ministry = get_ministry_or_404(db, payload.ministry_id)
    previous = snapshot_member(member)
    add_membership(db, member, ministry, payload.role)
    db.refresh(member)
    record_member_changes(db, member, previous, user.id)
    db.commit()
    db.refresh(member)
    logger.info("member_ministry_added", extra={"member_id": member.id, "ministry_id": ministry.id, "actor": user.email})
    return _serialize_member(member)


@router.delete("/{member_id:int}/ministries/{ministry_id:int}", response_model=MemberListItem)
def remove_member_ministry(
    member_id: int,
    ministry_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> MemberListItem:
    member = get_member_or_404(db, member_id)
    previous = snapshot_member(member)
    remove_membership(db, member.id, ministry_id)
    db.refresh(member)
    record_member_changes(db, member, previous, user.id)
    db.commit()
    db.refresh(member)
    logger.info("member_ministry_removed", extra={"member_id": member.id, "ministry_id": ministry_id, "actor": user.email})
    return _serialize_member(member)
