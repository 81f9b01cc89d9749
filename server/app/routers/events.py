from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from app.auth import roles
from app.auth.deps import require_roles
from app.core.db import get_db
from app.models.event import Event, EventAttendance, EventRegistration
from app.models.user import User
from app.routers.params import ListParams, list_params
from app.schemas.common import DeletionResult, to_naive_utc
from app.schemas.event import (
    AttendanceCreate,
    AttendanceOut,
    EventCreate,
    EventDetail,
    EventListResponse,
    EventOut,
    EventStats,
    EventType,
    EventTypeCount,
    EventUpdate,
    MinistryRef,
    MonthlyCount,
    RegistrationCreate,
    RegistrationOut,
)
from app.schemas.ministry import MemberSummary
from app.services.lookups import get_member_or_404, get_ministry_or_404
from app.services.pagination import LIKE_ESCAPE, apply_sort, like_pattern, paginate
from app.services.statistics import month_key, months_ago_start, recent_month_keys
from app.services.user_accounts import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

READ_ROLES = roles.ALL_ROLES
WRITE_ROLES = (roles.ADMIN, roles.SUPER_ADMIN, roles.EVENT_ORGANIZER, roles.MINISTRY_LEADER)
DELETE_ROLES = (roles.SUPER_ADMIN,)

SORTABLE_FIELDS = {
    "title": Event.title,
    "date": Event.date,
    "type": Event.type,
    "created_at": Event.created_at,
}

TREND_MONTHS = 6


def _get_event_or_404(db: Session, event_id: int, *, active_only: bool = False) -> Event:
    query = (
        db.query(Event)
        .options(selectinload(Event.organizer), selectinload(Event.ministry))
        .filter(Event.id == event_id)
    )
    if active_only:
        query = query.filter(Event.is_active.is_(True))
    event = query.first()
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


def _registration_counts(db: Session, event_ids: list[int]) -> dict[int, int]:
    if not event_ids:
        return {}
    rows = (
        db.query(EventRegistration.event_id, func.count(EventRegistration.id))
        .filter(EventRegistration.event_id.in_(event_ids), EventRegistration.is_active.is_(True))
        .group_by(EventRegistration.event_id)
        .all()
    )
    return {event_id: count for event_id, count in rows}


def _attendance_counts(db: Session, event_ids: list[int]) -> dict[int, int]:
    if not event_ids:
        return {}
    rows = (
        db.query(EventAttendance.event_id, func.count(EventAttendance.id))
        .filter(EventAttendance.event_id.in_(event_ids))
        .group_by(EventAttendance.event_id)
        .all()
    )
    return {event_id: count for event_id, count in rows}


def _serialize_event(event: Event, registration_count: int, attendance_count: int) -> EventOut:
    return EventOut(
        id=event.id,
        title=event.title,
        description=event.description,
        type=event.type,
        date=event.date,
        start_time=event.start_time,
        end_time=event.end_time,
        location=event.location,
        max_attendees=event.max_attendees,
        registration_required=event.registration_required,
        registration_deadline=event.registration_deadline,
        organizer_id=event.organizer_id,
        organizer=MemberSummary.from_orm(event.organizer) if event.organizer else None,
        ministry_id=event.ministry_id,
        ministry=MinistryRef.from_orm(event.ministry) if event.ministry else None,
        is_active=event.is_active,
        registration_count=registration_count,
        attendance_count=attendance_count,
        created_at=event.created_at,
        updated_at=event.updated_at,
    )


def _serialize_registration(registration: EventRegistration) -> RegistrationOut:
    return RegistrationOut(
        id=registration.id,
        event_id=registration.event_id,
        member=MemberSummary.from_orm(registration.member),
        notes=registration.notes,
        is_active=registration.is_active,
        created_at=registration.created_at,
    )


def _serialize_attendance(attendance: EventAttendance) -> AttendanceOut:
    return AttendanceOut(
        id=attendance.id,
        event_id=attendance.event_id,
        member=MemberSummary.from_orm(attendance.member),
        status=attendance.status,
        notes=attendance.notes,
        recorded_at=attendance.recorded_at,
    )


def _build_detail(db: Session, event: Event) -> EventDetail:
    registrations = (
        db.query(EventRegistration)
        .options(selectinload(EventRegistration.member))
        .filter(EventRegistration.event_id == event.id, EventRegistration.is_active.is_(True))
        .order_by(EventRegistration.created_at.asc())
        .all()
    )
    attendance = (
        db.query(EventAttendance)
        .options(selectinload(EventAttendance.member))
        .filter(EventAttendance.event_id == event.id)
        .order_by(EventAttendance.recorded_at.asc())
        .all()
    )
    summary = _serialize_event(event, len(registrations), len(attendance))
    return EventDetail(
        **summary.dict(),
        registrations=[_serialize_registration(item) for item in registrations],
        attendance=[_serialize_attendance(item) for item in attendance],
    )


def _validate_schedule(
    *,
    event_date: datetime,
    start_time: datetime,
    end_time: datetime,
    registration_required: bool,
    registration_deadline: Optional[datetime],
) -> None:
    if start_time >= end_time:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="End time must be after start time")
    if registration_required and registration_deadline is not None and registration_deadline >= event_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Registration deadline must be before the event date",
        )


def _check_references(db: Session, organizer_id: Optional[int], ministry_id: Optional[int]) -> None:
    if organizer_id is not None:
        get_member_or_404(db, organizer_id, detail="Organizer not found")
    if ministry_id is not None:
        get_ministry_or_404(db, ministry_id)


@router.get("", response_model=EventListResponse)
def list_events(
    *,
    params: ListParams = Depends(list_params),
    search: Optional[str] = Query(default=None),
    event_type: Optional[EventType] = Query(default=None, alias="type"),
    ministry_id: Optional[int] = Query(default=None, ge=1),
    upcoming: Optional[bool] = Query(default=None),
    past: Optional[bool] = Query(default=None),
    date_from: Optional[datetime] = Query(default=None),
    date_to: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> EventListResponse:
    query = db.query(Event).filter(Event.is_active.is_(True))
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                func.lower(Event.title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Event.description).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Event.location).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    if event_type:
        query = query.filter(Event.type == event_type)
    if ministry_id is not None:
        query = query.filter(Event.ministry_id == ministry_id)

    if date_from is not None or date_to is not None:
        if date_from is not None:
            query = query.filter(Event.date >= to_naive_utc(date_from))
        if date_to is not None:
            query = query.filter(Event.date <= to_naive_utc(date_to))
    elif upcoming:
        query = query.filter(Event.date >= now_utc())
    elif past:
        query = query.filter(Event.date < now_utc())

    query = apply_sort(
        query,
        SORTABLE_FIELDS,
        params.sort_by,
        params.sort_order,
        default_field="date",
        default_order="desc",
        tiebreaker=Event.id,
    )
    page = paginate(
        query.options(selectinload(Event.organizer), selectinload(Event.ministry)),
        params.page,
        params.limit,
    )
    ids = [event.id for event in page.items]
    registrations = _registration_counts(db, ids)
    attendance = _attendance_counts(db, ids)
    items = [_serialize_event(event, registrations.get(event.id, 0), attendance.get(event.id, 0)) for event in page.items]
    return EventListResponse(**page.envelope(items))


@router.get("/stats", response_model=EventStats)
def event_stats(db: Session = Depends(get_db)) -> EventStats:
    now = now_utc()
    total = db.query(func.count(Event.id)).scalar() or 0
    active_filter = Event.is_active.is_(True)
    active = db.query(func.count(Event.id)).filter(active_filter).scalar() or 0
    upcoming = db.query(func.count(Event.id)).filter(active_filter, Event.date >= now).scalar() or 0

    type_rows = (
        db.query(Event.type, func.count(Event.id))
        .filter(active_filter)
        .group_by(Event.type)
        .order_by(Event.type)
        .all()
    )

    window_start = datetime.combine(months_ago_start(now.date(), TREND_MONTHS - 1), datetime.min.time())
    trend_dates = db.query(Event.date).filter(active_filter, Event.date >= window_start).all()
    months = {key: 0 for key in recent_month_keys(now.date(), TREND_MONTHS)}
    for (event_date,) in trend_dates:
        key = month_key(event_date)
        if key in months:
            months[key] += 1

    return EventStats(
        total=total,
        active=active,
        upcoming=upcoming,
        past=active - upcoming,
        by_type=[EventTypeCount(type=event_type, count=count) for event_type, count in type_rows],
        monthly_trends=[MonthlyCount(month=key, count=count) for key, count in months.items()],
    )


@router.post("", response_model=EventDetail, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> EventDetail:
    _validate_schedule(
        event_date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        registration_required=payload.registration_required,
        registration_deadline=payload.registration_deadline,
    )
    _check_references(db, payload.organizer_id, payload.ministry_id)

    event = Event(**payload.dict())
    db.add(event)
    db.commit()
    event = _get_event_or_404(db, event.id)
    logger.info("event_created", extra={"event_id": event.id, "actor": user.email})
    return _build_detail(db, event)


@router.get("/{event_id:int}", response_model=EventDetail)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> EventDetail:
    return _build_detail(db, _get_event_or_404(db, event_id))


@router.put("/{event_id:int}", response_model=EventDetail)
def update_event(
    event_id: int,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> EventDetail:
    event = _get_event_or_404(db, event_id)
    changes = payload.changes()

    merged = {
        field: changes.get(field, getattr(event, field))
        for field in ("date", "start_time", "end_time", "registration_required", "registration_deadline")
    }
    _validate_schedule(
        event_date=merged["date"],
        start_time=merged["start_time"],
        end_time=merged["end_time"],
        registration_required=merged["registration_required"],
        registration_deadline=merged["registration_deadline"],
    )
    _check_references(db, changes.get("organizer_id"), changes.get("ministry_id"))

    for field, value in changes.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    logger.info("event_updated", extra={"event_id": event.id, "actor": user.email})
    return _build_detail(db, event)


@router.delete("/{event_id:int}", response_model=DeletionResult)
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*DELETE_ROLES)),
) -> DeletionResult:
    event = _get_event_or_404(db, event_id)
    has_registrations = _registration_counts(db, [event.id]).get(event.id, 0) > 0
    has_attendance = _attendance_counts(db, [event.id]).get(event.id, 0) > 0

    if has_registrations or has_attendance:
        event.is_active = False
        db.commit()
        logger.info("event_deactivated", extra={"event_id": event_id, "actor": user.email, "outcome": "deactivated"})
        return DeletionResult(
            id=event_id,
            outcome="deactivated",
            detail="Event deactivated because it has registrations or attendance records",
        )

    db.delete(event)
    db.commit()
    logger.info("event_deleted", extra={"event_id": event_id, "actor": user.email, "outcome": "deleted"})
    return DeletionResult(id=event_id, outcome="deleted", detail="Event deleted successfully")


@router.post(
    "/{event_id:int}/register",
    response_model=RegistrationOut,
    status_code=status.HTTP_201_CREATED,
)
def register_for_event(
    event_id: int,
    payload: RegistrationCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*READ_ROLES)),
) -> RegistrationOut:
    event = _get_event_or_404(db, event_id, active_only=True)

    if event.registration_deadline is not None and now_utc() > event.registration_deadline:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Registration deadline has passed")

    if event.max_attendees is not None:
        registered = _registration_counts(db, [event.id]).get(event.id, 0)
        if registered >= event.max_attendees:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is full")

    member = get_member_or_404(db, payload.member_id)

    registration = (
        db.query(EventRegistration)
        .filter(EventRegistration.event_id == event.id, EventRegistration.member_id == member.id)
        .first()
    )
    if registration is not None and registration.is_active:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Member is already registered for this event")

    if registration is None:
        registration = EventRegistration(event_id=event.id, member_id=member.id, notes=payload.notes)
        db.add(registration)
    else:
        registration.is_active = True
        registration.notes = payload.notes
    db.commit()
    db.refresh(registration)
    logger.info("event_registration_added", extra={"event_id": event.id, "member_id": member.id, "actor": user.email})
    return _serialize_registration(registration)


@router.delete("/{event_id:int}/register/{member_id:int}", response_model=RegistrationOut)
def cancel_registration(
    event_id: int,
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*READ_ROLES)),
) -> RegistrationOut:
    registration = (
        db.query(EventRegistration)
        .filter(
            EventRegistration.event_id == event_id,
            EventRegistration.member_id == member_id,
            EventRegistration.is_active.is_(True),
        )
        .first()
    )
    if registration is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")

    registration.is_active = False
    db.commit()
    db.refresh(registration)
    logger.info("event_registration_cancelled", extra={"event_id": event_id, "member_id": member_id, "actor": user.email})
    return _serialize_registration(registration)


@router.post("/{event_id:int}/attendance", response_model=AttendanceOut)
def record_attendance(
    event_id: int,
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> AttendanceOut:
    event = _get_event_or_404(db, event_id)
    member = get_member_or_404(db, payload.member_id)

    attendance = (
        db.query(EventAttendance)
        .filter(EventAttendance.event_id == event.id, EventAttendance.member_id == member.id)
        .first()
    )
    if attendance is None:
        attendance = EventAttendance(event_id=event.id, member_id=member.id)
        db.add(attendance)
    attendance.status = payload.status
    attendance.notes = payload.notes
    attendance.recorded_at = now_utc()
    db.commit()
    db.refresh(attendance)
    logger.info("event_attendance_recorded", extra={"event_id": event.id, "member_id": member.id, "actor": user.email})
    return _serialize_attendance(attendance)
