from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session, selectinload

from app.auth import roles
from app.auth.deps import require_roles
from app.core.db import get_db
from app.models.announcement import ANNOUNCEMENT_PRIORITIES, Announcement
from app.models.user import User
from app.routers.params import ListParams, list_params
from app.schemas.announcement import (
    AnnouncementCreate,
    AnnouncementListResponse,
    AnnouncementOut,
    AnnouncementSearchResponse,
    AnnouncementStats,
    AnnouncementUpdate,
    Audience,
    AudienceCount,
    Priority,
    PriorityCount,
)
from app.schemas.common import DeletionResult
from app.services.lookups import get_member_or_404
from app.services.pagination import LIKE_ESCAPE, apply_sort, like_pattern, paginate
from app.services.user_accounts import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/announcements", tags=["announcements"])

READ_ROLES = roles.ALL_ROLES
WRITE_ROLES = (roles.ADMIN, roles.SUPER_ADMIN, roles.CONTENT_CREATOR, roles.COMMUNICATIONS)
DELETE_ROLES = (roles.SUPER_ADMIN,)

PRIORITY_RANK = case(
    {priority: rank for rank, priority in enumerate(ANNOUNCEMENT_PRIORITIES, start=1)},
    value=Announcement.priority,
    else_=0,
)

SORTABLE_FIELDS = {
    "title": Announcement.title,
    "priority": PRIORITY_RANK,
    "created_at": Announcement.created_at,
    "publish_date": Announcement.publish_date,
}

MIN_SEARCH_LENGTH = 2


def _get_announcement_or_404(db: Session, announcement_id: int, *, visible_only: bool = False) -> Announcement:
    query = (
        db.query(Announcement)
        .options(selectinload(Announcement.author))
        .filter(Announcement.id == announcement_id)
    )
    if visible_only:
        query = query.filter(Announcement.visible_clause(now_utc()))
    announcement = query.first()
    if announcement is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return announcement


def _visible_query(db: Session, target_audience: Optional[str] = None):
    query = db.query(Announcement).filter(Announcement.visible_clause(now_utc()))
    if target_audience:
        query = query.filter(Announcement.target_audience == target_audience)
    return query.options(selectinload(Announcement.author))


def _matches_text(pattern: str):
    return or_(
        func.lower(Announcement.title).like(pattern, escape=LIKE_ESCAPE),
        func.lower(Announcement.content).like(pattern, escape=LIKE_ESCAPE),
    )


def _check_dates(publish_date, expiry_date) -> None:
    if publish_date is not None and expiry_date is not None and publish_date >= expiry_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Expiry date must be after publish date")


def _serialize_page(page) -> dict:
    return page.envelope([AnnouncementOut.from_orm(item) for item in page.items])


@router.get("/public", response_model=AnnouncementListResponse)
def list_public_announcements(
    *,
    params: ListParams = Depends(list_params),
    target_audience: Optional[Audience] = Query(default=None),
    db: Session = Depends(get_db),
) -> AnnouncementListResponse:
    query = apply_sort(
        _visible_query(db, target_audience),
        SORTABLE_FIELDS,
        params.sort_by,
        params.sort_order,
        default_field="created_at",
        default_order="desc",
        tiebreaker=Announcement.id,
    )
    return AnnouncementListResponse(**_serialize_page(paginate(query, params.page, params.limit)))


@router.get("/public/{announcement_id:int}", response_model=AnnouncementOut)
def get_public_announcement(announcement_id: int, db: Session = Depends(get_db)) -> AnnouncementOut:
    return AnnouncementOut.from_orm(_get_announcement_or_404(db, announcement_id, visible_only=True))


@router.get("/recent", response_model=list[AnnouncementOut])
def recent_announcements(
    *,
    limit: int = Query(default=5, ge=1, le=20),
    target_audience: Optional[Audience] = Query(default=None),
    db: Session = Depends(get_db),
) -> list[AnnouncementOut]:
    items = (
        _visible_query(db, target_audience)
        .order_by(PRIORITY_RANK.desc(), Announcement.created_at.desc(), Announcement.id.desc())
        .limit(limit)
        .all()
    )
    return [AnnouncementOut.from_orm(item) for item in items]


@router.get("/search", response_model=AnnouncementSearchResponse)
def search_announcements(
    *,
    q: str = Query(default=""),
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
) -> AnnouncementSearchResponse:
    term = q.strip()
    if len(term) < MIN_SEARCH_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Search query must be at least {MIN_SEARCH_LENGTH} characters long",
        )
    pattern = like_pattern(term)
    items = (
        _visible_query(db)
        .filter(_matches_text(pattern))
        .order_by(PRIORITY_RANK.desc(), Announcement.created_at.desc(), Announcement.id.desc())
        .limit(limit)
        .all()
    )
    return AnnouncementSearchResponse(
        items=[AnnouncementOut.from_orm(item) for item in items],
        search_term=term,
        count=len(items),
    )


@router.get("/priority/{priority}", response_model=list[AnnouncementOut])
def announcements_by_priority(
    priority: str,
    *,
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
) -> list[AnnouncementOut]:
    if priority not in ANNOUNCEMENT_PRIORITIES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid priority. Use one of: {', '.join(ANNOUNCEMENT_PRIORITIES)}",
        )
    items = (
        _visible_query(db)
        .filter(Announcement.priority == priority)
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .limit(limit)
        .all()
    )
    return [AnnouncementOut.from_orm(item) for item in items]


@router.get("/stats", response_model=AnnouncementStats)
def announcement_stats(db: Session = Depends(get_db)) -> AnnouncementStats:
    now = now_utc()
    total = db.query(func.count(Announcement.id)).scalar() or 0
    published = db.query(func.count(Announcement.id)).filter(Announcement.is_published.is_(True)).scalar() or 0
    active = db.query(func.count(Announcement.id)).filter(Announcement.is_active.is_(True)).scalar() or 0
    expired = (
        db.query(func.count(Announcement.id))
        .filter(Announcement.expiry_date.isnot(None), Announcement.expiry_date < now)
        .scalar()
        or 0
    )
    priority_rows = dict(
        db.query(Announcement.priority, func.count(Announcement.id)).group_by(Announcement.priority).all()
    )
    audience_rows = (
        db.query(Announcement.target_audience, func.count(Announcement.id))
        .group_by(Announcement.target_audience)
        .order_by(Announcement.target_audience)
        .all()
    )
    return AnnouncementStats(
        total=total,
        published=published,
        active=active,
        expired=expired,
        draft=total - published,
        by_priority=[
            PriorityCount(priority=priority, count=priority_rows[priority])
            for priority in reversed(ANNOUNCEMENT_PRIORITIES)
            if priority in priority_rows
        ],
        by_audience=[AudienceCount(audience=audience, count=count) for audience, count in audience_rows],
    )


@router.get("", response_model=AnnouncementListResponse)
def list_announcements(
    *,
    params: ListParams = Depends(list_params),
    search: Optional[str] = Query(default=None),
    priority: Optional[Priority] = Query(default=None),
    target_audience: Optional[Audience] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    published_only: bool = Query(default=True),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> AnnouncementListResponse:
    query = db.query(Announcement)
    if published_only:
        query = query.filter(Announcement.visible_clause(now_utc()))
    if is_active is not None:
        query = query.filter(Announcement.is_active.is_(is_active))
    if priority:
        query = query.filter(Announcement.priority == priority)
    if target_audience:
        query = query.filter(Announcement.target_audience == target_audience)
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(_matches_text(pattern))
    query = apply_sort(
        query,
        SORTABLE_FIELDS,
        params.sort_by,
        params.sort_order,
        default_field="created_at",
        default_order="desc",
        tiebreaker=Announcement.id,
    )
    page = paginate(query.options(selectinload(Announcement.author)), params.page, params.limit)
    return AnnouncementListResponse(**_serialize_page(page))


@router.post("", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED)
def create_announcement(
    payload: AnnouncementCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> AnnouncementOut:
    _check_dates(payload.publish_date, payload.expiry_date)
    author_id = payload.author_id
    if author_id is not None:
        get_member_or_404(db, author_id, detail="Author not found")
    elif user.member is not None:
        author_id = user.member.id

    data = payload.dict()
    data["author_id"] = author_id
    announcement = Announcement(**data)
    db.add(announcement)
    db.commit()
    announcement = _get_announcement_or_404(db, announcement.id)
    logger.info("announcement_created", extra={"announcement_id": announcement.id, "actor": user.email})
    return AnnouncementOut.from_orm(announcement)


@router.get("/{announcement_id:int}", response_model=AnnouncementOut)
def get_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> AnnouncementOut:
    return AnnouncementOut.from_orm(_get_announcement_or_404(db, announcement_id))


@router.put("/{announcement_id:int}", response_model=AnnouncementOut)
def update_announcement(
    announcement_id: int,
    payload: AnnouncementUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> AnnouncementOut:
    announcement = _get_announcement_or_404(db, announcement_id)
    changes = payload.changes()
    _check_dates(
        changes.get("publish_date", announcement.publish_date),
        changes.get("expiry_date", announcement.expiry_date),
    )
    if changes.get("author_id") is not None:
        get_member_or_404(db, changes["author_id"], detail="Author not found")

    for field, value in changes.items():
        setattr(announcement, field, value)
    db.commit()
    db.refresh(announcement)
    logger.info("announcement_updated", extra={"announcement_id": announcement.id, "actor": user.email})
    return AnnouncementOut.from_orm(announcement)


@router.post("/{announcement_id:int}/publish", response_model=AnnouncementOut)
def publish_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> AnnouncementOut:
    announcement = _get_announcement_or_404(db, announcement_id)
    if not announcement.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot publish an inactive announcement")
    announcement.is_published = True
    if announcement.publish_date is None:
        announcement.publish_date = now_utc()
    db.commit()
    db.refresh(announcement)
    logger.info("announcement_published", extra={"announcement_id": announcement.id, "actor": user.email})
    return AnnouncementOut.from_orm(announcement)


@router.post("/{announcement_id:int}/unpublish", response_model=AnnouncementOut)
def unpublish_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> AnnouncementOut:
    announcement = _get_announcement_or_404(db, announcement_id)
    announcement.is_published = False
    db.commit()
    db.refresh(announcement)
    logger.info("announcement_unpublished", extra={"announcement_id": announcement.id, "actor": user.email})
    return AnnouncementOut.from_orm(announcement)


@router.delete("/{announcement_id:int}", response_model=DeletionResult)
def delete_announcement(
    announcement_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*DELETE_ROLES)),
) -> DeletionResult:
    announcement = _get_announcement_or_404(db, announcement_id)
    announcement.is_active = False
    announcement.is_published = False
    db.commit()
    logger.info(
        "announcement_deactivated",
        extra={"announcement_id": announcement_id, "actor": user.email, "outcome": "deactivated"},
    )
    return DeletionResult(id=announcement_id, outcome="deactivated", detail="Announcement deactivated")
