from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Query as OrmQuery
from sqlalchemy.orm import Session, selectinload

from app.auth import roles
from app.auth.deps import require_roles
from app.core.db import get_db
from app.models.contribution import Contribution
from app.models.member import Member
from app.models.user import User
from app.routers.params import ListParams, list_params
from app.schemas.common import DeletionResult
from app.schemas.contribution import (
    AmountSummary,
    ContributionCreate,
    ContributionExportResponse,
    ContributionListResponse,
    ContributionOut,
    ContributionStats,
    ContributionType,
    ContributionUpdate,
    MemberContributionHistory,
    MemberContributionSummary,
    MethodTotal,
    PeriodGrouping,
    PeriodTotal,
    StatsSummary,
    TypeTotal,
)
from app.schemas.ministry import MemberSummary
from app.services.exports import csv_response, rows_as_records
from app.services.lookups import get_member_or_404
from app.services.pagination import LIKE_ESCAPE, apply_sort, like_pattern, paginate
from app.services.statistics import average, group_amounts, period_key, quantize, summarize_amounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contributions", tags=["contributions"])

READ_ROLES = roles.ALL_ROLES
WRITE_ROLES = (roles.ADMIN, roles.SUPER_ADMIN, roles.FINANCE, roles.TREASURER)
DELETE_ROLES = (roles.SUPER_ADMIN, roles.TREASURER)

SORTABLE_FIELDS = {
    "amount": Contribution.amount,
    "date": Contribution.date,
    "type": Contribution.type,
    "created_at": Contribution.created_at,
}

CONTRIBUTION_EXPORT_HEADERS = [
    "Date",
    "Amount",
    "Type",
    "Payment Method",
    "Member Name",
    "Member Email",
    "Notes",
    "Is Anonymous",
]


def _get_contribution_or_404(db: Session, contribution_id: int) -> Contribution:
    contribution = (
        db.query(Contribution)
        .options(selectinload(Contribution.member))
        .filter(Contribution.id == contribution_id)
        .first()
    )
    if contribution is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contribution not found")
    return contribution


def _apply_filters(
    query: OrmQuery,
    *,
    search: Optional[str] = None,
    contribution_type: Optional[str] = None,
    member_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    amount_min: Optional[Decimal] = None,
    amount_max: Optional[Decimal] = None,
) -> OrmQuery:
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.outerjoin(Member, Member.id == Contribution.member_id).filter(
            or_(
                func.lower(Contribution.notes).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Member.first_name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Member.last_name).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    if contribution_type:
        query = query.filter(Contribution.type == contribution_type)
    if member_id is not None:
        query = query.filter(Contribution.member_id == member_id)
    if date_from is not None:
        query = query.filter(Contribution.date >= date_from)
    if date_to is not None:
        query = query.filter(Contribution.date <= date_to)
    if amount_min is not None:
        query = query.filter(Contribution.amount >= amount_min)
    if amount_max is not None:
        query = query.filter(Contribution.amount <= amount_max)
    return query


def _totals(query: OrmQuery) -> tuple[Decimal, int]:
    total, count = query.order_by(None).with_entities(
        func.coalesce(func.sum(Contribution.amount), 0),
        func.count(Contribution.id),
    ).one()
    return quantize(total or 0), count or 0


def _check_date_range(date_from: Optional[date], date_to: Optional[date]) -> None:
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date_from must be on or before date_to")


def _resolve_member(db: Session, is_anonymous: bool, member_id: Optional[int]) -> Optional[int]:
    """Anonymous gifts never reference a member; named gifts must reference a real one."""

    if is_anonymous:
        return None
    if member_id is not None:
        get_member_or_404(db, member_id)
    return member_id


def _member_label(contribution: Contribution) -> str:
    if contribution.is_anonymous:
        return "Anonymous"
    if contribution.member is None:
        return "Unknown"
    return contribution.member.full_name


@router.get("", response_model=ContributionListResponse)
def list_contributions(
    *,
    params: ListParams = Depends(list_params),
    search: Optional[str] = Query(default=None),
    contribution_type: Optional[ContributionType] = Query(default=None, alias="type"),
    member_id: Optional[int] = Query(default=None, ge=1),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    amount_min: Optional[Decimal] = Query(default=None, ge=0),
    amount_max: Optional[Decimal] = Query(default=None, ge=0),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> ContributionListResponse:
    _check_date_range(date_from, date_to)
    query = _apply_filters(
        db.query(Contribution),
        search=search,
        contribution_type=contribution_type,
        member_id=member_id,
        date_from=date_from,
        date_to=date_to,
        amount_min=amount_min,
        amount_max=amount_max,
    )
    total_amount, count = _totals(query)
    query = apply_sort(
        query,
        SORTABLE_FIELDS,
        params.sort_by,
        params.sort_order,
        default_field="date",
        default_order="desc",
        tiebreaker=Contribution.id,
    )
    page = paginate(query.options(selectinload(Contribution.member)), params.page, params.limit)
    return ContributionListResponse(
        **page.envelope([ContributionOut.from_orm(item) for item in page.items]),
        summary=AmountSummary(total_amount=total_amount, average_amount=average(total_amount, count)),
    )


@router.get("/stats", response_model=ContributionStats)
def contribution_stats(
    *,
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    group_by: PeriodGrouping = Query(default="month"),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> ContributionStats:
    _check_date_range(date_from, date_to)
    query = _apply_filters(
        db.query(Contribution.date, Contribution.amount, Contribution.type, Contribution.payment_method),
        date_from=date_from,
        date_to=date_to,
    )
    rows = query.all()

    by_type = group_amounts((row.type, row.amount) for row in rows)
    by_method = group_amounts((row.payment_method, row.amount) for row in rows)
    trends = group_amounts((period_key(row.date, group_by), row.amount) for row in rows)

    return ContributionStats(
        group_by=group_by,
        summary=StatsSummary(**summarize_amounts(row.amount for row in rows)),
        by_type=[
            TypeTotal(type=key, total_amount=value["total_amount"], count=value["count"])
            for key, value in sorted(by_type.items(), key=lambda item: item[1]["total_amount"], reverse=True)
        ],
        by_payment_method=[
            MethodTotal(method=key, total_amount=value["total_amount"], count=value["count"])
            for key, value in sorted(by_method.items(), key=lambda item: item[1]["total_amount"], reverse=True)
        ],
        trends=[PeriodTotal(period=key, **value) for key, value in trends.items()],
    )


@router.get("/export", response_model=None)
def export_contributions(
    *,
    export_format: Literal["csv", "json"] = Query(default="csv", alias="format"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    contribution_type: Optional[ContributionType] = Query(default=None, alias="type"),
    member_id: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
):
    _check_date_range(date_from, date_to)
    query = _apply_filters(
        db.query(Contribution),
        contribution_type=contribution_type,
        member_id=member_id,
        date_from=date_from,
        date_to=date_to,
    )
    contributions = (
        query.options(selectinload(Contribution.member))
        .order_by(Contribution.date.desc(), Contribution.id.desc())
        .all()
    )
    rows = [
        [
            item.date,
            item.amount,
            item.type,
            item.payment_method,
            _member_label(item),
            item.member.email if item.member and not item.is_anonymous else None,
            item.notes,
            item.is_anonymous,
        ]
        for item in contributions
    ]
    logger.info("contributions_exported", extra={"actor": user.email, "format": export_format, "rows": len(rows)})

    if export_format == "json":
        records = rows_as_records(CONTRIBUTION_EXPORT_HEADERS, rows)
        return ContributionExportResponse(items=records, count=len(records))
    return csv_response("contributions.csv", CONTRIBUTION_EXPORT_HEADERS, rows)


@router.get("/member/{member_id:int}", response_model=MemberContributionHistory)
def member_contributions(
    member_id: int,
    *,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> MemberContributionHistory:
    member = get_member_or_404(db, member_id)
    query = db.query(Contribution).filter(Contribution.member_id == member.id)
    total_amount, count = _totals(query)
    query = apply_sort(
        query,
        SORTABLE_FIELDS,
        params.sort_by,
        params.sort_order,
        default_field="date",
        default_order="desc",
        tiebreaker=Contribution.id,
    )
    page = paginate(query.options(selectinload(Contribution.member)), params.page, params.limit)
    return MemberContributionHistory(
        **page.envelope([ContributionOut.from_orm(item) for item in page.items]),
        member=MemberSummary.from_orm(member),
        summary=MemberContributionSummary(
            total_amount=total_amount,
            total_contributions=count,
            average_amount=average(total_amount, count),
        ),
    )


@router.post("", response_model=ContributionOut, status_code=status.HTTP_201_CREATED)
def create_contribution(
    payload: ContributionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> ContributionOut:
    data = payload.dict()
    data["member_id"] = _resolve_member(db, payload.is_anonymous, payload.member_id)
    if data["date"] is None:
        data["date"] = date.today()

    contribution = Contribution(**data, recorded_by_id=user.id)
    db.add(contribution)
    db.commit()
    contribution = _get_contribution_or_404(db, contribution.id)
    logger.info("contribution_recorded", extra={"contribution_id": contribution.id, "actor": user.email})
    return ContributionOut.from_orm(contribution)


@router.get("/{contribution_id:int}", response_model=ContributionOut)
def get_contribution(
    contribution_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> ContributionOut:
    return ContributionOut.from_orm(_get_contribution_or_404(db, contribution_id))


@router.put("/{contribution_id:int}", response_model=ContributionOut)
def update_contribution(
    contribution_id: int,
    payload: ContributionUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> ContributionOut:
    contribution = _get_contribution_or_404(db, contribution_id)
    changes = payload.changes()

    is_anonymous = changes.get("is_anonymous", contribution.is_anonymous)
    if is_anonymous:
        changes["member_id"] = None
    elif "member_id" in changes:
        changes["member_id"] = _resolve_member(db, False, changes["member_id"])

    for field, value in changes.items():
        setattr(contribution, field, value)
    db.commit()
    db.refresh(contribution)
    logger.info("contribution_updated", extra={"contribution_id": contribution.id, "actor": user.email})
    return ContributionOut.from_orm(contribution)


@router.delete("/{contribution_id:int}", response_model=DeletionResult)
def delete_contribution(
    contribution_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*DELETE_ROLES)),
) -> DeletionResult:
    contribution = _get_contribution_or_404(db, contribution_id)
    db.delete(contribution)
    db.commit()
    logger.info("contribution_deleted", extra={"contribution_id": contribution_id, "actor": user.email, "outcome": "deleted"})
    return DeletionResult(id=contribution_id, outcome="deleted", detail="Contribution deleted successfully")
