from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from app.auth.deps import require_roles
from app.core.db import get_db
from app.models.cell import Cell
from app.models.member import Member
from app.models.user import User
from app.routers.members import DELETE_ROLES, READ_ROLES, WRITE_ROLES
from app.routers.params import ListParams, list_params
from app.schemas.cell import CellCreate, CellListResponse, CellOut, CellUpdate
from app.schemas.common import DeletionResult
from app.services.lookups import get_member_or_404
from app.services.pagination import LIKE_ESCAPE, apply_sort, like_pattern, paginate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cells", tags=["cells"])

SORTABLE_FIELDS = {
    "name": Cell.name,
    "number": Cell.number,
    "created_at": Cell.created_at,
}


def _get_cell_or_404(db: Session, cell_id: int) -> Cell:
    cell = db.query(Cell).options(selectinload(Cell.leader)).filter(Cell.id == cell_id).first()
    if cell is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cell not found")
    return cell


def _member_counts(db: Session, cell_ids: list[int]) -> dict[int, int]:
    if not cell_ids:
        return {}
    rows = (
        db.query(Member.cell_id, func.count(Member.id))
        .filter(Member.cell_id.in_(cell_ids), Member.is_active.is_(True))
        .group_by(Member.cell_id)
        .all()
    )
    return {cell_id: count for cell_id, count in rows}


def _serialize_cell(cell: Cell, member_count: int) -> CellOut:
    return CellOut(
        id=cell.id,
        name=cell.name,
        number=cell.number,
        description=cell.description,
        meeting_day=cell.meeting_day,
        location=cell.location,
        leader_id=cell.leader_id,
        leader_name=cell.leader.full_name if cell.leader else None,
        is_active=cell.is_active,
        member_count=member_count,
        created_at=cell.created_at,
        updated_at=cell.updated_at,
    )


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Cell.id).filter(func.lower(Cell.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Cell.id != exclude_id)
    if query.first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cell with this name already exists")


@router.get("", response_model=CellListResponse)
def list_cells(
    *,
    params: ListParams = Depends(list_params),
    search: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=True),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> CellListResponse:
    query = db.query(Cell)
    if is_active is not None:
        query = query.filter(Cell.is_active.is_(is_active))
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                func.lower(Cell.name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Cell.location).like(pattern, escape=LIKE_ESCAPE),
            )
        )
    query = apply_sort(query, SORTABLE_FIELDS, params.sort_by, params.sort_order, default_field="name", tiebreaker=Cell.id)
    page = paginate(query.options(selectinload(Cell.leader)), params.page, params.limit)
    counts = _member_counts(db, [cell.id for cell in page.items])
    return CellListResponse(**page.envelope([_serialize_cell(cell, counts.get(cell.id, 0)) for cell in page.items]))


@router.post("", response_model=CellOut, status_code=status.HTTP_201_CREATED)
def create_cell(
    payload: CellCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> CellOut:
    _ensure_unique_name(db, payload.name)
    if payload.leader_id is not None:
        get_member_or_404(db, payload.leader_id, detail="Leader not found")

    cell = Cell(**payload.dict())
    db.add(cell)
    db.commit()
    db.refresh(cell)
    logger.info("cell_created", extra={"cell_id": cell.id, "actor": user.email})
    return _serialize_cell(cell, 0)


@router.get("/{cell_id:int}", response_model=CellOut)
def get_cell(
    cell_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(*READ_ROLES)),
) -> CellOut:
    cell = _get_cell_or_404(db, cell_id)
    return _serialize_cell(cell, _member_counts(db, [cell.id]).get(cell.id, 0))


@router.put("/{cell_id:int}", response_model=CellOut)
def update_cell(
    cell_id: int,
    payload: CellUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*WRITE_ROLES)),
) -> CellOut:
    cell = _get_cell_or_404(db, cell_id)
    changes = payload.changes()
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        _ensure_unique_name(db, changes["name"], exclude_id=cell.id)
    if changes.get("leader_id") is not None:
        get_member_or_404(db, changes["leader_id"], detail="Leader not found")

    for field, value in changes.items():
        setattr(cell, field, value)
    db.commit()
    db.refresh(cell)
    logger.info("cell_updated", extra={"cell_id": cell.id, "actor": user.email})
    return _serialize_cell(cell, _member_counts(db, [cell.id]).get(cell.id, 0))


@router.delete("/{cell_id:int}", response_model=DeletionResult)
def delete_cell(
    cell_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(*DELETE_ROLES)),
) -> DeletionResult:
    cell = _get_cell_or_404(db, cell_id)
    has_members = db.query(Member.id).filter(Member.cell_id == cell.id).first() is not None

    if has_members:
        cell.is_active = False
        db.commit()
        logger.info("cell_deactivated", extra={"cell_id": cell_id, "actor": user.email, "outcome": "deactivated"})
        return DeletionResult(id=cell_id, outcome="deactivated", detail="Cell deactivated because members belong to it")

    db.delete(cell)
    db.commit()
    logger.info("cell_deleted", extra={"cell_id": cell_id, "actor": user.email, "outcome": "deleted"})
    return DeletionResult(id=cell_id, outcome="deleted", detail="Cell deleted successfully")
