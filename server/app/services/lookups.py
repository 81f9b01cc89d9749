from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.cell import Cell
from app.models.member import Member
from app.models.ministry import Ministry


def get_member_or_404(db: Session, member_id: int, detail: str = "Member not found") -> Member:
    member = db.get(Member, member_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
    return member


def get_cell_or_404(db: Session, cell_id: int) -> Cell:
    cell = db.get(Cell, cell_id)
    if cell is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cell not found")
    return cell


def get_ministry_or_404(db: Session, ministry_id: int) -> Ministry:
    ministry = db.get(Ministry, ministry_id)
    if ministry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ministry not found")
    return ministry
