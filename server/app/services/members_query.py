from __future__ import annotations

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Query, Session

from app.models.member import Member
from app.models.ministry import MemberMinistry
from app.services.pagination import LIKE_ESCAPE, like_pattern

SORTABLE_FIELDS = {
    "first_name": Member.first_name,
    "last_name": Member.last_name,
    "email": Member.email,
    "age": Member.age,
    "join_date": Member.join_date,
    "created_at": Member.created_at,
}


def build_members_query(
    db: Session,
    *,
    search: str | None = None,
    cell_id: int | None = None,
    ministry_id: int | None = None,
    gender: str | None = None,
    is_active: bool | None = True,
) -> Query:
    query: Query = db.query(Member)

    if is_active is not None:
        query = query.filter(Member.is_active.is_(is_active))

    if search and search.strip():
        pattern = like_pattern(search)
        query = query.filter(
            or_(
                func.lower(Member.first_name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Member.last_name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Member.email).like(pattern, escape=LIKE_ESCAPE),
                func.lower(Member.phone).like(pattern, escape=LIKE_ESCAPE),
            )
        )

    if cell_id is not None:
        query = query.filter(Member.cell_id == cell_id)

    if ministry_id is not None:
        query = query.filter(
            Member.ministry_memberships.any(
                and_(MemberMinistry.ministry_id == ministry_id, MemberMinistry.is_active.is_(True))
            )
        )

    if gender:
        query = query.filter(Member.gender == gender)

    return query
