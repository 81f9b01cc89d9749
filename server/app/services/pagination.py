from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from app.core.errors import ValidationError

SORT_ORDERS = {"asc": asc, "desc": desc}
LIKE_ESCAPE = "\\"


@dataclass
class Page:
    items: list[Any]
    total: int
    page: int
    limit: int
    total_pages: int = field(init=False)
    has_next: bool = field(init=False)
    has_prev: bool = field(init=False)

    def __post_init__(self) -> None:
        self.total_pages = math.ceil(self.total / self.limit) if self.limit else 0
        self.has_next = self.page < self.total_pages
        self.has_prev = self.page > 1

    def envelope(self, items: list[Any] | None = None) -> dict[str, Any]:
        return {
            "items": self.items if items is None else items,
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


def paginate(query: Query, page: int, limit: int) -> Page:
    """Count the filtered query then fetch a single page of it."""

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, total=total, page=page, limit=limit)


def apply_sort(
    query: Query,
    sortable: Mapping[str, Any],
    sort_by: str | None,
    sort_order: str | None,
    *,
    default_field: str,
    default_order: str = "asc",
    tiebreaker: Any = None,
) -> Query:
    key = sort_by or default_field
    column = sortable.get(key)
    if column is None:
        allowed = ", ".join(sorted(sortable))
        raise ValidationError(f"Invalid sortBy '{key}'. Allowed values: {allowed}")

    order = (sort_order or default_order).lower()
    direction = SORT_ORDERS.get(order)
    if direction is None:
        raise ValidationError("Invalid sortOrder. Use 'asc' or 'desc'")

    query = query.order_by(direction(column))
    if tiebreaker is not None:
        query = query.order_by(direction(tiebreaker))
    return query


def like_pattern(term: str) -> str:
    """Case-insensitive substring pattern; pair with `.like(pattern, escape=LIKE_ESCAPE)`."""

    escaped = term.strip().lower().replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace("%", r"\%").replace("_", r"\_")
    return f"%{escaped}%"
