from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Query

from app.core.config import settings
from app.schemas.common import SortOrder


@dataclass
class ListParams:
    page: int
    limit: int
    sort_by: Optional[str]
    sort_order: Optional[str]


def list_params(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: Optional[SortOrder] = Query(None, alias="sortOrder"),
) -> ListParams:
    return ListParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
