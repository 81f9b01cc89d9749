from __future__ import annotations

import pytest

from app.core.errors import ValidationError
from app.models.member import Member
from app.services.members_query import SORTABLE_FIELDS
from app.services.pagination import Page, apply_sort, like_pattern, paginate


def test_page_metadata() -> None:
    page = Page(items=[], total=25, page=2, limit=10)
    assert page.total_pages == 3
    assert page.has_next is True
    assert page.has_prev is True

    last = Page(items=[], total=25, page=3, limit=10)
    assert last.has_next is False

    empty = Page(items=[], total=0, page=1, limit=10)
    assert empty.total_pages == 0
    assert empty.has_next is False
    assert empty.has_prev is False


def test_paginate_and_sort_members(db_session) -> None:
    for index, last_name in enumerate(["Cole", "Abebe", "Bekele"]):
        db_session.add(Member(first_name=f"Person{index}", last_name=last_name))
    db_session.commit()

    query = apply_sort(db_session.query(Member), SORTABLE_FIELDS, "last_name", "desc", default_field="last_name")
    page = paginate(query, page=1, limit=2)

    assert page.total == 3
    assert [member.last_name for member in page.items] == ["Cole", "Bekele"]
    assert page.envelope(["x"])["items"] == ["x"]


def test_apply_sort_rejects_unknown_field(db_session) -> None:
    with pytest.raises(ValidationError) as excinfo:
        apply_sort(db_session.query(Member), SORTABLE_FIELDS, "password", None, default_field="last_name")
    assert excinfo.value.status_code == 400


def test_apply_sort_rejects_unknown_order(db_session) -> None:
    with pytest.raises(ValidationError):
        apply_sort(db_session.query(Member), SORTABLE_FIELDS, None, "sideways", default_field="last_name")


def test_like_pattern_escapes_wildcards() -> None:
    assert like_pattern("  Choir ") == "%choir%"
    assert like_pattern("100%") == r"%100\%%"
    assert like_pattern("a_b") == r"%a\_b%"
    assert like_pattern("back\\slash") == r"%back\\slash%"
