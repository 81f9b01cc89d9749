from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from app.services.statistics import (
    age_group,
    age_histogram,
    group_amounts,
    months_ago_start,
    period_key,
    recent_month_keys,
    summarize_amounts,
)


def test_age_group_boundaries() -> None:
    assert age_group(0) == "0-17"
    assert age_group(17) == "0-17"
    assert age_group(18) == "18-25"
    assert age_group(25) == "18-25"
    assert age_group(26) == "26-35"
    assert age_group(50) == "36-50"
    assert age_group(65) == "51-65"
    assert age_group(66) == "65+"
    assert age_group(101) == "65+"


def test_age_histogram_keeps_every_group_and_skips_unknown_ages() -> None:
    histogram = age_histogram([5, 19, 19, None, 70])

    assert list(histogram) == ["0-17", "18-25", "26-35", "36-50", "51-65", "65+"]
    assert histogram["0-17"] == 1
    assert histogram["18-25"] == 2
    assert histogram["26-35"] == 0
    assert histogram["65+"] == 1


def test_period_keys() -> None:
    value = date(2024, 11, 5)
    assert period_key(value, "day") == "2024-11-05"
    assert period_key(value, "month") == "2024-11"
    assert period_key(value, "quarter") == "2024-Q4"
    assert period_key(value, "year") == "2024"
    assert period_key(datetime(2024, 1, 31, 23, 0), "quarter") == "2024-Q1"


def test_recent_month_keys_cross_year_boundary() -> None:
    assert recent_month_keys(date(2025, 2, 10), 4) == ["2024-11", "2024-12", "2025-01", "2025-02"]
    assert months_ago_start(date(2025, 2, 10), 5) == date(2024, 9, 1)


def test_summarize_amounts_handles_empty_input() -> None:
    summary = summarize_amounts([])
    assert summary["total_count"] == 0
    assert summary["total_amount"] == Decimal("0.00")
    assert summary["average_amount"] == Decimal("0.00")


def test_summarize_and_group_amounts() -> None:
    summary = summarize_amounts([Decimal("10.00"), Decimal("20.00"), Decimal("5.005")])
    assert summary["total_count"] == 3
    assert summary["total_amount"] == Decimal("35.01")
    assert summary["max_amount"] == Decimal("20.00")
    assert summary["min_amount"] == Decimal("5.01")

    grouped = group_amounts([("2024-02", Decimal("5")), ("2024-01", Decimal("10")), ("2024-02", Decimal("10"))])
    assert list(grouped) == ["2024-01", "2024-02"]
    assert grouped["2024-02"] == {
        "total_amount": Decimal("15.00"),
        "count": 2,
        "average_amount": Decimal("7.50"),
    }
