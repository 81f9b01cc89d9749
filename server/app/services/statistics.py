"""Aggregation helpers shared by the statistics endpoints."""

from __future__ import annotations

from collections import Counter, OrderedDict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

AGE_GROUPS: tuple[tuple[str, int, int | None], ...] = (
    ("0-17", 0, 17),
    ("18-25", 18, 25),
    ("26-35", 26, 35),
    ("36-50", 36, 50),
    ("51-65", 51, 65),
    ("65+", 66, None),
)

CENTS = Decimal("0.01")


def age_group(age: int) -> str:
    for label, _, upper in AGE_GROUPS:
        if upper is None or age <= upper:
            return label
    return AGE_GROUPS[-1][0]


def age_histogram(ages: Iterable[int | None]) -> "OrderedDict[str, int]":
    """Bucket ages into the fixed groups; every group is present, in order."""

    histogram: "OrderedDict[str, int]" = OrderedDict((label, 0) for label, _, _ in AGE_GROUPS)
    for age in ages:
        if age is None:
            continue
        histogram[age_group(age)] += 1
    return histogram


def period_key(value: date | datetime, group_by: str) -> str:
    if group_by == "year":
        return f"{value.year:04d}"
    if group_by == "quarter":
        return f"{value.year:04d}-Q{(value.month - 1) // 3 + 1}"
    if group_by == "month":
        return f"{value.year:04d}-{value.month:02d}"
    return value.strftime("%Y-%m-%d")


def month_key(value: date | datetime) -> str:
    return period_key(value, "month")


def recent_month_keys(today: date, months: int) -> list[str]:
    """Keys for the ``months`` calendar months ending with the current one."""

    keys: list[str] = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(keys))


def months_ago_start(today: date, months: int) -> date:
    year, month = today.year, today.month - months
    while month <= 0:
        month += 12
        year -= 1
    return date(year, month, 1)


def quantize(value: Decimal | int | float) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def average(total: Decimal, count: int) -> Decimal:
    if not count:
        return quantize(0)
    return quantize(total / count)


def summarize_amounts(amounts: Iterable[Decimal]) -> dict[str, Decimal | int]:
    values = [Decimal(amount) for amount in amounts]
    total = sum(values, Decimal("0"))
    return {
        "total_amount": quantize(total),
        "total_count": len(values),
        "average_amount": average(total, len(values)),
        "max_amount": quantize(max(values)) if values else quantize(0),
        "min_amount": quantize(min(values)) if values else quantize(0),
    }


def group_amounts(pairs: Iterable[tuple[str, Decimal]]) -> "OrderedDict[str, dict[str, Decimal | int]]":
    """Sum and count amounts per key, keys sorted ascending."""

    totals: dict[str, Decimal] = {}
    counts: Counter[str] = Counter()
    for key, amount in pairs:
        totals[key] = totals.get(key, Decimal("0")) + Decimal(amount)
        counts[key] += 1
    grouped: "OrderedDict[str, dict[str, Decimal | int]]" = OrderedDict()
    for key in sorted(totals):
        grouped[key] = {
            "total_amount": quantize(totals[key]),
            "count": counts[key],
            "average_amount": average(totals[key], counts[key]),
        }
    return grouped
