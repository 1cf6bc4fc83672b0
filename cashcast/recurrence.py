"""Frequency rules for recurring transactions.

A recurring entry is stored as ordinary rows: the first one on its start date
and one more per occurrence up to a horizon, all sharing a group id. This
module only deals with the dates.
"""
from __future__ import annotations
from datetime import date, timedelta
import calendar
from typing import Iterator

from .errors import ValidationError

DAY_STEPS = {
    "daily": 1,
    "weekly": 7,
    "biweekly": 14,
}

MONTH_STEPS = {
    "monthly": 1,
    "quarterly": 3,
    "semi annually": 6,
    "annually": 12,
}

FREQUENCIES = [
    "daily",
    "weekly",
    "biweekly",
    "semi monthly",
    "monthly",
    "quarterly",
    "semi annually",
    "annually",
]


def normalize_frequency(frequency: str | None) -> str | None:
    """Return the canonical frequency name, or ``None`` if it is not one."""
    if not frequency:
        return None
    freq = " ".join(str(frequency).strip().lower().replace("-", " ").split())
    return freq if freq in FREQUENCIES else None


def add_months(d: date, months: int) -> date:
    y = d.year + (d.month - 1 + months) // 12
    m = (d.month - 1 + months) % 12 + 1
    day = min(d.day, calendar.monthrange(y, m)[1])
    return date(y, m, day)


def month_diff(a: date, b: date) -> int:
    # whole months a->b; negative if b<a
    md = (b.year - a.year) * 12 + (b.month - a.month)
    if b.day < a.day:
        md -= 1
    return md


def day_step_series(anchor: date, start: date, end: date, step_days: int) -> Iterator[date]:
    k = max(0, (start - anchor).days // step_days)
    d = anchor + timedelta(days=k * step_days)
    if d < start:
        d += timedelta(days=step_days)
    while d <= end:
        yield d
        d += timedelta(days=step_days)


def monthly_series(anchor: date, start: date, end: date, step_months: int) -> Iterator[date]:
    # always offset from the anchor so a clamped day (Jan 31 -> Feb 28) recovers
    k = max(0, month_diff(anchor, start))
    k -= k % step_months
    d = add_months(anchor, k)
    while d < start:
        k += step_months
        d = add_months(anchor, k)
    while d <= end:
        yield d
        k += step_months
        d = add_months(anchor, k)


def semi_monthly_series(start: date, end: date) -> Iterator[date]:
    """1st and 15th of each month within ``[start, end]``."""
    d = date(start.year, start.month, 1)
    while d <= end:
        for day in (1, 15):
            occ = date(d.year, d.month, day)
            if start <= occ <= end:
                yield occ
        d = add_months(d, 1)


def occurrences_between(anchor: date, frequency: str, start: date, end: date) -> list[date]:
    freq = normalize_frequency(frequency)
    if start > end or freq is None:
        return []
    start = max(start, anchor)
    if start > end:
        return []
    if freq in DAY_STEPS:
        it = day_step_series(anchor, start, end, DAY_STEPS[freq])
    elif freq in MONTH_STEPS:
        it = monthly_series(anchor, start, end, MONTH_STEPS[freq])
    else:
        it = semi_monthly_series(start, end)
    return list(it)


def horizon_end(start: date, extra_years: int = 0) -> date:
    """Last day recurring instances are materialized for."""
    return date(start.year + max(0, extra_years), 12, 31)


def expand_recurring(start: date, frequency: str, through: date) -> list[date]:
    """Dates of the instances that follow the one on ``start``.

    ``start`` itself is excluded; ``through`` is included.
    """
    freq = normalize_frequency(frequency)
    if freq is None:
        raise ValidationError(f"Unknown recurring frequency: {frequency!r}")
    return occurrences_between(start, freq, start + timedelta(days=1), through)
