"""Month calendar model and its plain-text rendering."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
import calendar

from .forecast import available_to_spend, day_total, transactions_for_day
from .models import INCOME, EXPENSE

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
KIND_MARKS = {INCOME: "+", EXPENSE: "-", "mixed": "~", None: " "}


@dataclass
class CalendarDay:
    date: date
    transactions: list = field(default_factory=list)
    total: float = 0.0
    available: float = 0.0
    is_today: bool = False

    @property
    def kind(self) -> str | None:
        has_income = any(t.type == INCOME for t in self.transactions)
        has_expense = any(t.type == EXPENSE for t in self.transactions)
        if has_income and has_expense:
            return "mixed"
        if has_income:
            return INCOME
        if has_expense:
            return EXPENSE
        return None

    @property
    def display_amount(self) -> float:
        return self.available if self.is_today else self.total


@dataclass
class MonthGrid:
    year: int
    month: int
    weeks: list[list[CalendarDay | None]]

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def days(self) -> list[CalendarDay]:
        return [d for week in self.weeks for d in week if d is not None]

    def find(self, day: date) -> tuple[int, int] | None:
        for w, week in enumerate(self.weeks):
            for c, cell in enumerate(week):
                if cell is not None and cell.date == day:
                    return w, c
        return None


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + delta
    return idx // 12, idx % 12 + 1


def month_grid(year: int, month: int, transactions, today: date | None = None) -> MonthGrid:
    """Sunday-first weeks for the month; cells outside the month are ``None``."""
    today = today or date.today()
    txns = list(transactions)
    weeks = []
    for week in calendar.Calendar(firstweekday=6).monthdatescalendar(year, month):
        row: list[CalendarDay | None] = []
        for d in week:
            if d.month != month:
                row.append(None)
                continue
            day_txns = transactions_for_day(d, txns)
            row.append(
                CalendarDay(
                    date=d,
                    transactions=day_txns,
                    total=day_total(day_txns),
                    available=available_to_spend(d, txns),
                    is_today=d == today,
                )
            )
        weeks.append(row)
    return MonthGrid(year, month, weeks)


def day_details(day: date, transactions) -> list[str]:
    txns = list(transactions)
    avail = available_to_spend(day, txns)
    lines = [f"Available to spend: ${abs(avail):.2f}" + (" (short)" if avail < 0 else "")]
    day_txns = transactions_for_day(day, txns)
    if not day_txns:
        lines.append("No transactions on this day")
        return lines
    for t in day_txns:
        sign = "+" if t.type == INCOME else "-"
        lines.append(f"{t.description}: {sign}${float(t.amount or 0.0):.2f}")
    lines.append(f"Day total: ${day_total(day_txns):.2f}")
    return lines


def cell_width(width: int) -> int:
    return max(8, width // 7)


def render_month(grid: MonthGrid, width: int) -> list[str]:
    """Text lines: weekday header, then two lines per week.

    The first line of a week holds day numbers with a today ``*`` and a kind
    mark, the second the amount shown for that day.
    """
    cw = cell_width(width)
    lines = ["".join(name.center(cw) for name in WEEKDAYS)]
    for week in grid.weeks:
        top = []
        bottom = []
        for cell in week:
            if cell is None:
                top.append(" " * cw)
                bottom.append(" " * cw)
                continue
            mark = KIND_MARKS[cell.kind]
            star = "*" if cell.is_today else " "
            top.append(f"{cell.date.day:>2}{star}{mark}".ljust(cw))
            if cell.transactions or cell.is_today:
                bottom.append(f"{cell.display_amount:.2f}"[: cw - 1].ljust(cw))
            else:
                bottom.append(" " * cw)
        lines.append("".join(top))
        lines.append("".join(bottom))
    return lines
