"""Balances and the per-day "available to spend" figure.

Everything here is a pure function over transaction-like objects exposing
``date``, ``type``, ``amount`` and ``description``; ORM rows and plain
stand-ins both work.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, timedelta
import logging
from typing import Iterable, Sequence

from .models import INCOME, EXPENSE

logger = logging.getLogger(__name__)


@dataclass
class LedgerRow:
    date: date
    description: str
    type: str
    amount: float
    running: float

    @property
    def signed(self) -> float:
        return self.amount if self.type == INCOME else -self.amount


@dataclass(frozen=True)
class Totals:
    income: float
    expenses: float

    @property
    def net(self) -> float:
        return self.income - self.expenses


def signed_amount(txn) -> float:
    amt = float(txn.amount or 0.0)
    return amt if txn.type == INCOME else -amt


def transactions_for_day(day: date, transactions: Iterable) -> list:
    return [t for t in transactions if t.date == day]


def day_total(transactions: Iterable) -> float:
    """Income minus expenses."""
    return sum((signed_amount(t) for t in transactions), 0.0)


def running_balance(day: date, transactions: Iterable) -> float:
    return day_total(t for t in transactions if t.date <= day)


def next_income_date(day: date, transactions: Iterable) -> date | None:
    future = [t.date for t in transactions if t.type == INCOME and t.date > day]
    return min(future) if future else None


def available_to_spend(day: date, transactions: Sequence) -> float:
    """Money that can go out on ``day`` without missing a bill before payday.

    The balance through ``day`` less every expense dated after ``day`` up to
    and including the next income. The next income itself is not counted.
    """
    if not transactions:
        return 0.0
    balance = running_balance(day, transactions)
    payday = next_income_date(day, transactions)
    if payday is None:
        return balance
    upcoming = sum(
        float(t.amount or 0.0)
        for t in transactions
        if t.type == EXPENSE and day < t.date <= payday
    )
    logger.debug(
        "available on %s: balance %.2f, next income %s, upcoming %.2f",
        day,
        balance,
        payday,
        upcoming,
    )
    return balance - upcoming


def daily_available(start: date, end: date, transactions: Sequence) -> list[tuple[date, float]]:
    out = []
    d = start
    while d <= end:
        out.append((d, available_to_spend(d, transactions)))
        d += timedelta(days=1)
    return out


def _ledger_key(t):
    # income lands before expenses on the same day
    return (t.date, 0 if t.type == INCOME else 1, getattr(t, "id", None) or 0)


def ledger_rows(
    transactions: Iterable,
    start: date | None = None,
    end: date | None = None,
):
    """Yield ``LedgerRow`` per transaction with the balance after it.

    Transactions before ``start`` still feed the running balance.
    """
    running = 0.0
    for t in sorted(transactions, key=_ledger_key):
        running += signed_amount(t)
        if start is not None and t.date < start:
            continue
        if end is not None and t.date > end:
            break
        yield LedgerRow(t.date, t.description, t.type, float(t.amount or 0.0), running)


def totals(transactions: Iterable) -> Totals:
    income = 0.0
    expenses = 0.0
    for t in transactions:
        if t.type == INCOME:
            income += float(t.amount or 0.0)
        else:
            expenses += float(t.amount or 0.0)
    return Totals(income, expenses)
