from __future__ import annotations
from datetime import date, datetime
import logging
import math
import uuid
from typing import Iterable

from sqlalchemy.orm import Session

from . import config
from .errors import TransactionNotFound, ValidationError
from .models import Transaction, User, TRANSACTION_TYPES
from .recurrence import expand_recurring, horizon_end, normalize_frequency

logger = logging.getLogger(__name__)


def _invalid(msg: str) -> ValidationError:
    logger.warning("Rejected input: %s", msg)
    return ValidationError(msg)


def parse_date(value) -> date:
    """Accept a ``date``, ``datetime`` or ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError:
            pass
    raise _invalid(f"Invalid date {value!r}; expected YYYY-MM-DD")


def parse_amount(value) -> float:
    if isinstance(value, bool):
        raise _invalid(f"Invalid amount {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise _invalid(f"Invalid amount {value!r}") from None
    if math.isnan(amount) or math.isinf(amount):
        raise _invalid(f"Invalid amount {value!r}")
    if amount < 0:
        raise _invalid("Amount must not be negative; use the type for direction")
    return amount


def _validate_fields(description, amount, when, txn_type):
    desc = str(description).strip() if description is not None else ""
    if not desc:
        raise _invalid("Description is required")
    if amount is None or when is None or not txn_type:
        raise _invalid("All fields are required")
    kind = str(txn_type).strip().lower()
    if kind not in TRANSACTION_TYPES:
        raise _invalid('Type must be either "expense" or "income"')
    return desc, parse_amount(amount), parse_date(when), kind


def find_user(session: Session, username: str) -> User | None:
    return session.query(User).filter_by(username=(username or "").strip()).first()


def get_or_create_user(session: Session, username: str) -> User:
    """Return the user called ``username``, creating it on first login."""
    name = (username or "").strip()
    if not name:
        raise _invalid("Username is required")
    user = find_user(session, name)
    if user is None:
        user = User(username=name)
        session.add(user)
        session.commit()
        logger.info("Registered user %r (id=%s)", name, user.id)
    return user


def create_transaction(
    session: Session,
    user_id: int,
    description: str,
    amount,
    date,
    type: str,
    is_recurring: bool = False,
    recurring_frequency: str | None = None,
) -> Transaction:
    """Insert a transaction and, for recurring ones, its future instances.

    Returns the row for the first occurrence.
    """
    desc, amt, when, kind = _validate_fields(description, amount, date, type)
    freq = None
    group_id = None
    if is_recurring:
        freq = normalize_frequency(recurring_frequency)
        if freq is None:
            raise _invalid(f"Unknown recurring frequency: {recurring_frequency!r}")
        group_id = f"{user_id}-{uuid.uuid4().hex}"

    first = Transaction(
        user_id=user_id,
        description=desc,
        amount=amt,
        date=when,
        type=kind,
        is_recurring=bool(is_recurring),
        recurring_frequency=freq,
        recurring_group_id=group_id,
    )
    session.add(first)

    future: list[Transaction] = []
    if is_recurring:
        through = horizon_end(when, config.RECURRING_EXTRA_YEARS)
        for occ in expand_recurring(when, freq, through):
            future.append(
                Transaction(
                    user_id=user_id,
                    description=desc,
                    amount=amt,
                    date=occ,
                    type=kind,
                    is_recurring=True,
                    recurring_frequency=freq,
                    recurring_group_id=group_id,
                )
            )
        session.add_all(future)
    session.commit()
    logger.info(
        "User %s added %s %r %.2f on %s%s",
        user_id,
        kind,
        desc,
        amt,
        when.isoformat(),
        f" ({freq}, {len(future)} future instances)" if is_recurring else "",
    )
    return first


def get_transaction(session: Session, user_id: int, transaction_id: int) -> Transaction:
    txn = (
        session.query(Transaction)
        .filter_by(id=transaction_id, user_id=user_id)
        .first()
    )
    if txn is None:
        raise TransactionNotFound(transaction_id)
    return txn


def list_transactions(
    session: Session,
    user_id: int,
    year: int | None = None,
    month: int | None = None,
) -> list[Transaction]:
    """All of a user's transactions in date order, optionally for one month."""
    q = session.query(Transaction).filter(Transaction.user_id == user_id)
    if year is not None and month is not None:
        first = date(year, month, 1)
        nxt = date(year + month // 12, month % 12 + 1, 1)
        q = q.filter(Transaction.date >= first, Transaction.date < nxt)
    return q.order_by(Transaction.date, Transaction.id).all()


def transactions_in_month(transactions: Iterable, year: int, month: int) -> list:
    rows = [
        t for t in transactions
        if t.date is not None and t.date.year == year and t.date.month == month
    ]
    rows.sort(key=lambda t: (t.date, getattr(t, "id", 0) or 0))
    return rows


def update_transaction(
    session: Session,
    user_id: int,
    transaction_id: int,
    description: str,
    amount,
    date,
    type: str,
) -> Transaction:
    """Overwrite the editable fields of a single row."""
    desc, amt, when, kind = _validate_fields(description, amount, date, type)
    txn = get_transaction(session, user_id, transaction_id)
    txn.description = desc
    txn.amount = amt
    txn.date = when
    txn.type = kind
    session.commit()
    logger.info("User %s updated transaction %s", user_id, transaction_id)
    return txn


def delete_transaction(
    session: Session,
    user_id: int,
    transaction_id: int,
    delete_all: bool = False,
) -> int:
    """Delete one row, or its whole recurring series when ``delete_all``."""
    txn = get_transaction(session, user_id, transaction_id)
    group_id = txn.recurring_group_id
    if delete_all and txn.is_recurring and group_id:
        removed = (
            session.query(Transaction)
            .filter_by(recurring_group_id=group_id, user_id=user_id)
            .delete(synchronize_session=False)
        )
        session.commit()
        session.expire_all()
        logger.info(
            "User %s deleted recurring group %s (%s rows)",
            user_id,
            group_id,
            removed,
        )
        return removed
    session.delete(txn)
    session.commit()
    logger.info("User %s deleted transaction %s", user_id, transaction_id)
    return 1


def delete_all_transactions(session: Session, user_id: int) -> int:
    removed = (
        session.query(Transaction)
        .filter_by(user_id=user_id)
        .delete(synchronize_session=False)
    )
    session.commit()
    session.expire_all()
    logger.info("User %s deleted all transactions (%s rows)", user_id, removed)
    return removed
