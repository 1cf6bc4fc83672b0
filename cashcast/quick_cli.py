"""Line-oriented prompt for quick entry without the full-screen UI."""
from __future__ import annotations

from datetime import date

import questionary

from . import config
from .database import SessionLocal, init_db
from .errors import CashCastError
from .forecast import available_to_spend, totals
from .models import EXPENSE, INCOME
from .recurrence import FREQUENCIES
from .services import create_transaction, get_or_create_user, list_transactions


def enter_transaction(user_id: int) -> None:
    description = questionary.text("Description:").ask()
    amount_str = questionary.text("Amount:").ask()
    date_str = questionary.text("Date (YYYY-MM-DD):", default=date.today().isoformat()).ask()
    txn_type = questionary.select("Type:", choices=[EXPENSE, INCOME]).ask()
    frequency = questionary.select(
        "Repeats:", choices=["no"] + FREQUENCIES, default="no"
    ).ask()
    recurring = frequency not in (None, "no")
    with SessionLocal() as session:
        try:
            create_transaction(
                session,
                user_id,
                description,
                amount_str,
                date_str,
                txn_type,
                is_recurring=recurring,
                recurring_frequency=frequency if recurring else None,
            )
        except CashCastError as exc:
            session.rollback()
            print(f"Not saved: {exc}\n")
            return
    print("Transaction saved.\n")


def show_transactions(user_id: int) -> None:
    with SessionLocal() as session:
        txns = list_transactions(session, user_id)
        if not txns:
            print("No transactions recorded.\n")
        else:
            for txn in txns:
                print(f"{txn.date:%Y-%m-%d} - {txn.description}: {txn.signed_amount:+.2f}")
            tot = totals(txns)
            print(
                f"Income ${tot.income:.2f} | Expenses ${tot.expenses:.2f} | Net ${tot.net:.2f}\n"
            )
    questionary.press_any_key_to_continue("Press any key to return to menu").ask()


def show_available(user_id: int, today: date | None = None) -> float:
    today = today or date.today()
    with SessionLocal() as session:
        amount = available_to_spend(today, list_transactions(session, user_id))
    print(f"Available to spend on {today:%Y-%m-%d}: ${amount:.2f}\n")
    return amount


def main() -> None:
    """Entry point for the quick-entry prompt."""
    config.configure_logging()
    init_db()
    username = questionary.text("Username:", default=config.DEFAULT_USER).ask()
    if username is None:
        return
    with SessionLocal() as session:
        try:
            user_id = get_or_create_user(session, username).id
        except CashCastError as exc:
            print(exc)
            return
    while True:
        choice = questionary.select(
            "Choose an option:",
            choices=[
                "Enter transaction",
                "List transactions",
                "Available to spend today",
                "Quit",
            ],
        ).ask()

        if choice == "Enter transaction":
            enter_transaction(user_id)
        elif choice == "List transactions":
            show_transactions(user_id)
        elif choice == "Available to spend today":
            show_available(user_id)
        else:
            break


if __name__ == "__main__":
    main()
