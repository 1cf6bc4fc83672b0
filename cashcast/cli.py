"""Full-screen terminal interface for CashCast."""
from __future__ import annotations

from datetime import date, timedelta
import curses
import logging
from bisect import bisect_right
from curses import panel
from contextlib import contextmanager

from . import config
from .calendar_view import (
    cell_width,
    day_details,
    month_grid,
    render_month,
    shift_month,
)
from .database import SessionLocal, init_db
from .errors import CashCastError
from .forecast import available_to_spend, daily_available, ledger_rows, totals
from .models import Transaction, INCOME, EXPENSE
from .recurrence import FREQUENCIES
from .services import (
    create_transaction,
    delete_all_transactions,
    delete_transaction,
    get_or_create_user,
    list_transactions as fetch_transactions,
    update_transaction,
)

logger = logging.getLogger(__name__)

# active login for this session
CURRENT_USER_ID: int | None = None
CURRENT_USERNAME: str | None = None

AVAILABLE_DAYS_AHEAD = 30
MONTH_KEYS = {ord("["): ("month", -1), ord("]"): ("month", 1)}


def current_available(today: date | None = None) -> float:
    """Available to spend today for the logged-in user."""
    if CURRENT_USER_ID is None:
        return 0.0
    with SessionLocal() as s:
        txns = fetch_transactions(s, CURRENT_USER_ID)
        return available_to_spend(today or date.today(), txns)


def footer_text() -> str:
    who = CURRENT_USERNAME or "-"
    return f"{who} | avail {current_available():.2f}"


def select(stdscr, message, choices, default=None, boxed=True):
    """Menu over ``choices`` (strings or ``(title, value)`` pairs).

    Returns the chosen value, or ``None`` when the menu is left with ``q``.
    """
    titles = [c[0] if isinstance(c, tuple) else c for c in choices]
    values = [c[1] if isinstance(c, tuple) else c for c in choices]
    start = values.index(default) if default is not None and default in values else 0
    picked = scroll_menu(
        stdscr,
        titles,
        start,
        header=message,
        footer_right=footer_text(),
        boxed=boxed,
    )
    return None if picked is None else values[picked]


def _paint(win, y: int, x: int, s: str, n: int, attr: int = curses.A_NORMAL) -> None:
    # writes past the window edge raise curses.error; clip silently
    try:
        win.addnstr(y, x, s, max(0, n), attr)
    except curses.error:
        pass


def _refresh(win) -> None:
    try:
        win.refresh()
    except curses.error:
        pass


@contextmanager
def temp_cursor(state: int):
    """Set cursor visibility for the block, restoring the old state after."""
    try:
        prev = curses.curs_set(state)
    except curses.error:  # pragma: no cover - some terminals
        prev = None
    try:
        yield
    finally:
        if prev is not None:
            try:
                curses.curs_set(prev)
            except curses.error:  # pragma: no cover
                pass


@contextmanager
def keypad_mode(win):
    try:
        win.keypad(True)
    except curses.error:  # pragma: no cover - fake windows
        pass
    try:
        yield
    finally:
        try:
            win.keypad(False)
        except curses.error:  # pragma: no cover - fake windows
            pass


@contextmanager
def modal_box(stdscr, height: int, width: int):
    """Bordered window centered on ``stdscr``, shown on its own panel."""
    h, w = stdscr.getmaxyx()
    height, width = min(height, h), min(width, w)
    win = curses.newwin(height, width, max(0, (h - height) // 2), max(0, (w - width) // 2))
    win.box()
    try:
        pnl = panel.new_panel(win)
    except Exception:  # pragma: no cover - non-curses window in tests
        pnl = None
    if pnl is not None:
        panel.update_panels()
        curses.doupdate()
    try:
        with keypad_mode(win):
            yield win
    finally:
        try:
            win.erase()
            win.noutrefresh()
        except (curses.error, AttributeError):  # pragma: no cover - fake windows
            pass
        if pnl is not None:
            pnl.hide()
            panel.update_panels()
            curses.doupdate()


def text(stdscr, message, default=None):
    """One-line input box; an empty answer falls back to ``default``."""
    with temp_cursor(1), keypad_mode(stdscr):
        _, w = stdscr.getmaxyx()
        prompt = message + (f" [{default}]" if default is not None else "") + ": "
        input_width = max(1, min(40, w - len(prompt) - 6))
        box_width = min(len(prompt) + input_width + 4, w)
        with modal_box(stdscr, 3, box_width) as win:
            _paint(win, 1, 2, prompt, box_width - 4)
            _refresh(win)
            curses.echo()
            try:
                resp = win.getstr(1, 2 + len(prompt), input_width)
            except curses.error:
                resp = b""
            finally:
                curses.noecho()
    answer = resp.decode()
    return default if answer == "" and default is not None else answer


def confirm(stdscr, message: str) -> bool:
    lines = [message, "Press Enter to confirm, or any other key to cancel."]
    width = max(len(line) for line in lines)
    with temp_cursor(0), keypad_mode(stdscr):
        with modal_box(stdscr, len(lines) + 2, width + 4) as win:
            for i, line in enumerate(lines):
                _paint(win, 1 + i, 2 + (width - len(line)) // 2, line, width)
            _refresh(win)
            ch = win.getch()
    return ch in (curses.KEY_ENTER, 10, 13)


def toast(stdscr, msg: str, ms: int = 900):
    """Flash ``msg`` in a small box for ``ms`` milliseconds."""
    _, w = stdscr.getmaxyx()
    box_w = max(12, min(len(msg) + 4, w - 2))
    with modal_box(stdscr, 3, box_w) as win:
        _paint(win, 1, 2, msg, box_w - 4)
        _refresh(win)
        curses.napms(ms)


def _draw_menu(win, top_y, left, width, header, entries, index, visible, footer, footer_y):
    """Header, the window of ``entries`` around ``index``, and a two-part footer."""
    y = top_y
    if header:
        _paint(win, y, left + max(0, (width - len(header)) // 2), header, width)
        y += 1
    top = min(max(0, index - visible // 2), max(0, len(entries) - visible))
    for i, line in enumerate(entries[top:top + visible]):
        attr = curses.A_REVERSE if top + i == index else curses.A_NORMAL
        _paint(win, y + i, left, line, width, attr)
    footer_l, footer_r = footer
    _paint(win, footer_y, left, footer_l, width)
    _paint(win, footer_y, left + max(0, width - len(footer_r)), footer_r, len(footer_r))


def scroll_menu(
    stdscr,
    entries,
    index,
    header: str | None = None,
    footer_left: str | None = None,
    footer_right: str | None = None,
    allow_add: bool = False,
    allow_delete: bool = False,
    boxed: bool = False,
    extra_keys: dict | None = None,
):
    """Scrollable list; returns the chosen index or ``None`` on ``q``.

    ``a`` returns ``-1`` and ``d`` returns ``("delete", index)`` when allowed.
    A key in ``extra_keys`` returns its mapped value. ``boxed`` draws a
    centered overlay instead of taking the whole screen.
    """
    footer_l = footer_left if footer_left is not None else date.today().isoformat()
    footer_r = footer_right or ""
    extra_keys = extra_keys or {}
    offset = 1 if header else 0
    content_width = max(
        max((len(e) for e in entries), default=0),
        len(header or ""),
        len(footer_l) + len(footer_r) + 1,
    )

    with temp_cursor(0), keypad_mode(stdscr):
        while True:
            h, w = stdscr.getmaxyx()
            h, w = max(1, h), max(1, w)
            pos = f"{index + 1}/{len(entries)}" if entries else "0/0"
            footer = (footer_l, f"{footer_r} {pos}".strip())

            if boxed:
                visible = min(len(entries), max(1, h - 3 - offset))
                width = min(content_width, w - 4)
                box_h = visible + offset + 3
                with modal_box(stdscr, box_h, width + 4) as win:
                    _draw_menu(win, 1, 2, width, header, entries, index, visible, footer, box_h - 2)
                    _refresh(win)
                    key = win.getch()
            else:
                visible = min(len(entries), h - 1 - offset)
                stdscr.erase()
                _draw_menu(stdscr, 0, 0, w - 1, header, entries, index, visible, footer, h - 1)
                stdscr.refresh()
                key = stdscr.getch()

            if key == curses.KEY_RESIZE:
                curses.update_lines_cols()
                curses.resize_term(0, 0)
                stdscr.clearok(True)
                continue
            if key in extra_keys:
                return extra_keys[key]
            if key == curses.KEY_UP and index > 0:
                index -= 1
            elif key == curses.KEY_DOWN and index < len(entries) - 1:
                index += 1
            elif key == curses.KEY_PPAGE:
                index = max(0, index - visible)
            elif key == curses.KEY_NPAGE:
                index = min(len(entries) - 1, index + visible)
            elif key == curses.KEY_HOME:
                index = 0
            elif key == curses.KEY_END:
                index = len(entries) - 1
            elif key in (curses.KEY_ENTER, 10, 13):
                return index
            elif key == ord("a") and allow_add:
                return -1
            elif key == ord("d") and allow_delete:
                return ("delete", index)
            elif key == ord("q"):
                return None


def transaction_form(
    stdscr,
    description: str,
    when: date,
    amount: float,
    txn_type: str,
    is_recurring: bool = False,
    frequency: str | None = None,
    allow_recurring: bool = True,
):
    """Interactive form for editing transaction fields.

    Returns a dict of the field values if saved, otherwise ``None``.
    """

    while True:
        choices = [
            (f"Name: {description}", "description"),
            (f"Date: {when.strftime('%Y-%m-%d')}", "date"),
            (f"Amount: {amount:.2f}", "amount"),
            (f"Type: {txn_type}", "type"),
        ]
        if allow_recurring:
            choices.append(
                (f"Recurring: {frequency if is_recurring else 'no'}", "recurring")
            )
        choices += [("Save", "save"), ("Cancel", "cancel")]
        choice = select(stdscr, "Select field to edit", choices=choices)

        if choice == "description":
            new_desc = text(stdscr, "Description", default=description)
            if new_desc is not None:
                description = new_desc
        elif choice == "date":
            date_str = text(
                stdscr, "Date (YYYY-MM-DD)", default=when.strftime("%Y-%m-%d")
            )
            if date_str is not None:
                try:
                    when = date.fromisoformat(date_str.strip())
                except ValueError:
                    pass
        elif choice == "amount":
            amount_str = text(stdscr, "Amount", default=f"{amount:.2f}")
            if amount_str is not None:
                try:
                    # negative input reaches the service and is rejected there
                    amount = float(amount_str)
                except ValueError:
                    pass
        elif choice == "type":
            picked = select(stdscr, "Type", [EXPENSE, INCOME], default=txn_type)
            if picked is not None:
                txn_type = picked
        elif choice == "recurring":
            picked = select(
                stdscr,
                "Repeats",
                [("No", None)] + [(f, f) for f in FREQUENCIES],
                default=frequency if is_recurring else None,
            )
            is_recurring = picked is not None
            frequency = picked
        elif choice == "save":
            return {
                "description": description,
                "date": when,
                "amount": amount,
                "type": txn_type,
                "is_recurring": is_recurring,
                "recurring_frequency": frequency,
            }
        else:
            return None


def add_transaction(stdscr, when: date | None = None) -> None:
    """Prompt user for transaction data and persist it."""
    form = transaction_form(stdscr, "", when or date.today(), 0.0, EXPENSE)
    if form is None:
        return
    with SessionLocal() as session:
        try:
            create_transaction(session, CURRENT_USER_ID, **form)
        except CashCastError as exc:
            session.rollback()
            toast(stdscr, str(exc), 1500)


def edit_transaction(stdscr, session, txn: Transaction) -> None:
    """Edit an existing transaction in-place."""
    form = transaction_form(
        stdscr,
        txn.description,
        txn.date,
        txn.amount,
        txn.type,
        allow_recurring=False,
    )
    if form is None:
        return
    try:
        update_transaction(
            session,
            CURRENT_USER_ID,
            txn.id,
            form["description"],
            form["amount"],
            form["date"],
            form["type"],
        )
    except CashCastError as exc:
        session.rollback()
        toast(stdscr, str(exc), 1500)


def remove_transaction(stdscr, session, txn: Transaction) -> None:
    """Delete ``txn``; recurring rows ask whether to drop the whole series."""
    if txn.is_recurring and txn.recurring_group_id:
        scope = select(
            stdscr,
            "Delete recurring transaction",
            [
                ("Only this occurrence", "one"),
                ("Every occurrence in the series", "all"),
                ("Cancel", None),
            ],
        )
        if scope is None:
            return
        delete_all = scope == "all"
    else:
        if not confirm(stdscr, "Delete this transaction?"):
            return
        delete_all = False
    try:
        delete_transaction(session, CURRENT_USER_ID, txn.id, delete_all=delete_all)
    except CashCastError as exc:
        session.rollback()
        toast(stdscr, str(exc), 1500)


def list_transactions(stdscr, year: int | None = None, month: int | None = None) -> None:
    """List one month of transactions and allow editing."""
    today = date.today()
    year = year or today.year
    month = month or today.month
    session = SessionLocal()
    try:
        while True:
            txns = fetch_transactions(session, CURRENT_USER_ID, year, month)
            tot = totals(txns)
            desc_w = max((len(t.description) for t in txns), default=0)
            amt_w = max((len(f"{t.signed_amount:.2f}") for t in txns), default=0)
            entries = [
                f"{t.date.strftime('%Y-%m-%d')} | {t.description:<{desc_w}} | "
                f"{t.signed_amount:>{amt_w}.2f}" + (f" ({t.recurring_frequency})" if t.is_recurring else "")
                for t in txns
            ]
            entries.append("Back")
            header = (
                f"{date(year, month, 1):%B %Y}  income {tot.income:.2f}  "
                f"expenses {tot.expenses:.2f}  net {tot.net:.2f}"
            )
            res = scroll_menu(
                stdscr,
                entries,
                0,
                header=header,
                footer_left="Enter edit, 'a' add, 'd' delete, '[' ']' month",
                footer_right=footer_text(),
                allow_add=True,
                allow_delete=True,
                extra_keys=MONTH_KEYS,
            )
            if isinstance(res, tuple) and res[0] == "month":
                year, month = shift_month(year, month, res[1])
                continue
            if isinstance(res, tuple) and res[0] == "delete":
                del_idx = res[1]
                if del_idx < len(txns):
                    remove_transaction(stdscr, session, txns[del_idx])
                session.close()
                session = SessionLocal()
                continue
            if res == -1:
                session.close()
                first = date(year, month, 1)
                add_transaction(stdscr, today if (today.year, today.month) == (year, month) else first)
                session = SessionLocal()
                continue
            idx = res
            if idx is None or idx >= len(txns):
                break
            edit_transaction(stdscr, session, txns[idx])
    finally:
        session.close()


def ledger_view(stdscr) -> None:
    """Display a scrollable ledger as ``date | name | amount | balance``."""
    with SessionLocal() as session:
        rows = list(ledger_rows(fetch_transactions(session, CURRENT_USER_ID)))
    if not rows:
        toast(stdscr, "No transactions yet.")
        return

    desc_w = max(len(r.description) for r in rows)
    amt_w = max(len(f"{r.signed:.2f}") for r in rows)
    run_w = max(len(f"{r.running:.2f}") for r in rows)
    entries = [
        f"{r.date.strftime('%Y-%m-%d')} | {r.description:<{desc_w}} | "
        f"{r.signed:>{amt_w}.2f} | {r.running:>{run_w}.2f}"
        for r in rows
    ]
    # open on the last row dated today or earlier
    start_idx = max(0, bisect_right([r.date for r in rows], date.today()) - 1)
    scroll_menu(
        stdscr,
        entries,
        start_idx,
        header="Ledger",
        footer_left="'q' back",
        footer_right=footer_text(),
    )


def available_view(stdscr, days: int = AVAILABLE_DAYS_AHEAD) -> None:
    """Show the available-to-spend figure for the coming days."""
    today = date.today()
    with SessionLocal() as session:
        txns = fetch_transactions(session, CURRENT_USER_ID)
    series = daily_available(today, today + timedelta(days=days - 1), txns)
    entries = [f"{d:%a %Y-%m-%d} | {amt:>10.2f}" for d, amt in series]
    scroll_menu(
        stdscr,
        entries,
        0,
        header="Available to spend",
        footer_left="'q' back",
        footer_right=footer_text(),
        boxed=True,
    )


def move_selection(selected: date, key: int) -> date:
    """Arrow keys move by a day or a week."""
    if key == curses.KEY_LEFT:
        return selected - timedelta(days=1)
    if key == curses.KEY_RIGHT:
        return selected + timedelta(days=1)
    if key == curses.KEY_UP:
        return selected - timedelta(days=7)
    if key == curses.KEY_DOWN:
        return selected + timedelta(days=7)
    if key in (ord("["), ord("p")):
        y, m = shift_month(selected.year, selected.month, -1)
        return date(y, m, 1)
    if key in (ord("]"), ord("n")):
        y, m = shift_month(selected.year, selected.month, 1)
        return date(y, m, 1)
    return selected


def calendar_curses(stdscr, selected: date) -> None:
    session = SessionLocal()
    try:
        with temp_cursor(0), keypad_mode(stdscr):
            while True:
                txns = fetch_transactions(session, CURRENT_USER_ID)
                grid = month_grid(selected.year, selected.month, txns)
                h, w = stdscr.getmaxyx()
                cw = cell_width(w - 1)
                lines = render_month(grid, w - 1)

                stdscr.erase()
                _paint(stdscr, 0, max(0, (w - len(grid.title)) // 2), grid.title, w - 1)
                for i, line in enumerate(lines):
                    if i + 1 >= h - 1:
                        break
                    _paint(stdscr, i + 1, 0, line, w - 1)
                pos = grid.find(selected)
                if pos is not None:
                    week, col = pos
                    for j in range(2):
                        y = 2 + week * 2 + j
                        cell = lines[1 + week * 2 + j][col * cw:(col + 1) * cw]
                        if y < h - 1:
                            _paint(stdscr, y, col * cw, cell, cw, curses.A_REVERSE)
                footer_l = "arrows move, Enter details, 'a' add, '[' ']' month, 'q' back"
                footer_r = footer_text()
                _paint(stdscr, h - 1, 0, footer_l, w - 1)
                _paint(stdscr, h - 1, max(0, w - len(footer_r) - 1), footer_r, len(footer_r))
                stdscr.refresh()

                key = stdscr.getch()
                if key == curses.KEY_RESIZE:
                    curses.update_lines_cols()
                    curses.resize_term(0, 0)
                    stdscr.clearok(True)
                    continue
                if key == ord("q"):
                    break
                if key in (curses.KEY_ENTER, 10, 13):
                    scroll_menu(
                        stdscr,
                        day_details(selected, txns),
                        0,
                        header=selected.strftime("%A %Y-%m-%d"),
                        footer_left="'q' back",
                        boxed=True,
                    )
                elif key == ord("a"):
                    session.close()
                    add_transaction(stdscr, selected)
                    session = SessionLocal()
                else:
                    selected = move_selection(selected, key)
    finally:
        session.close()


def calendar_screen(stdscr) -> None:
    calendar_curses(stdscr, date.today())


def clear_transactions(stdscr) -> None:
    if not confirm(stdscr, f"Delete ALL transactions for {CURRENT_USERNAME}?"):
        return
    with SessionLocal() as session:
        removed = delete_all_transactions(session, CURRENT_USER_ID)
    toast(stdscr, f"Deleted {removed} transactions")


def login(stdscr, default: str | None = None) -> None:
    """Pick the active user; unknown names are registered."""
    global CURRENT_USER_ID, CURRENT_USERNAME
    name = text(stdscr, "Username", default=default or CURRENT_USERNAME or config.DEFAULT_USER)
    if not name:
        return
    with SessionLocal() as session:
        try:
            user = get_or_create_user(session, name)
        except CashCastError as exc:
            toast(stdscr, str(exc), 1500)
            return
        CURRENT_USER_ID, CURRENT_USERNAME = user.id, user.username
    logger.info("Logged in as %s", CURRENT_USERNAME)


def main(stdscr) -> None:
    with temp_cursor(0), keypad_mode(stdscr):
        try:
            curses.use_default_colors()
        except curses.error:  # pragma: no cover - terminals without color
            pass
        init_db()
        while CURRENT_USER_ID is None:
            login(stdscr)
        while True:
            choice = select(
                stdscr,
                "Select an option",
                choices=[
                    "List transactions",
                    "Add transaction",
                    "Calendar",
                    "Ledger",
                    "Available to spend",
                    "Delete all transactions",
                    "Switch user",
                    "Quit",
                ],
                boxed=False,
            )
            if choice == "List transactions":
                list_transactions(stdscr)
            elif choice == "Add transaction":
                add_transaction(stdscr)
            elif choice == "Calendar":
                calendar_screen(stdscr)
            elif choice == "Ledger":
                ledger_view(stdscr)
            elif choice == "Available to spend":
                available_view(stdscr)
            elif choice == "Delete all transactions":
                clear_transactions(stdscr)
            elif choice == "Switch user":
                login(stdscr)
            else:
                break


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    curses.wrapper(main)
