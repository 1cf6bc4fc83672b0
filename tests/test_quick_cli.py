from datetime import date

import pytest

from tests.helpers import get_temp_session, make_user
from cashcast import quick_cli, services
from cashcast.models import Transaction


class Answer:
    def __init__(self, value):
        self.value = value

    def ask(self):
        return self.value


def answers(values):
    iterator = iter(values)

    def _question(*args, **kwargs):
        return Answer(next(iterator))

    return _question


@pytest.fixture
def session_factory(monkeypatch):
    Session, path = get_temp_session()
    monkeypatch.setattr(quick_cli, "SessionLocal", Session)
    yield Session
    path.unlink()


def test_enter_recurring_transaction(monkeypatch, session_factory):
    uid = make_user(session_factory)
    monkeypatch.setattr(quick_cli.questionary, "text", answers(["Rent", "900", "2024-12-01"]))
    monkeypatch.setattr(quick_cli.questionary, "select", answers(["expense", "weekly"]))

    quick_cli.enter_transaction(uid)

    with session_factory() as session:
        rows = session.query(Transaction).order_by(Transaction.date).all()
        assert [r.date.day for r in rows] == [1, 8, 15, 22, 29]
        assert rows[0].recurring_frequency == "weekly"


def test_enter_invalid_amount_is_not_saved(monkeypatch, session_factory, capsys):
    uid = make_user(session_factory)
    monkeypatch.setattr(quick_cli.questionary, "text", answers(["Rent", "abc", "2024-12-01"]))
    monkeypatch.setattr(quick_cli.questionary, "select", answers(["expense", "no"]))

    quick_cli.enter_transaction(uid)

    assert "Not saved: Invalid amount 'abc'" in capsys.readouterr().out
    with session_factory() as session:
        assert session.query(Transaction).count() == 0


def test_show_transactions_prints_totals(monkeypatch, session_factory, capsys):
    uid = make_user(session_factory)
    with session_factory() as session:
        services.create_transaction(session, uid, "Pay", 50, "2024-01-01", "income")
        services.create_transaction(session, uid, "Snack", 5, "2024-01-02", "expense")
    monkeypatch.setattr(quick_cli.questionary, "press_any_key_to_continue", answers([None]))

    quick_cli.show_transactions(uid)

    out = capsys.readouterr().out
    assert "2024-01-01 - Pay: +50.00" in out
    assert "2024-01-02 - Snack: -5.00" in out
    assert "Net $45.00" in out


def test_show_available(session_factory, capsys):
    uid = make_user(session_factory)
    with session_factory() as session:
        services.create_transaction(session, uid, "Pay", 500, "2024-01-01", "income")
        services.create_transaction(session, uid, "Rent", 300, "2024-01-10", "expense")
        services.create_transaction(session, uid, "Pay", 500, "2024-01-15", "income")

    assert quick_cli.show_available(uid, today=date(2024, 1, 5)) == 200.0
    assert "Available to spend on 2024-01-05: $200.00" in capsys.readouterr().out
