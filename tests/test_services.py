from datetime import date

import pytest

from tests.helpers import get_temp_session, make_user
from cashcast import config, services
from cashcast.errors import TransactionNotFound, ValidationError
from cashcast.models import Transaction


@pytest.fixture
def db():
    Session, path = get_temp_session()
    session = Session()
    try:
        yield session, make_user(Session, "alice"), make_user(Session, "bob")
    finally:
        session.close()
        path.unlink()


def test_get_or_create_user_is_idempotent(db):
    session, alice, _ = db
    assert services.get_or_create_user(session, "  alice ").id == alice
    carol = services.get_or_create_user(session, "carol")
    assert services.find_user(session, "carol").id == carol.id
    with pytest.raises(ValidationError):
        services.get_or_create_user(session, "   ")


def test_create_strips_description_and_parses_fields(db):
    session, alice, _ = db
    t = services.create_transaction(session, alice, "  Groceries ", "42.5", "2024-05-03", "Expense")
    assert t.description == "Groceries"
    assert t.amount == 42.5
    assert t.date == date(2024, 5, 3)
    assert t.type == "expense"
    assert t.is_recurring is False
    assert t.recurring_group_id is None
    assert t.signed_amount == -42.5


@pytest.mark.parametrize(
    "description, amount, when, kind",
    [
        ("", 10, "2024-01-01", "expense"),
        ("Rent", None, "2024-01-01", "expense"),
        ("Rent", "ten", "2024-01-01", "expense"),
        ("Rent", -5, "2024-01-01", "expense"),
        ("Rent", 10, "01/02/2024", "expense"),
        ("Rent", 10, "2024-01-01", "transfer"),
        ("Rent", 10, None, "expense"),
    ],
)
def test_create_rejects_invalid_input(db, description, amount, when, kind):
    session, alice, _ = db
    with pytest.raises(ValidationError):
        services.create_transaction(session, alice, description, amount, when, kind)
    assert session.query(Transaction).count() == 0


def test_recurring_monthly_materializes_rest_of_year(db, monkeypatch):
    session, alice, _ = db
    monkeypatch.setattr(config, "RECURRING_EXTRA_YEARS", 0)
    first = services.create_transaction(
        session, alice, "Rent", 900, date(2024, 10, 31), "expense",
        is_recurring=True, recurring_frequency="Monthly",
    )
    rows = services.list_transactions(session, alice)
    assert [r.date for r in rows] == [date(2024, 10, 31), date(2024, 11, 30), date(2024, 12, 31)]
    assert {r.recurring_group_id for r in rows} == {first.recurring_group_id}
    assert all(r.is_recurring and r.recurring_frequency == "monthly" for r in rows)
    assert rows[0].id == first.id


def test_recurring_extra_years_extends_horizon(db, monkeypatch):
    session, alice, _ = db
    monkeypatch.setattr(config, "RECURRING_EXTRA_YEARS", 1)
    services.create_transaction(
        session, alice, "Insurance", 300, date(2024, 6, 1), "expense",
        is_recurring=True, recurring_frequency="semi annually",
    )
    dates = [r.date for r in services.list_transactions(session, alice)]
    assert dates == [date(2024, 6, 1), date(2024, 12, 1), date(2025, 6, 1), date(2025, 12, 1)]


def test_recurring_requires_known_frequency(db):
    session, alice, _ = db
    with pytest.raises(ValidationError):
        services.create_transaction(
            session, alice, "Rent", 900, date(2024, 1, 1), "expense",
            is_recurring=True, recurring_frequency="hourly",
        )


def test_list_is_scoped_sorted_and_filtered_by_month(db):
    session, alice, bob = db
    services.create_transaction(session, alice, "B", 1, "2024-02-10", "expense")
    services.create_transaction(session, alice, "A", 1, "2024-01-31", "income")
    services.create_transaction(session, alice, "C", 1, "2024-02-01", "expense")
    services.create_transaction(session, bob, "Bob's", 1, "2024-02-05", "expense")

    assert [t.description for t in services.list_transactions(session, alice)] == ["A", "C", "B"]
    feb = services.list_transactions(session, alice, 2024, 2)
    assert [t.description for t in feb] == ["C", "B"]
    assert [t.description for t in services.list_transactions(session, bob)] == ["Bob's"]
    dec = services.list_transactions(session, alice, 2023, 12)
    assert dec == []


def test_transactions_in_month_filters_memory_list(db):
    session, alice, _ = db
    services.create_transaction(session, alice, "late", 1, "2024-03-31", "expense")
    services.create_transaction(session, alice, "early", 1, "2024-03-01", "expense")
    services.create_transaction(session, alice, "april", 1, "2024-04-01", "expense")
    rows = services.transactions_in_month(services.list_transactions(session, alice), 2024, 3)
    assert [t.description for t in rows] == ["early", "late"]


def test_update_changes_one_row_only(db):
    session, alice, _ = db
    first = services.create_transaction(
        session, alice, "Gym", 40, date(2024, 11, 1), "expense",
        is_recurring=True, recurring_frequency="monthly",
    )
    updated = services.update_transaction(session, alice, first.id, "Gym (promo)", 20, "2024-11-02", "expense")
    assert updated.description == "Gym (promo)"
    assert updated.is_recurring is True
    rows = services.list_transactions(session, alice)
    assert [(r.description, r.amount) for r in rows] == [("Gym (promo)", 20.0), ("Gym", 40.0)]


def test_update_requires_all_fields(db):
    session, alice, _ = db
    t = services.create_transaction(session, alice, "Pay", 10, "2024-01-01", "income")
    with pytest.raises(ValidationError):
        services.update_transaction(session, alice, t.id, "Pay", 10, None, "income")


def test_other_users_rows_are_not_found(db):
    session, alice, bob = db
    t = services.create_transaction(session, alice, "Mine", 10, "2024-01-01", "income")
    with pytest.raises(TransactionNotFound):
        services.update_transaction(session, bob, t.id, "Stolen", 10, "2024-01-01", "income")
    with pytest.raises(TransactionNotFound):
        services.delete_transaction(session, bob, t.id)
    assert services.get_transaction(session, alice, t.id).description == "Mine"


def test_delete_single_instance_of_series(db):
    session, alice, _ = db
    first = services.create_transaction(
        session, alice, "Gym", 40, date(2024, 10, 1), "expense",
        is_recurring=True, recurring_frequency="monthly",
    )
    assert services.delete_transaction(session, alice, first.id) == 1
    assert [r.date for r in services.list_transactions(session, alice)] == [
        date(2024, 11, 1),
        date(2024, 12, 1),
    ]


def test_delete_whole_series(db):
    session, alice, _ = db
    services.create_transaction(session, alice, "Coffee", 3, "2024-12-01", "expense")
    first = services.create_transaction(
        session, alice, "Gym", 40, date(2024, 10, 1), "expense",
        is_recurring=True, recurring_frequency="monthly",
    )
    first_id = first.id
    last = services.list_transactions(session, alice, 2024, 12)
    gym_dec = [t for t in last if t.description == "Gym"][0]
    assert services.delete_transaction(session, alice, gym_dec.id, delete_all=True) == 3
    assert [t.description for t in services.list_transactions(session, alice)] == ["Coffee"]
    with pytest.raises(TransactionNotFound):
        services.get_transaction(session, alice, first_id)


def test_delete_all_flag_on_plain_row_deletes_one(db):
    session, alice, _ = db
    a = services.create_transaction(session, alice, "A", 1, "2024-01-01", "expense")
    services.create_transaction(session, alice, "B", 1, "2024-01-02", "expense")
    assert services.delete_transaction(session, alice, a.id, delete_all=True) == 1
    assert len(services.list_transactions(session, alice)) == 1


def test_delete_all_transactions_only_touches_user(db):
    session, alice, bob = db
    services.create_transaction(session, alice, "A", 1, "2024-01-01", "expense")
    services.create_transaction(session, alice, "B", 1, "2024-01-02", "expense")
    services.create_transaction(session, bob, "C", 1, "2024-01-02", "expense")
    assert services.delete_all_transactions(session, alice) == 2
    assert services.list_transactions(session, alice) == []
    assert len(services.list_transactions(session, bob)) == 1
