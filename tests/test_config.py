import logging

from tests import helpers  # ensures project root on path
from cashcast import config, database


def test_int_env_reads_integer(monkeypatch):
    monkeypatch.setenv("CASHCAST_RECURRING_EXTRA_YEARS", "2")
    assert config._int_env("CASHCAST_RECURRING_EXTRA_YEARS", 0) == 2


def test_int_env_falls_back_on_garbage(monkeypatch, caplog):
    monkeypatch.setenv("CASHCAST_RECURRING_EXTRA_YEARS", "abc")
    with caplog.at_level(logging.WARNING, logger="cashcast.config"):
        assert config._int_env("CASHCAST_RECURRING_EXTRA_YEARS", 0) == 0
    assert "CASHCAST_RECURRING_EXTRA_YEARS" in caplog.text


def test_int_env_blank_uses_default(monkeypatch):
    monkeypatch.setenv("CASHCAST_RECURRING_EXTRA_YEARS", "  ")
    assert config._int_env("CASHCAST_RECURRING_EXTRA_YEARS", 1) == 1
    monkeypatch.delenv("CASHCAST_RECURRING_EXTRA_YEARS")
    assert config._int_env("CASHCAST_RECURRING_EXTRA_YEARS", 1) == 1


def test_database_path_comes_from_config():
    assert database.DB_FILE == config.DB_FILE
    assert str(config.DB_FILE) in str(database.engine.url)
