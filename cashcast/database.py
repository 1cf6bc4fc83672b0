from __future__ import annotations

import logging

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from . import config

logger = logging.getLogger(__name__)

DB_FILE = config.DB_FILE

engine = create_engine(f"sqlite:///{DB_FILE}", echo=False, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Turn on ``ON DELETE CASCADE`` handling for every SQLite connection."""
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def ensure_default_user(session, username: str | None = None) -> "User":
    """Ensure the configured default user exists and return it."""
    from .models import User

    name = username or config.DEFAULT_USER
    user = session.query(User).filter_by(username=name).first()
    if user:
        return user

    user = User(username=name)
    session.add(user)
    session.commit()
    logger.info("Created default user %r", name)
    return user


def init_db() -> None:
    """Create database tables if they do not exist."""
    from . import models  # noqa: F401

    insp = inspect(engine)
    required = {"users", "transactions"}
    existing = set(insp.get_table_names())
    if not required.issubset(existing):
        Base.metadata.create_all(engine)
        logger.info("Created tables in %s", DB_FILE)

    SessionLocal.configure(bind=engine)
    with SessionLocal() as session:
        ensure_default_user(session)
