import os
import sys
import tempfile
from datetime import date
from pathlib import Path
from types import SimpleNamespace

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Ensure the project root is on the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from cashcast import database
from cashcast.models import User


def get_temp_session():
    db_fd, db_path = tempfile.mkstemp()
    os.close(db_fd)
    engine = create_engine(f"sqlite:///{db_path}", future=True)
    TestingSession = sessionmaker(bind=engine, autoflush=False)
    database.Base.metadata.create_all(engine)
    return TestingSession, Path(db_path)


def make_user(Session, username="alice") -> int:
    with Session() as session:
        user = User(username=username)
        session.add(user)
        session.commit()
        return user.id


def txn(day, amount, type="expense", description="t", id=0):
    """Lightweight stand-in for a Transaction row."""
    if isinstance(day, str):
        day = date.fromisoformat(day)
    return SimpleNamespace(
        id=id, date=day, amount=amount, type=type, description=description
    )


def make_prompt(responses):
    iterator = iter(responses)

    def _prompt(*args, **kwargs):
        return next(iterator)

    return _prompt
