from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Date,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from .database import Base

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)


class User(Base):
    """Owner of a set of transactions."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    transactions = relationship(
        "Transaction",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Transaction(Base):
    """A dated income or expense; ``amount`` is always non-negative."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    description = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(Date, nullable=False)
    type = Column(String(7), nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_frequency = Column(String)
    recurring_group_id = Column(String, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="transactions")

    __table_args__ = (
        Index("ix_transactions_user_id_date", "user_id", "date"),
    )

    @property
    def is_income(self) -> bool:
        return self.type == INCOME

    @property
    def signed_amount(self) -> float:
        amt = self.amount or 0.0
        return amt if self.is_income else -amt

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id} {self.date} {self.type} "
            f"{self.description!r} {self.amount}>"
        )
