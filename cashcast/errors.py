"""Exceptions raised by the service layer."""


class CashCastError(Exception):
    """Base class for errors the front ends report to the user."""


class ValidationError(CashCastError, ValueError):
    """Input rejected before touching the database."""


class TransactionNotFound(CashCastError, LookupError):
    """No transaction with that id belongs to the user."""

    def __init__(self, transaction_id):
        super().__init__(f"Transaction {transaction_id} not found")
        self.transaction_id = transaction_id
