"""CashCast: income/expense tracking with an available-to-spend forecast."""

__version__ = "0.1.0"
