"""
FinTrack - Personal finance ledger core

Keeps account balances and budget allowances consistent as transactions are
created, amended and deleted, and materializes recurring transactions once a
day.
"""

from .errors import (
    DuplicateMaterializationError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from .models import AccountType, RecurringFrequency, TransactionType

__version__ = "0.1.0"

__all__ = [
    "AccountType",
    "DuplicateMaterializationError",
    "LedgerError",
    "NotFoundError",
    "RecurringFrequency",
    "TransactionType",
    "ValidationError",
]
