from .account import AccountType
from .transaction import RecurringFrequency, TransactionType

__all__ = [
    "AccountType",
    "RecurringFrequency",
    "TransactionType",
]
