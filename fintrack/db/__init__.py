"""
Database module for the FinTrack ledger.

This module provides the SQLite persistence layer for accounts, budgets,
categories, transactions, recurring templates and the activity log.

Structure:
- base.py: Base repository with connection management, unit of work and schema
- models.py: Row models (Account, Budget, Category, Transaction, ...)
- accounts.py: Account rows
- budget.py: Budget rows
- categories.py: Category rows
- transactions.py: Transaction rows, filtered listing and aggregates
- recurring.py: Recurring transaction templates
- logs.py: Activity log rows
- repository.py: Main facade that composes all sub-repositories
"""

from .accounts import AccountRepository
from .base import BaseRepository
from .budget import BudgetRepository
from .categories import CategoryRepository
from .logs import LogRepository
from .models import (
    Account,
    Budget,
    Category,
    LogEntry,
    RecurringTransaction,
    Transaction,
)
from .recurring import RecurringTransactionRepository
from .repository import LedgerRepository
from .transactions import TransactionRepository

__all__ = [
    # Base
    "BaseRepository",
    # Models
    "Account",
    "Budget",
    "Category",
    "LogEntry",
    "RecurringTransaction",
    "Transaction",
    # Repositories
    "AccountRepository",
    "BudgetRepository",
    "CategoryRepository",
    "LedgerRepository",
    "LogRepository",
    "RecurringTransactionRepository",
    "TransactionRepository",
]
