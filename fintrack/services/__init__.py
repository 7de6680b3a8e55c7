"""
Services for the FinTrack ledger core.
"""

from .accounts import AccountService, BudgetService, CategoryService
from .audit import AuditLogger
from .ledger import LedgerService
from .recurring import MaterializationReport, RecurringMaterializer, RecurringService

__all__ = [
    "AccountService",
    "AuditLogger",
    "BudgetService",
    "CategoryService",
    "LedgerService",
    "MaterializationReport",
    "RecurringMaterializer",
    "RecurringService",
]
