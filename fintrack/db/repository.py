"""
Main repository facade for the FinTrack ledger store.

Composes the per-entity repositories over a single SQLite file and exposes
the unit of work they share.
"""

import logging
from pathlib import Path
from typing import Optional

from .accounts import AccountRepository
from .base import BaseRepository
from .budget import BudgetRepository
from .categories import CategoryRepository
from .logs import LogRepository
from .recurring import RecurringTransactionRepository
from .transactions import TransactionRepository

logger = logging.getLogger(__name__)


class LedgerRepository(BaseRepository):
    """
    Facade over all ledger repositories.

    Usage::

        repo = LedgerRepository(Path("data/fintrack.db"))
        with repo.unit_of_work() as conn:
            account = repo.accounts.get_by_id(1, conn=conn)
            repo.accounts.set_balance(account.id, account.balance + 10, conn)
    """

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize the repository and create the schema if needed.

        Args:
            db_path: Path to the SQLite database file. Defaults to data/fintrack.db
        """
        super().__init__(db_path, init_schema=True)

        self.accounts = AccountRepository(self.db_path)
        self.budgets = BudgetRepository(self.db_path)
        self.categories = CategoryRepository(self.db_path)
        self.transactions = TransactionRepository(self.db_path)
        self.recurring = RecurringTransactionRepository(self.db_path)
        self.logs = LogRepository(self.db_path)

        logger.info(f"LedgerRepository initialized with db_path: {self.db_path}")
