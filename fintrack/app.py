"""
Application wiring for FinTrack.

Builds the repository, services, audit log and scheduler with explicit
dependencies. Nothing here is a process-wide singleton; callers own the
``FinTrackApp`` they create.
"""

import logging
from pathlib import Path
from typing import Optional

from fintrack.db import LedgerRepository
from fintrack.scheduler import RecurringScheduler, setup_scheduler
from fintrack.services import (
    AccountService,
    AuditLogger,
    BudgetService,
    CategoryService,
    LedgerService,
    RecurringMaterializer,
    RecurringService,
)

logger = logging.getLogger(__name__)


class FinTrackApp:
    """Container for the ledger core's collaborators."""

    def __init__(self, repository: LedgerRepository, audit: Optional[AuditLogger] = None):
        try:
            self.repository = repository
            logger.info(f"Repository initialized: {self.repository.db_path}")

            self.audit = audit or AuditLogger(self.repository.logs.insert)
            logger.info("Audit log initialized")

            self.ledger = LedgerService(self.repository, self.audit)
            self.accounts = AccountService(self.repository, self.audit)
            self.budgets = BudgetService(self.repository, self.audit)
            self.categories = CategoryService(self.repository, self.audit)
            self.recurring = RecurringService(self.repository)
            logger.info("Ledger services initialized")

            self.materializer = RecurringMaterializer(self.repository, self.ledger)
            self.scheduler: RecurringScheduler = setup_scheduler(self.materializer)
            logger.info("Recurring scheduler initialized")
        except Exception as e:
            logger.error(f"Failed to initialize FinTrack services: {e}", exc_info=True)
            raise

    def start(self):
        """Start background workers. Must be called from a running event loop."""
        self.audit.start()
        self.scheduler.start()

    def close(self):
        """Stop background workers, flushing pending audit entries."""
        self.scheduler.stop()
        self.audit.close()


def create_app(db_path: Optional[Path] = None) -> FinTrackApp:
    """
    Create a FinTrackApp over the given database.

    Args:
        db_path: SQLite file; defaults to the configured DEFAULT_DB_PATH
    """
    return FinTrackApp(LedgerRepository(db_path))
