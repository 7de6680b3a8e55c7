"""
Budget repository module.

A budget's ``amount`` is the remaining allowance. It goes down as
transactions are attributed to the budget and back up when they are moved
away or deleted.
"""

import logging
import sqlite3
from decimal import Decimal
from typing import Optional

from fintrack.config import local_now

from .base import BaseRepository
from .models import Budget

logger = logging.getLogger(__name__)


class BudgetRepository(BaseRepository):
    """Repository for managing budgets in SQLite."""

    def __init__(self, db_path=None, init_schema: bool = False):
        super().__init__(db_path, init_schema=init_schema)

    def create(
        self,
        user_id: str,
        name: str,
        amount: Decimal,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Budget:
        """
        Create a budget.

        Args:
            user_id: Owner of the budget
            name: Display name
            amount: Initial allowance
            conn: Connection of an enclosing unit of work

        Returns:
            The created Budget
        """
        now = local_now()

        try:
            with self._joined(conn) as c:
                cursor = c.execute(
                    """
                    INSERT INTO budgets (user_id, name, amount, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, name, amount, now.isoformat(), now.isoformat()),
                )
                logger.info(f"Created budget '{name}' for user {user_id}")
                return Budget(
                    id=cursor.lastrowid,
                    user_id=user_id,
                    name=name,
                    amount=amount,
                    created_at=now,
                    updated_at=now,
                )
        except Exception as e:
            logger.error(f"Error creating budget for user {user_id}: {e}", exc_info=True)
            raise

    def get_by_id(
        self, budget_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Budget]:
        """Get a budget by ID, or None if it does not exist."""
        with self._joined(conn) as c:
            row = c.execute("SELECT * FROM budgets WHERE id = ?", (budget_id,)).fetchone()
            return Budget.from_row(row) if row else None

    def get_by_user(self, user_id: str) -> list[Budget]:
        """Get all budgets owned by a user."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM budgets WHERE user_id = ? ORDER BY id", (user_id,)
            )
            return [Budget.from_row(row) for row in cursor.fetchall()]

    def update(
        self, budget: Budget, conn: Optional[sqlite3.Connection] = None
    ) -> Budget:
        """Persist a budget's name and allowance."""
        budget.updated_at = local_now()
        with self._joined(conn) as c:
            c.execute(
                "UPDATE budgets SET name = ?, amount = ?, updated_at = ? WHERE id = ?",
                (budget.name, budget.amount, budget.updated_at.isoformat(), budget.id),
            )
        logger.info(f"Updated budget {budget.id}")
        return budget

    def set_amount(
        self, budget_id: int, amount: Decimal, conn: sqlite3.Connection
    ) -> None:
        """Write a reconciled remaining amount. Only the ledger service calls this."""
        conn.execute(
            "UPDATE budgets SET amount = ?, updated_at = ? WHERE id = ?",
            (amount, local_now().isoformat(), budget_id),
        )
        logger.debug(f"Budget {budget_id} amount set to {amount}")

    def delete(self, budget_id: int) -> bool:
        """
        Delete a budget. Transactions and recurring templates attributed to it
        are detached.

        Returns:
            True if deleted, False if not found
        """
        try:
            with self._get_connection() as conn:
                # Templates carry no foreign keys
                conn.execute(
                    "UPDATE recurring_transactions SET budget_id = NULL WHERE budget_id = ?",
                    (budget_id,),
                )
                cursor = conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
                deleted = cursor.rowcount > 0
                if deleted:
                    logger.info(f"Deleted budget {budget_id}")
                else:
                    logger.debug(f"No budget {budget_id} to delete")
                return deleted
        except Exception as e:
            logger.error(f"Error deleting budget {budget_id}: {e}", exc_info=True)
            raise
