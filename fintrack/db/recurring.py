"""Recurring transaction template repository."""

import logging
import sqlite3
from typing import Optional

from .base import BaseRepository
from .models import RecurringTransaction

logger = logging.getLogger(__name__)


class RecurringTransactionRepository(BaseRepository):
    """
    Repository for recurring-transaction templates.

    Templates are plain rows with no balance side effects of their own.
    """

    def __init__(self, db_path=None, init_schema: bool = False):
        super().__init__(db_path, init_schema=init_schema)

    def create(self, template: RecurringTransaction) -> RecurringTransaction:
        """Insert a template and set its ID."""
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO recurring_transactions
                    (user_id, account_id, category_id, budget_id, description,
                     amount, transaction_type, frequency, recurring_date, note,
                     created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        template.user_id,
                        template.account_id,
                        template.category_id,
                        template.budget_id,
                        template.description,
                        template.amount,
                        template.transaction_type.value,
                        template.frequency.value,
                        template.recurring_date,
                        template.note,
                        template.created_at.isoformat(),
                        template.updated_at.isoformat(),
                    ),
                )
                template.id = cursor.lastrowid
                logger.info(
                    f"Created {template.frequency.value} recurring transaction "
                    f"{template.id} for user {template.user_id}"
                )
                return template
        except Exception as e:
            logger.error(f"Error creating recurring transaction: {e}", exc_info=True)
            raise

    def get_by_id(
        self, recurring_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[RecurringTransaction]:
        with self._joined(conn) as c:
            row = c.execute(
                "SELECT * FROM recurring_transactions WHERE id = ?", (recurring_id,)
            ).fetchone()
            return RecurringTransaction.from_row(row) if row else None

    def get_by_user(self, user_id: str) -> list[RecurringTransaction]:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM recurring_transactions WHERE user_id = ? ORDER BY id",
                (user_id,),
            )
            return [RecurringTransaction.from_row(row) for row in cursor.fetchall()]

    def get_all(self) -> list[RecurringTransaction]:
        """Every template of every user, for the daily sweep."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT * FROM recurring_transactions ORDER BY id")
            templates = [RecurringTransaction.from_row(row) for row in cursor.fetchall()]
            logger.debug(f"Loaded {len(templates)} recurring transactions")
            return templates

    def update(self, template: RecurringTransaction) -> RecurringTransaction:
        with self._get_connection() as conn:
            conn.execute(
                """
                UPDATE recurring_transactions
                SET account_id = ?, category_id = ?, budget_id = ?, description = ?,
                    amount = ?, transaction_type = ?, frequency = ?,
                    recurring_date = ?, note = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    template.account_id,
                    template.category_id,
                    template.budget_id,
                    template.description,
                    template.amount,
                    template.transaction_type.value,
                    template.frequency.value,
                    template.recurring_date,
                    template.note,
                    template.updated_at.isoformat(),
                    template.id,
                ),
            )
        logger.info(f"Updated recurring transaction {template.id}")
        return template

    def delete(self, recurring_id: int) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "DELETE FROM recurring_transactions WHERE id = ?", (recurring_id,)
            )
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted recurring transaction {recurring_id}")
            return deleted
