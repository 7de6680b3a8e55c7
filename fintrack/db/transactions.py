"""
Transactions repository module for transaction rows.

Handles all transaction-related database operations including:
- Inserting, updating and deleting rows inside a ledger unit of work
- Filtered, paginated listing
- Income/expense aggregates

Balance and budget side effects are not handled here; see
``fintrack.services.ledger``.
"""

import logging
import sqlite3
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from fintrack.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from fintrack.models import TransactionType

from .base import BaseRepository
from .models import Transaction

logger = logging.getLogger(__name__)

# Local calendar day of the stored ISO timestamp, without UTC conversion
_TRANSACTION_DAY = "substr(transaction_date, 1, 10)"


class TransactionRepository(BaseRepository):
    """Repository for transaction rows."""

    def __init__(self, db_path=None, init_schema: bool = False):
        super().__init__(db_path, init_schema=init_schema)

    # =========================================================================
    # Row Operations
    # =========================================================================

    def insert(self, txn: Transaction, conn: sqlite3.Connection) -> Transaction:
        """Insert a transaction row and set its ID."""
        cursor = conn.execute(
            """
            INSERT INTO transactions
            (user_id, account_id, category_id, budget_id, description, amount,
             transaction_type, transaction_date, note, recurring_transaction_id,
             posting_date, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                txn.user_id,
                txn.account_id,
                txn.category_id,
                txn.budget_id,
                txn.description,
                txn.amount,
                txn.transaction_type.value,
                txn.transaction_date.isoformat(),
                txn.note,
                txn.recurring_transaction_id,
                txn.posting_date.isoformat() if txn.posting_date else None,
                txn.created_at.isoformat(),
                txn.updated_at.isoformat(),
            ),
        )
        txn.id = cursor.lastrowid
        return txn

    def get_by_id(
        self, transaction_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Transaction]:
        """Get a transaction by ID, or None if it does not exist."""
        with self._joined(conn) as c:
            row = c.execute(
                "SELECT * FROM transactions WHERE id = ?", (transaction_id,)
            ).fetchone()
            return Transaction.from_row(row) if row else None

    def update(self, txn: Transaction, conn: sqlite3.Connection) -> None:
        """Persist every mutable column of a transaction row."""
        conn.execute(
            """
            UPDATE transactions
            SET account_id = ?, category_id = ?, budget_id = ?, description = ?,
                amount = ?, transaction_date = ?, note = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                txn.account_id,
                txn.category_id,
                txn.budget_id,
                txn.description,
                txn.amount,
                txn.transaction_date.isoformat(),
                txn.note,
                txn.updated_at.isoformat(),
                txn.id,
            ),
        )

    def delete(self, transaction_id: int, conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))

    def find_materialized(
        self,
        recurring_transaction_id: int,
        posting_date: date,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Transaction]:
        """Find the transaction a template produced for a given day, if any."""
        with self._joined(conn) as c:
            row = c.execute(
                """
                SELECT * FROM transactions
                WHERE recurring_transaction_id = ? AND posting_date = ?
                """,
                (recurring_transaction_id, posting_date.isoformat()),
            ).fetchone()
            return Transaction.from_row(row) if row else None

    # =========================================================================
    # Queries
    # =========================================================================

    def _filter_clause(
        self,
        user_id: str,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
        account_id: Optional[int] = None,
        budget_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> tuple[str, list[Any]]:
        clauses = ["user_id = ?"]
        params: list[Any] = [user_id]

        if description:
            clauses.append("description LIKE ?")
            params.append(f"%{description}%")
        if category_id is not None:
            clauses.append("category_id = ?")
            params.append(category_id)
        if account_id is not None:
            clauses.append("account_id = ?")
            params.append(account_id)
        if budget_id is not None:
            clauses.append("budget_id = ?")
            params.append(budget_id)
        if start_date is not None:
            clauses.append(f"{_TRANSACTION_DAY} >= ?")
            params.append(start_date.isoformat())
        if end_date is not None:
            clauses.append(f"{_TRANSACTION_DAY} <= ?")
            params.append(end_date.isoformat())

        return " AND ".join(clauses), params

    def get_user_transactions(
        self,
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        description: Optional[str] = None,
        category_id: Optional[int] = None,
        account_id: Optional[int] = None,
        budget_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Transaction]:
        """
        Get a page of a user's transactions, newest first.

        Args:
            user_id: Owner of the transactions
            page: 1-based page number
            limit: Page size, capped at MAX_PAGE_SIZE
            description: Substring to match in the description
            category_id: Only this category
            account_id: Only this account
            budget_id: Only this budget
            start_date: Inclusive lower bound on the transaction day
            end_date: Inclusive upper bound on the transaction day

        Returns:
            List of Transaction objects
        """
        limit = min(limit, MAX_PAGE_SIZE)
        offset = (page - 1) * limit
        where, params = self._filter_clause(
            user_id,
            description=description,
            category_id=category_id,
            account_id=account_id,
            budget_id=budget_id,
            start_date=start_date,
            end_date=end_date,
        )

        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    f"""
                    SELECT * FROM transactions
                    WHERE {where}
                    ORDER BY transaction_date DESC, id DESC
                    LIMIT ? OFFSET ?
                    """,
                    (*params, limit, offset),
                )
                transactions = [Transaction.from_row(row) for row in cursor.fetchall()]
                logger.debug(
                    f"Retrieved {len(transactions)} transactions for user {user_id}"
                )
                return transactions
        except Exception as e:
            logger.error(
                f"Error getting transactions for user {user_id}: {e}", exc_info=True
            )
            raise

    def get_aggregate(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict[str, Decimal]:
        """
        Total income, total expenses and net income over a date range.

        Returns:
            Dict with ``total_income``, ``total_expenses`` and ``net_income``
        """
        where, params = self._filter_clause(
            user_id, start_date=start_date, end_date=end_date
        )
        totals = {TransactionType.INCOME: Decimal("0"), TransactionType.EXPENSE: Decimal("0")}

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"SELECT transaction_type, amount FROM transactions WHERE {where}",
                params,
            )
            for row in cursor.fetchall():
                totals[TransactionType(row["transaction_type"])] += Decimal(row["amount"])

        income = totals[TransactionType.INCOME]
        expenses = totals[TransactionType.EXPENSE]
        return {
            "total_income": income,
            "total_expenses": expenses,
            "net_income": income - expenses,
        }

    def get_spending_by_category(self, user_id: str) -> list[dict[str, Any]]:
        """Expense totals per category name, largest first."""
        spending: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))

        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT c.name AS category, t.amount AS amount
                FROM transactions t
                JOIN categories c ON c.id = t.category_id
                WHERE t.user_id = ? AND t.transaction_type = 'expense'
                """,
                (user_id,),
            )
            for row in cursor.fetchall():
                spending[row["category"]] += Decimal(row["amount"])

        return [
            {"category": name, "amount": amount}
            for name, amount in sorted(spending.items(), key=lambda item: -item[1])
        ]
