"""
Accounts repository module.

Handles account rows. The ``balance`` column is only written through
``set_balance``, which the ledger service calls inside its unit of work.
"""

import logging
import sqlite3
from decimal import Decimal
from typing import Optional

from fintrack.config import local_now
from fintrack.models import AccountType

from .base import BaseRepository
from .models import Account

logger = logging.getLogger(__name__)


class AccountRepository(BaseRepository):
    """Repository for managing accounts."""

    def __init__(self, db_path=None, init_schema: bool = False):
        """
        Initialize the account repository.

        Args:
            db_path: Path to the SQLite database file
            init_schema: Whether to initialize schema (usually False,
                        as main repository handles this)
        """
        super().__init__(db_path, init_schema=init_schema)

    def create(
        self,
        user_id: str,
        name: str,
        account_type: AccountType,
        balance: Decimal = Decimal("0"),
        conn: Optional[sqlite3.Connection] = None,
    ) -> Account:
        """
        Create a new account with an opening balance.

        Args:
            user_id: Owner of the account
            name: Display name
            account_type: Kind of account
            balance: Opening balance
            conn: Connection of an enclosing unit of work

        Returns:
            The created Account
        """
        now = local_now()

        try:
            with self._joined(conn) as c:
                cursor = c.execute(
                    """
                    INSERT INTO accounts
                    (user_id, name, account_type, balance, is_active,
                     created_at, updated_at)
                    VALUES (?, ?, ?, ?, 1, ?, ?)
                    """,
                    (
                        user_id,
                        name,
                        account_type.value,
                        balance,
                        now.isoformat(),
                        now.isoformat(),
                    ),
                )
                logger.info(
                    f"Created account '{name}' (type: {account_type.value}) "
                    f"for user {user_id}"
                )
                return Account(
                    id=cursor.lastrowid,
                    user_id=user_id,
                    name=name,
                    account_type=account_type,
                    balance=balance,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
        except Exception as e:
            logger.error(f"Error creating account: {e}", exc_info=True)
            raise

    def get_by_id(
        self, account_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Optional[Account]:
        """Get an account by ID, or None if it does not exist."""
        with self._joined(conn) as c:
            row = c.execute(
                "SELECT * FROM accounts WHERE id = ?", (account_id,)
            ).fetchone()
            return Account.from_row(row) if row else None

    def get_by_user(self, user_id: str) -> list[Account]:
        """Get all accounts owned by a user, oldest first."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM accounts WHERE user_id = ? ORDER BY id",
                (user_id,),
            )
            accounts = [Account.from_row(row) for row in cursor.fetchall()]
            logger.debug(f"Retrieved {len(accounts)} accounts for user {user_id}")
            return accounts

    def update(
        self, account: Account, conn: Optional[sqlite3.Connection] = None
    ) -> Account:
        """
        Persist an account's descriptive fields.

        The balance is deliberately not part of this statement.
        """
        account.updated_at = local_now()
        with self._joined(conn) as c:
            c.execute(
                """
                UPDATE accounts
                SET name = ?, account_type = ?, is_active = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    account.name,
                    account.account_type.value,
                    1 if account.is_active else 0,
                    account.updated_at.isoformat(),
                    account.id,
                ),
            )
        logger.info(f"Updated account {account.id}")
        return account

    def set_balance(
        self, account_id: int, balance: Decimal, conn: sqlite3.Connection
    ) -> None:
        """Write a reconciled balance. Only the ledger service calls this."""
        conn.execute(
            "UPDATE accounts SET balance = ?, updated_at = ? WHERE id = ?",
            (balance, local_now().isoformat(), account_id),
        )
        logger.debug(f"Account {account_id} balance set to {balance}")

    def delete(self, account_id: int) -> bool:
        """
        Delete an account.

        Returns:
            True if deleted, False if not found

        Raises:
            sqlite3.IntegrityError: If transactions still reference the account
        """
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted account {account_id}")
            return deleted

    def get_total_balance(self, user_id: str) -> Decimal:
        """Sum of balances over the user's active accounts."""
        total = sum(
            (account.balance for account in self.get_by_user(user_id) if account.is_active),
            Decimal("0"),
        )
        logger.debug(f"Total balance for user {user_id}: {total}")
        return total
