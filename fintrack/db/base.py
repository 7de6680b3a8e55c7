"""
Base repository module with connection management and schema initialization.

Provides the foundation for all database operations in the FinTrack ledger,
including the unit of work used to commit several row mutations atomically.
"""

import logging
import sqlite3
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Iterator, Optional

from fintrack.config import DB_TIMEOUT, DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

# Money is stored as exact decimal text
sqlite3.register_adapter(Decimal, str)


class BaseRepository:
    """
    Base repository class with SQLite connection management.

    Row-level methods of the sub-repositories accept an optional ``conn``.
    When given, the statement joins the caller's unit of work and nothing is
    committed; otherwise a short-lived connection is opened and committed.
    """

    def __init__(self, db_path: Optional[Path] = None, init_schema: bool = True):
        """
        Initialize the base repository.

        Args:
            db_path: Path to the SQLite database file. Defaults to data/fintrack.db
            init_schema: Whether to initialize the schema on startup
        """
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._ensure_db_directory()
        if init_schema:
            self._init_schema()

    def _ensure_db_directory(self):
        """Ensure the database directory exists."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Database directory ensured: {self.db_path.parent}")
        except Exception as e:
            logger.error(f"Failed to create database directory: {e}", exc_info=True)
            raise

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=DB_TIMEOUT, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections with proper error handling."""
        with self.unit_of_work(immediate=False) as conn:
            yield conn

    @contextmanager
    def unit_of_work(self, immediate: bool = True) -> Iterator[sqlite3.Connection]:
        """
        Run a block of statements as one atomic unit.

        ``BEGIN IMMEDIATE`` takes the database write lock before the first
        read, so two read-modify-write sequences against the same account or
        budget cannot interleave. Any exception rolls back every statement of
        the block and is re-raised unchanged.

        Args:
            immediate: Take the write lock up front (required for mutations)

        Yields:
            Connection to pass as ``conn`` to row-level repository methods
        """
        conn = None
        try:
            conn = self._connect()
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            yield conn
            conn.commit()
        except sqlite3.OperationalError as e:
            logger.error(f"Database locked or operational error: {e}", exc_info=True)
            if conn:
                conn.rollback()
            raise
        except sqlite3.Error as e:
            logger.error(f"Database error: {e}", exc_info=True)
            if conn:
                conn.rollback()
            raise
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    @contextmanager
    def _joined(self, conn: Optional[sqlite3.Connection]):
        """Reuse the caller's connection, or open and commit a new one."""
        if conn is not None:
            yield conn
        else:
            with self._get_connection() as own:
                yield own

    def _init_schema(self):
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS accounts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL CHECK(length(user_id) > 0),
                    name TEXT NOT NULL,
                    account_type TEXT NOT NULL CHECK(
                        account_type IN ('checking', 'savings', 'credit_card',
                                         'cash', 'investment', 'loan', 'upi')
                    ),
                    balance TEXT NOT NULL DEFAULT '0',
                    is_active INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0, 1)),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS budgets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL CHECK(length(user_id) > 0),
                    name TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            # Categories without an owner are shared by every user
            conn.execute("""
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    category_type TEXT NOT NULL CHECK(
                        category_type IN ('income', 'expense')
                    ),
                    user_id TEXT,
                    created_at TEXT NOT NULL
                )
            """)

            # Templates keep plain references so a removed account or category
            # surfaces as a failed materialization instead of blocking deletes
            conn.execute("""
                CREATE TABLE IF NOT EXISTS recurring_transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL CHECK(length(user_id) > 0),
                    account_id INTEGER NOT NULL,
                    category_id INTEGER NOT NULL,
                    budget_id INTEGER,
                    description TEXT NOT NULL,
                    amount TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
                    transaction_type TEXT NOT NULL CHECK(
                        transaction_type IN ('income', 'expense')
                    ),
                    frequency TEXT NOT NULL CHECK(frequency IN ('monthly', 'yearly')),
                    recurring_date INTEGER NOT NULL CHECK(
                        recurring_date >= 1 AND recurring_date <= 31
                    ),
                    note TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL CHECK(length(user_id) > 0),
                    account_id INTEGER NOT NULL REFERENCES accounts(id),
                    category_id INTEGER NOT NULL REFERENCES categories(id),
                    budget_id INTEGER REFERENCES budgets(id) ON DELETE SET NULL,
                    description TEXT NOT NULL,
                    amount TEXT NOT NULL CHECK(CAST(amount AS REAL) > 0),
                    transaction_type TEXT NOT NULL CHECK(
                        transaction_type IN ('income', 'expense')
                    ),
                    transaction_date TEXT NOT NULL,
                    note TEXT,
                    recurring_transaction_id INTEGER
                        REFERENCES recurring_transactions(id) ON DELETE SET NULL,
                    posting_date TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL CHECK(length(user_id) > 0),
                    message TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            self._create_indexes(conn)

            logger.debug("Ledger schema initialized successfully")

    def _create_indexes(self, conn):
        """Create database indexes for query performance."""
        indexes = [
            ("idx_accounts_user_id", "accounts", "user_id"),
            ("idx_budgets_user_id", "budgets", "user_id"),
            ("idx_categories_user_id", "categories", "user_id"),
            ("idx_recurring_user_id", "recurring_transactions", "user_id"),
            ("idx_transactions_user_id", "transactions", "user_id"),
            ("idx_transactions_account_id", "transactions", "account_id"),
            ("idx_transactions_budget_id", "transactions", "budget_id"),
            ("idx_transactions_date", "transactions", "user_id, transaction_date DESC"),
            ("idx_logs_user_created", "logs", "user_id, created_at DESC"),
        ]

        for index_name, table, columns in indexes:
            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS {index_name}
                ON {table}({columns})
            """)

        # One materialized transaction per template per posting day
        conn.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_transactions_recurring_posting
            ON transactions(recurring_transaction_id, posting_date)
        """)
