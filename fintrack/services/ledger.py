"""
Ledger service: the single place where transactions are created, changed or
removed.

Every mutation re-reads the affected rows inside one ``BEGIN IMMEDIATE``
unit of work, computes the balance and budget deltas in memory, and writes the
transaction row, the account row(s) and the budget row(s) together. If any
statement fails, nothing is kept and the original exception propagates.

Sign conventions:
- Income adds its amount to the account balance, expense subtracts it.
- An attached budget loses the transaction amount whatever the type; the
  budget tracks how much of the allocation has been consumed.
"""

import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from fintrack.config import DEFAULT_PAGE_SIZE, local_now
from fintrack.db import Account, Budget, Category, LedgerRepository, Transaction
from fintrack.errors import DuplicateMaterializationError, NotFoundError, ValidationError

from .audit import AuditLogger
from .validation import (
    optional_id,
    optional_note,
    require_amount,
    require_id,
    require_text,
    require_user,
)

logger = logging.getLogger(__name__)


class LedgerService:
    """Creates, updates and deletes transactions while keeping balances in step."""

    def __init__(self, repository: LedgerRepository, audit: Optional[AuditLogger] = None):
        """
        Initialize the ledger service.

        Args:
            repository: Ledger store
            audit: Activity log; entries are skipped when None
        """
        self.repository = repository
        self.audit = audit

    # =========================================================================
    # Reference checks
    # =========================================================================

    def _require_category(
        self, category_id: int, user_id: str, conn: sqlite3.Connection
    ) -> Category:
        category = self.repository.categories.get_by_id(category_id, conn=conn)
        if category is None or category.user_id not in (None, user_id):
            raise NotFoundError("Category", category_id)
        return category

    def _require_account(
        self, account_id: int, user_id: str, conn: sqlite3.Connection
    ) -> Account:
        account = self.repository.accounts.get_by_id(account_id, conn=conn)
        if account is None or account.user_id != user_id:
            raise NotFoundError("Account", account_id)
        return account

    def _require_budget(
        self, budget_id: int, user_id: str, conn: sqlite3.Connection
    ) -> Budget:
        budget = self.repository.budgets.get_by_id(budget_id, conn=conn)
        if budget is None or budget.user_id != user_id:
            raise NotFoundError("Budget", budget_id)
        return budget

    def _require_transaction(
        self, transaction_id: int, conn: Optional[sqlite3.Connection] = None
    ) -> Transaction:
        txn = self.repository.transactions.get_by_id(transaction_id, conn=conn)
        if txn is None:
            raise NotFoundError("Transaction", transaction_id)
        return txn

    def _audit(self, user_id: str, message: str):
        if self.audit is None:
            return
        try:
            self.audit.log(user_id, message)
        except Exception as e:
            logger.warning(f"Audit log rejected entry for user {user_id}: {e}")

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_transaction(
        self,
        user_id: str,
        account_id: int,
        category_id: int,
        description: str,
        amount: Any,
        transaction_date: Optional[datetime] = None,
        note: Optional[str] = None,
        budget_id: Optional[int] = None,
        recurring_transaction_id: Optional[int] = None,
        posting_date: Optional[date] = None,
    ) -> Transaction:
        """
        Post a new transaction.

        Args:
            user_id: Owner of the transaction
            account_id: Account the amount is posted to
            category_id: Category; its type decides income or expense
            description: Short description
            amount: Positive amount
            transaction_date: When it happened. Defaults to now
            note: Optional free text
            budget_id: Budget to charge, if any
            recurring_transaction_id: Template that produced this transaction
            posting_date: Day the template was materialized for

        Returns:
            The persisted Transaction

        Raises:
            NotFoundError: If the category, account, budget or recurring
                template does not exist
            DuplicateMaterializationError: If the template already produced a
                transaction for ``posting_date``
            ValidationError: If an argument is malformed
        """
        user_id = require_user(user_id)
        account_id = require_id(account_id, "account_id")
        category_id = require_id(category_id, "category_id")
        budget_id = optional_id(budget_id, "budget_id")
        recurring_transaction_id = optional_id(
            recurring_transaction_id, "recurring_transaction_id"
        )
        description = require_text(description, "description")
        amount = require_amount(amount)
        note = optional_note(note)
        if (recurring_transaction_id is None) != (posting_date is None):
            raise ValidationError(
                "recurring_transaction_id and posting_date must be given together"
            )

        now = local_now()

        with self.repository.unit_of_work() as conn:
            if recurring_transaction_id is not None:
                template = self.repository.recurring.get_by_id(
                    recurring_transaction_id, conn=conn
                )
                if template is None or template.user_id != user_id:
                    raise NotFoundError("RecurringTransaction", recurring_transaction_id)
                existing = self.repository.transactions.find_materialized(
                    recurring_transaction_id, posting_date, conn=conn
                )
                if existing is not None:
                    raise DuplicateMaterializationError(
                        recurring_transaction_id, posting_date
                    )

            category = self._require_category(category_id, user_id, conn)
            account = self._require_account(account_id, user_id, conn)
            budget = (
                self._require_budget(budget_id, user_id, conn)
                if budget_id is not None
                else None
            )

            transaction_type = category.category_type

            self.repository.accounts.set_balance(
                account.id, account.balance + transaction_type.signed(amount), conn
            )
            if budget is not None:
                self.repository.budgets.set_amount(budget.id, budget.amount - amount, conn)

            txn = self.repository.transactions.insert(
                Transaction(
                    id=None,
                    user_id=user_id,
                    account_id=account.id,
                    category_id=category.id,
                    budget_id=budget.id if budget else None,
                    description=description,
                    amount=amount,
                    transaction_type=transaction_type,
                    transaction_date=transaction_date or now,
                    note=note,
                    recurring_transaction_id=recurring_transaction_id,
                    posting_date=posting_date,
                    created_at=now,
                    updated_at=now,
                ),
                conn,
            )

        logger.info(
            f"Created {transaction_type.value} transaction {txn.id} of {amount} "
            f"on account {account.id} for user {user_id}"
        )
        self._audit(user_id, f"New transaction '{description}' created")
        return txn

    def update_transaction(
        self,
        transaction_id: int,
        account_id: int,
        category_id: int,
        description: str,
        amount: Any,
        transaction_date: datetime,
        note: Optional[str] = None,
        budget_id: Optional[int] = None,
    ) -> Transaction:
        """
        Amend a transaction and move its effect to match.

        The stored transaction type is kept; changing the category does not
        turn an expense into income. After the update the account(s) and
        budget(s) carry exactly one application of the new amount and none of
        the old one.

        Raises:
            NotFoundError: If the transaction or a newly referenced category,
                account or budget does not exist
            ValidationError: If an argument is malformed
        """
        transaction_id = require_id(transaction_id, "transaction_id")
        account_id = require_id(account_id, "account_id")
        category_id = require_id(category_id, "category_id")
        budget_id = optional_id(budget_id, "budget_id")
        description = require_text(description, "description")
        new_amount = require_amount(amount)
        note = optional_note(note)
        if transaction_date is None:
            raise ValidationError("transaction_date is required")

        accounts = self.repository.accounts
        budgets = self.repository.budgets

        with self.repository.unit_of_work() as conn:
            txn = self._require_transaction(transaction_id, conn)
            user_id = txn.user_id
            old_amount = txn.amount
            transaction_type = txn.transaction_type

            if category_id != txn.category_id:
                self._require_category(category_id, user_id, conn)

            # Account balance
            if account_id != txn.account_id:
                new_account = self._require_account(account_id, user_id, conn)
                old_account = accounts.get_by_id(txn.account_id, conn=conn)
                if old_account is not None:
                    accounts.set_balance(
                        old_account.id,
                        old_account.balance - transaction_type.signed(old_amount),
                        conn,
                    )
                accounts.set_balance(
                    new_account.id,
                    new_account.balance + transaction_type.signed(new_amount),
                    conn,
                )
            elif new_amount != old_amount:
                account = accounts.get_by_id(txn.account_id, conn=conn)
                if account is None:
                    raise NotFoundError("Account", txn.account_id)
                accounts.set_balance(
                    account.id,
                    account.balance + transaction_type.signed(new_amount - old_amount),
                    conn,
                )

            # Budget remaining amount
            if budget_id != txn.budget_id:
                new_budget = (
                    self._require_budget(budget_id, user_id, conn)
                    if budget_id is not None
                    else None
                )
                if txn.budget_id is not None:
                    old_budget = budgets.get_by_id(txn.budget_id, conn=conn)
                    if old_budget is not None:
                        budgets.set_amount(
                            old_budget.id, old_budget.amount + old_amount, conn
                        )
                if new_budget is not None:
                    budgets.set_amount(new_budget.id, new_budget.amount - new_amount, conn)
            elif budget_id is not None and new_amount != old_amount:
                budget = self._require_budget(budget_id, user_id, conn)
                budgets.set_amount(
                    budget.id, budget.amount - (new_amount - old_amount), conn
                )

            txn.account_id = account_id
            txn.category_id = category_id
            txn.budget_id = budget_id
            txn.description = description
            txn.amount = new_amount
            txn.transaction_date = transaction_date
            txn.note = note
            txn.updated_at = local_now()
            self.repository.transactions.update(txn, conn)

        logger.info(
            f"Updated transaction {txn.id}: amount {old_amount} -> {new_amount}, "
            f"account {txn.account_id}, budget {txn.budget_id}"
        )
        self._audit(user_id, f"Transaction '{description}' updated")
        return txn

    def delete_transaction(self, transaction_id: int) -> None:
        """
        Remove a transaction and undo its effect on its account and budget.

        Raises:
            NotFoundError: If the transaction does not exist
        """
        transaction_id = require_id(transaction_id, "transaction_id")

        with self.repository.unit_of_work() as conn:
            txn = self._require_transaction(transaction_id, conn)

            account = self.repository.accounts.get_by_id(txn.account_id, conn=conn)
            if account is not None:
                self.repository.accounts.set_balance(
                    account.id, account.balance - txn.signed_amount, conn
                )

            if txn.budget_id is not None:
                budget = self.repository.budgets.get_by_id(txn.budget_id, conn=conn)
                if budget is not None:
                    self.repository.budgets.set_amount(
                        budget.id, budget.amount + txn.amount, conn
                    )

            self.repository.transactions.delete(txn.id, conn)

        logger.info(f"Deleted transaction {txn.id} for user {txn.user_id}")
        self._audit(txn.user_id, f"Transaction '{txn.description}' removed")

    # =========================================================================
    # Queries
    # =========================================================================

    def get_transaction(self, transaction_id: int) -> Transaction:
        return self._require_transaction(require_id(transaction_id, "transaction_id"))

    def get_transactions(
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
        """Filtered, paginated listing of a user's transactions, newest first."""
        user_id = require_user(user_id)
        require_id(page, "page")
        require_id(limit, "limit")
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        return self.repository.transactions.get_user_transactions(
            user_id,
            page=page,
            limit=limit,
            description=description,
            category_id=category_id,
            account_id=account_id,
            budget_id=budget_id,
            start_date=start_date,
            end_date=end_date,
        )

    def get_aggregate(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict[str, Decimal]:
        """Total income, total expenses and net income over a date range."""
        user_id = require_user(user_id)
        return self.repository.transactions.get_aggregate(user_id, start_date, end_date)

    def get_spending_by_category(self, user_id: str) -> list[dict[str, Any]]:
        return self.repository.transactions.get_spending_by_category(
            require_user(user_id)
        )
