"""
Account, budget and category services.

These wrap the plain CRUD of the supporting entities. None of them touch an
account balance after creation; balances move only through
``LedgerService``.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from fintrack.db import Account, Budget, Category, LedgerRepository
from fintrack.errors import NotFoundError
from fintrack.models import AccountType, TransactionType

from .audit import AuditLogger
from .validation import (
    require_enum,
    require_id,
    require_name,
    require_user,
    to_decimal,
)

logger = logging.getLogger(__name__)


class _AuditedService:
    def __init__(self, repository: LedgerRepository, audit: Optional[AuditLogger] = None):
        self.repository = repository
        self.audit = audit

    def _audit(self, user_id: Optional[str], message: str):
        if self.audit is None or not user_id:
            return
        try:
            self.audit.log(user_id, message)
        except Exception as e:
            logger.warning(f"Audit log rejected entry for user {user_id}: {e}")


class AccountService(_AuditedService):
    """Account CRUD and the total-balance query."""

    def create_account(
        self,
        user_id: str,
        name: str,
        account_type: Any,
        balance: Any = Decimal("0"),
    ) -> Account:
        """
        Open an account.

        Args:
            user_id: Owner
            name: Display name
            account_type: An AccountType or its string value
            balance: Opening balance; may be negative (loans, credit cards)
        """
        return self.repository.accounts.create(
            require_user(user_id),
            require_name(name),
            require_enum(AccountType, account_type, "account_type"),
            to_decimal(balance, "balance"),
        )

    def get_account(self, account_id: int) -> Account:
        account = self.repository.accounts.get_by_id(require_id(account_id, "account_id"))
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    def get_accounts(self, user_id: str) -> list[Account]:
        return self.repository.accounts.get_by_user(require_user(user_id))

    def update_account(
        self, account_id: int, name: str, account_type: Any, is_active: bool
    ) -> Account:
        """Rename, retype or (de)activate an account. The balance is left alone."""
        account = self.get_account(account_id)
        account.name = require_name(name)
        account.account_type = require_enum(AccountType, account_type, "account_type")
        account.is_active = bool(is_active)
        return self.repository.accounts.update(account)

    def delete_account(self, account_id: int) -> None:
        """
        Raises:
            NotFoundError: If the account does not exist
            sqlite3.IntegrityError: If transactions still reference it
        """
        account = self.get_account(account_id)
        self.repository.accounts.delete(account.id)

    def get_total_balance(self, user_id: str) -> Decimal:
        """Sum of balances over the user's active accounts."""
        return self.repository.accounts.get_total_balance(require_user(user_id))


class BudgetService(_AuditedService):
    """Budget CRUD."""

    def create_budget(self, user_id: str, name: str, amount: Any) -> Budget:
        budget = self.repository.budgets.create(
            require_user(user_id), require_name(name), to_decimal(amount)
        )
        self._audit(budget.user_id, f"New budget '{budget.name}' created")
        return budget

    def get_budget(self, budget_id: int) -> Budget:
        budget = self.repository.budgets.get_by_id(require_id(budget_id, "budget_id"))
        if budget is None:
            raise NotFoundError("Budget", budget_id)
        return budget

    def get_budgets(self, user_id: str) -> list[Budget]:
        return self.repository.budgets.get_by_user(require_user(user_id))

    def update_budget(self, budget_id: int, name: str, amount: Any) -> Budget:
        """
        Rename a budget and reset its remaining allowance.

        This is the owner choosing a new allocation, not a reconciliation;
        transactions already charged to the budget are not re-applied.
        """
        budget = self.get_budget(budget_id)
        budget.name = require_name(name)
        budget.amount = to_decimal(amount)
        self.repository.budgets.update(budget)
        self._audit(budget.user_id, f"Budget '{budget.name}' updated")
        return budget

    def delete_budget(self, budget_id: int) -> None:
        budget = self.get_budget(budget_id)
        self.repository.budgets.delete(budget.id)
        self._audit(budget.user_id, f"Budget '{budget.name}' removed")


class CategoryService(_AuditedService):
    """Category CRUD. Categories without an owner are shared by all users."""

    def create_category(
        self, name: str, category_type: Any, user_id: Optional[str] = None
    ) -> Category:
        if user_id is not None:
            require_user(user_id)
        category = self.repository.categories.create(
            require_name(name),
            require_enum(TransactionType, category_type, "category_type"),
            user_id,
        )
        self._audit(user_id, f"New category '{category.name}' created")
        return category

    def get_category(self, category_id: int) -> Category:
        category = self.repository.categories.get_by_id(
            require_id(category_id, "category_id")
        )
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def get_categories(self, user_id: Optional[str] = None) -> list[Category]:
        return self.repository.categories.get_for_user(user_id)

    def update_category(
        self,
        category_id: int,
        name: str,
        category_type: Any,
        user_id: Optional[str] = None,
    ) -> Category:
        """
        Rename or retype a category.

        Transactions keep the type they were posted with.
        """
        category = self.get_category(category_id)
        category.name = require_name(name)
        category.category_type = require_enum(TransactionType, category_type, "category_type")
        self.repository.categories.update(category)
        self._audit(user_id or category.user_id, f"Category '{category.name}' updated")
        return category

    def delete_category(self, category_id: int, user_id: Optional[str] = None) -> None:
        category = self.get_category(category_id)
        self.repository.categories.delete(category.id)
        self._audit(user_id or category.user_id, f"Category '{category.name}' removed")
