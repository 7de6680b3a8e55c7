"""
Shared fixtures for FinTrack tests.

Test strategy:
1. Every test gets its own SQLite file under tmp_path
2. Audit entries are captured synchronously instead of going through the
   background worker, except in the audit logger's own tests
3. No network, no scheduler wall-clock waits
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from fintrack.db import LedgerRepository
from fintrack.models import AccountType, TransactionType
from fintrack.services import (
    AccountService,
    BudgetService,
    CategoryService,
    LedgerService,
    RecurringMaterializer,
    RecurringService,
)

USER = "user-1"
OTHER_USER = "user-2"


class RecordingAudit:
    """Stand-in for AuditLogger that keeps entries in memory."""

    def __init__(self):
        self.entries = []

    def log(self, user_id, message):
        self.entries.append((user_id, message))

    @property
    def messages(self):
        return [message for _, message in self.entries]


@pytest.fixture
def repo(tmp_path):
    return LedgerRepository(tmp_path / "ledger.db")


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def ledger(repo, audit):
    return LedgerService(repo, audit)


@pytest.fixture
def account_service(repo, audit):
    return AccountService(repo, audit)


@pytest.fixture
def budget_service(repo, audit):
    return BudgetService(repo, audit)


@pytest.fixture
def category_service(repo, audit):
    return CategoryService(repo, audit)


@pytest.fixture
def recurring_service(repo):
    return RecurringService(repo)


@pytest.fixture
def materializer(repo, ledger):
    return RecurringMaterializer(repo, ledger)


@pytest.fixture
def seeded(repo):
    """Two accounts, three budgets and a few categories for USER."""
    return SimpleNamespace(
        account=repo.accounts.create(
            USER, "Main", AccountType.CHECKING, Decimal("1000.00")
        ),
        savings=repo.accounts.create(
            USER, "Savings", AccountType.SAVINGS, Decimal("250.00")
        ),
        budget_b=repo.budgets.create(USER, "Food", Decimal("500.00")),
        budget_c=repo.budgets.create(USER, "Fun", Decimal("300.00")),
        groceries=repo.categories.create("Groceries", TransactionType.EXPENSE),
        rent=repo.categories.create("Rent", TransactionType.EXPENSE),
        salary=repo.categories.create("Salary", TransactionType.INCOME),
    )


def balance_of(repo, account_id):
    return repo.accounts.get_by_id(account_id).balance


def amount_of(repo, budget_id):
    return repo.budgets.get_by_id(budget_id).amount
