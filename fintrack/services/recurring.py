"""
Recurring transactions: template CRUD and the daily materializer.

Templates carry no balance effect of their own. Once a day the materializer
turns every template that is due into a real transaction by going through
``LedgerService.create_transaction``, so account and budget side effects are
exactly those of a manually entered transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from fintrack.config import local_now
from fintrack.db import LedgerRepository, RecurringTransaction
from fintrack.errors import DuplicateMaterializationError, NotFoundError
from fintrack.models import RecurringFrequency, TransactionType

from .ledger import LedgerService
from .validation import (
    optional_id,
    optional_note,
    require_amount,
    require_enum,
    require_id,
    require_recurring_date,
    require_text,
    require_user,
)

logger = logging.getLogger(__name__)


class RecurringService:
    """CRUD for recurring-transaction templates."""

    def __init__(self, repository: LedgerRepository):
        self.repository = repository

    def _resolve_type(
        self,
        user_id: str,
        account_id: int,
        category_id: int,
        budget_id: Optional[int],
    ) -> TransactionType:
        """Check the template's references and return the category's type."""
        category = self.repository.categories.get_by_id(category_id)
        if category is None or category.user_id not in (None, user_id):
            raise NotFoundError("Category", category_id)

        account = self.repository.accounts.get_by_id(account_id)
        if account is None or account.user_id != user_id:
            raise NotFoundError("Account", account_id)

        if budget_id is not None:
            budget = self.repository.budgets.get_by_id(budget_id)
            if budget is None or budget.user_id != user_id:
                raise NotFoundError("Budget", budget_id)

        return category.category_type

    def create_recurring_transaction(
        self,
        user_id: str,
        account_id: int,
        category_id: int,
        description: str,
        amount: Any,
        frequency: Any,
        recurring_date: int,
        note: Optional[str] = None,
        budget_id: Optional[int] = None,
    ) -> RecurringTransaction:
        """
        Create a template.

        Args:
            user_id: Owner
            account_id: Account the produced transactions post to
            category_id: Category of the produced transactions
            description: Description copied to each transaction
            amount: Positive amount copied to each transaction
            frequency: ``monthly`` or ``yearly``
            recurring_date: Day of month (1-31). Yearly templates also use
                the month they are created in
            note: Optional note copied to each transaction
            budget_id: Budget charged by each transaction, if any

        Raises:
            NotFoundError: If the account, category or budget does not exist
            ValidationError: If an argument is malformed
        """
        user_id = require_user(user_id)
        account_id = require_id(account_id, "account_id")
        category_id = require_id(category_id, "category_id")
        budget_id = optional_id(budget_id, "budget_id")
        transaction_type = self._resolve_type(user_id, account_id, category_id, budget_id)

        now = local_now()
        return self.repository.recurring.create(
            RecurringTransaction(
                id=None,
                user_id=user_id,
                account_id=account_id,
                category_id=category_id,
                budget_id=budget_id,
                description=require_text(description, "description"),
                amount=require_amount(amount),
                transaction_type=transaction_type,
                frequency=require_enum(RecurringFrequency, frequency, "frequency"),
                recurring_date=require_recurring_date(recurring_date),
                note=optional_note(note),
                created_at=now,
                updated_at=now,
            )
        )

    def get_recurring_transaction(self, recurring_id: int) -> RecurringTransaction:
        template = self.repository.recurring.get_by_id(
            require_id(recurring_id, "recurring_id")
        )
        if template is None:
            raise NotFoundError("RecurringTransaction", recurring_id)
        return template

    def get_recurring_transactions(self, user_id: str) -> list[RecurringTransaction]:
        return self.repository.recurring.get_by_user(require_user(user_id))

    def update_recurring_transaction(
        self,
        recurring_id: int,
        account_id: int,
        category_id: int,
        description: str,
        amount: Any,
        frequency: Any,
        recurring_date: int,
        note: Optional[str] = None,
        budget_id: Optional[int] = None,
    ) -> RecurringTransaction:
        """
        Replace a template's fields.

        The creation month, which anchors yearly templates, is kept.
        """
        template = self.get_recurring_transaction(recurring_id)
        account_id = require_id(account_id, "account_id")
        category_id = require_id(category_id, "category_id")
        budget_id = optional_id(budget_id, "budget_id")

        template.transaction_type = self._resolve_type(
            template.user_id, account_id, category_id, budget_id
        )
        template.account_id = account_id
        template.category_id = category_id
        template.budget_id = budget_id
        template.description = require_text(description, "description")
        template.amount = require_amount(amount)
        template.frequency = require_enum(RecurringFrequency, frequency, "frequency")
        template.recurring_date = require_recurring_date(recurring_date)
        template.note = optional_note(note)
        template.updated_at = local_now()
        return self.repository.recurring.update(template)

    def delete_recurring_transaction(self, recurring_id: int) -> None:
        template = self.get_recurring_transaction(recurring_id)
        self.repository.recurring.delete(template.id)


@dataclass
class MaterializationReport:
    """Outcome of one sweep over the templates."""

    run_date: date
    created: list[int] = field(default_factory=list)  # transaction ids
    already_done: list[int] = field(default_factory=list)  # template ids
    failed: list[int] = field(default_factory=list)  # template ids
    not_due: int = 0

    def to_dict(self) -> dict:
        return {
            "run_date": self.run_date.isoformat(),
            "created": list(self.created),
            "already_done": list(self.already_done),
            "failed": list(self.failed),
            "not_due": self.not_due,
        }


class RecurringMaterializer:
    """
    Produces at most one transaction per template per calendar day.

    Running the sweep twice on the same day is harmless: the second run finds
    the ``(template, day)`` pair already posted and skips it.
    """

    def __init__(self, repository: LedgerRepository, ledger: LedgerService):
        self.repository = repository
        self.ledger = ledger

    def run(self, today: Optional[date] = None) -> MaterializationReport:
        """
        Materialize every template due on ``today``.

        Templates are handled one after another. A template that fails (for
        example because its account was deleted) is logged and skipped; the
        rest of the sweep continues.

        Args:
            today: Day to materialize for. Defaults to today in the configured
                timezone

        Returns:
            MaterializationReport describing what happened
        """
        now = local_now()
        today = today or now.date()
        report = MaterializationReport(run_date=today)

        templates = self.repository.recurring.get_all()
        logger.info(f"Checking {len(templates)} recurring transactions for {today}")

        for template in templates:
            if not template.is_due(today):
                report.not_due += 1
                continue

            try:
                txn = self.ledger.create_transaction(
                    user_id=template.user_id,
                    account_id=template.account_id,
                    category_id=template.category_id,
                    description=template.description,
                    amount=template.amount,
                    transaction_date=datetime.combine(today, now.timetz()),
                    note=template.note,
                    budget_id=template.budget_id,
                    recurring_transaction_id=template.id,
                    posting_date=today,
                )
                report.created.append(txn.id)
            except DuplicateMaterializationError:
                report.already_done.append(template.id)
                logger.info(
                    f"Recurring transaction {template.id} already posted for {today}"
                )
            except Exception as e:
                report.failed.append(template.id)
                logger.error(
                    f"Failed to materialize recurring transaction {template.id}: {e}",
                    exc_info=True,
                )

        logger.info(
            f"Recurring sweep for {today} completed. "
            f"Created: {len(report.created)}, "
            f"Already posted: {len(report.already_done)}, "
            f"Errors: {len(report.failed)}"
        )
        return report
