"""
Database models for the FinTrack ledger.

Each dataclass maps to one SQLite row. Money columns are stored as exact
decimal text and surfaced as ``Decimal``; timestamps are ISO-8601 text.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from fintrack.models import AccountType, RecurringFrequency, TransactionType


def _to_datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Account:
    """
    A named money container with a running balance.

    ``balance`` is maintained by the ledger service on every transaction
    mutation and is never recomputed from the transaction history.
    """

    id: Optional[int]
    user_id: str
    name: str
    account_type: AccountType
    balance: Decimal
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "account_type": self.account_type.value,
            "balance": str(self.balance),
            "is_active": self.is_active,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    @classmethod
    def from_row(cls, row) -> "Account":
        """Create an Account from a database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            account_type=AccountType(row["account_type"]),
            balance=Decimal(row["balance"]),
            is_active=bool(row["is_active"]),
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )


@dataclass
class Budget:
    """A spending allowance; ``amount`` is what remains, not what was spent."""

    id: Optional[int]
    user_id: str
    name: str
    amount: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "amount": str(self.amount),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    @classmethod
    def from_row(cls, row) -> "Budget":
        """Create a Budget from a database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            amount=Decimal(row["amount"]),
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )


@dataclass
class Category:
    """
    Income/expense classification.

    A category with no ``user_id`` is global and visible to every user.
    """

    id: Optional[int]
    name: str
    category_type: TransactionType
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category_type": self.category_type.value,
            "user_id": self.user_id,
            "created_at": _isoformat(self.created_at),
        }

    @classmethod
    def from_row(cls, row) -> "Category":
        return cls(
            id=row["id"],
            name=row["name"],
            category_type=TransactionType(row["category_type"]),
            user_id=row["user_id"],
            created_at=_to_datetime(row["created_at"]),
        )


@dataclass
class Transaction:
    """
    A posted income or expense.

    ``amount`` is an unsigned magnitude; the direction comes from
    ``transaction_type``, which is copied from the category at creation.
    Transactions produced from a recurring template carry the template id and
    the calendar day they were produced for.
    """

    id: Optional[int]
    user_id: str
    account_id: int
    category_id: int
    budget_id: Optional[int]
    description: str
    amount: Decimal
    transaction_type: TransactionType
    transaction_date: datetime
    note: Optional[str] = None
    recurring_transaction_id: Optional[int] = None
    posting_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this transaction on its account balance."""
        return self.transaction_type.signed(self.amount)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "account_id": self.account_id,
            "category_id": self.category_id,
            "budget_id": self.budget_id,
            "description": self.description,
            "amount": str(self.amount),
            "transaction_type": self.transaction_type.value,
            "transaction_date": self.transaction_date.isoformat(),
            "note": self.note,
            "recurring_transaction_id": self.recurring_transaction_id,
            "posting_date": _isoformat(self.posting_date),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    @classmethod
    def from_row(cls, row) -> "Transaction":
        """Create a Transaction from a database row."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            category_id=row["category_id"],
            budget_id=row["budget_id"],
            description=row["description"],
            amount=Decimal(row["amount"]),
            transaction_type=TransactionType(row["transaction_type"]),
            transaction_date=datetime.fromisoformat(row["transaction_date"]),
            note=row["note"],
            recurring_transaction_id=row["recurring_transaction_id"],
            posting_date=_to_date(row["posting_date"]),
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )


@dataclass
class RecurringTransaction:
    """
    Template that produces a Transaction on every eligible day.

    ``recurring_date`` is the day of month (1-31). Yearly templates are also
    anchored to the month of ``created_at``.
    """

    id: Optional[int]
    user_id: str
    account_id: int
    category_id: int
    budget_id: Optional[int]
    description: str
    amount: Decimal
    transaction_type: TransactionType
    frequency: RecurringFrequency
    recurring_date: int
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_due(self, today: date) -> bool:
        """Check whether this template should be materialized on ``today``."""
        anchor_month = self.created_at.month if self.created_at else today.month
        return self.frequency.is_posting_day(self.recurring_date, anchor_month, today)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "account_id": self.account_id,
            "category_id": self.category_id,
            "budget_id": self.budget_id,
            "description": self.description,
            "amount": str(self.amount),
            "transaction_type": self.transaction_type.value,
            "frequency": self.frequency.value,
            "recurring_date": self.recurring_date,
            "note": self.note,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }

    @classmethod
    def from_row(cls, row) -> "RecurringTransaction":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            category_id=row["category_id"],
            budget_id=row["budget_id"],
            description=row["description"],
            amount=Decimal(row["amount"]),
            transaction_type=TransactionType(row["transaction_type"]),
            frequency=RecurringFrequency(row["frequency"]),
            recurring_date=row["recurring_date"],
            note=row["note"],
            created_at=_to_datetime(row["created_at"]),
            updated_at=_to_datetime(row["updated_at"]),
        )


@dataclass
class LogEntry:
    """An audit-log line shown in the user's activity history."""

    id: Optional[int]
    user_id: str
    message: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row) -> "LogEntry":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            message=row["message"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
