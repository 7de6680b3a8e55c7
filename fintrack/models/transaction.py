from datetime import date
from decimal import Decimal
from enum import Enum


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

    def signed(self, amount: Decimal) -> Decimal:
        """Effect of posting ``amount`` of this type on an account balance."""
        return amount if self is TransactionType.INCOME else -amount


class RecurringFrequency(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"

    def is_posting_day(self, recurring_date: int, anchor_month: int, today: date) -> bool:
        """
        Check whether a template is due on ``today``.

        Monthly templates are due whenever the day of month matches. Yearly
        templates additionally require the month the template was created in.
        """
        if recurring_date != today.day:
            return False
        if self is RecurringFrequency.YEARLY:
            return today.month == anchor_month
        return True
