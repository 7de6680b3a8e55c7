from enum import Enum


class AccountType(str, Enum):
    """Kinds of money containers a user can hold."""

    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"
    CASH = "cash"
    INVESTMENT = "investment"
    LOAN = "loan"
    UPI = "upi"
