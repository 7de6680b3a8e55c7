"""
Exception types raised by the ledger core.

Persistence failures are not wrapped: the underlying ``sqlite3.Error`` is
re-raised unchanged after the enclosing unit of work rolls back.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for ledger errors."""


class NotFoundError(LedgerError, LookupError):
    """A referenced account, category, budget, transaction or template does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ValidationError(LedgerError, ValueError):
    """Malformed identifiers, amounts or enum values."""


class DuplicateMaterializationError(LedgerError):
    """A recurring template was already materialized for the given posting date."""

    def __init__(self, recurring_transaction_id: int, posting_date: Any):
        self.recurring_transaction_id = recurring_transaction_id
        self.posting_date = posting_date
        super().__init__(
            f"Recurring transaction {recurring_transaction_id} already "
            f"materialized for {posting_date}"
        )


def http_status_for(error: Optional[BaseException]) -> int:
    """Map an exception to the status code the HTTP layer should return."""
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, (ValidationError, DuplicateMaterializationError)):
        return 400
    return 500


def message_for(error: Optional[BaseException]) -> str:
    """User-facing text for an exception, from ``ERROR_MESSAGES``."""
    import sqlite3

    from fintrack.config import ERROR_MESSAGES

    if isinstance(error, NotFoundError):
        return ERROR_MESSAGES["not_found"]
    if isinstance(error, (ValidationError, DuplicateMaterializationError)):
        return ERROR_MESSAGES["validation_error"]
    if isinstance(error, sqlite3.Error):
        return ERROR_MESSAGES["database_error"]
    return ERROR_MESSAGES["internal_error"]
