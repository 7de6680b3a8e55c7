"""
Input checks shared by the services.

The HTTP layer validates requests first; these checks make the core reject
malformed values on its own instead of trusting the caller.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, TypeVar

from fintrack.config import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_NOTE_LENGTH,
    MAX_RECURRING_DATE,
    MIN_RECURRING_DATE,
)
from fintrack.errors import ValidationError

E = TypeVar("E", bound=Enum)


def require_user(user_id) -> str:
    if not user_id or not isinstance(user_id, str):
        raise ValidationError(f"Invalid user_id: {user_id!r}")
    return user_id


def require_id(value, field: str = "id") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"Invalid {field}: {value!r}")
    return value


def optional_id(value, field: str = "id") -> Optional[int]:
    return None if value is None else require_id(value, field)


def to_decimal(value, field: str = "amount") -> Decimal:
    """Convert ``value`` to Decimal; floats go through ``str`` to keep cents exact."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}: {value!r}")
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}")
    return amount


def require_amount(value, field: str = "amount") -> Decimal:
    """A strictly positive transaction amount."""
    amount = to_decimal(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be positive, got {amount}")
    return amount


def require_text(value, field: str, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} cannot be empty")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return value


def require_name(value, field: str = "name") -> str:
    return require_text(value, field, MAX_NAME_LENGTH)


def optional_note(value) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_text(value, "note", MAX_NOTE_LENGTH)


def require_enum(enum_cls: type[E], value, field: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field} {value!r}, expected one of: {allowed}")


def require_recurring_date(value) -> int:
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or not MIN_RECURRING_DATE <= value <= MAX_RECURRING_DATE
    ):
        raise ValidationError(
            f"recurring_date must be between {MIN_RECURRING_DATE} and "
            f"{MAX_RECURRING_DATE}, got {value!r}"
        )
    return value
