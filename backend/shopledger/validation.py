from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Type, TypeVar


E = TypeVar("E", bound=Enum)

# Money is kept to two decimal places; quantities keep whatever precision the
# caller sent (weighed goods are sold in fractional kilograms).
MONEY_QUANT = Decimal("0.01")


class LedgerError(Exception):
    """Base class for every error raised by the ledger services."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(LedgerError):
    """400-level input problem. Raised before any collection is touched."""


class StateError(LedgerError):
    """Operation is not allowed for the record's current lifecycle state."""


class RecordNotFoundError(LedgerError):
    """A referenced record does not exist in the tenant's collections."""


def coerce_money(value: Any, field: str, *, default: Decimal | None = Decimal("0.00")) -> Decimal | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return amount.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def coerce_quantity(value: Any, field: str, *, default: Decimal | None = Decimal("0")) -> Decimal | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        qty = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not qty.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return qty


def coerce_text(value: Any, *, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def coerce_optional_id(value: Any) -> str | None:
    """Empty strings coming from unset form selects mean "no reference"."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def coerce_choice(enum_cls: Type[E], value: Any, field: str, *, default: E | None = None) -> E | None:
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}")


def to_number(value: Decimal | None) -> int | float | None:
    """JSON form of a Decimal: whole values as int, the rest as float."""
    if value is None:
        return None
    if value == value.to_integral_value():
        return int(value)
    return float(value)
