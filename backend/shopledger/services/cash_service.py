# Overview: Cash ledger; append-only income/expense entries and their debt effects.

"""
Cash Ledger

Entries are appended, never edited. An entry tagged with a party doubles as
a debt payment:

- INCOME + customerId            -> customer pays down their debt
- EXPENSE + supplierId           -> we pay down our debt to the supplier

Sales paid in cash or by card book a synthetic INCOME entry under the
reserved sale category. Those entries carry the customerId for reporting
but must not count as a debt payment, so the reserved categories are
excluded from the customer rule. Both the current label and the legacy
Russian label are reserved, since older data carries the latter.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from ..records import CashEntry, CashEntryType
from ..validation import ValidationError
from .debt_service import decrease_customer_debt, decrease_supplier_debt
from .ledger_service import Ledger, CASH_ENTRIES


SALE_CATEGORY = "Sale"
RESERVED_SALE_CATEGORIES = frozenset({SALE_CATEGORY, "Продажа"})
PURCHASE_CATEGORY = "Purchase"


class CashEntryValidationError(ValidationError):
    """Raised when a cash entry fails validation."""
    pass


def record_entry(ledger: Ledger, entry: CashEntry) -> CashEntry:
    """Append without any debt side effects (synthetic sale/purchase entries)."""
    ledger.put(CASH_ENTRIES, entry)
    return entry


def add_cash_entry(ledger: Ledger, entry: CashEntry, *, employee_id: str | None = None) -> CashEntry:
    """
    Append a manual cash entry and apply its debt effect.

    An entry naming a customer or supplier with no record here is still
    appended; only the debt step is skipped.

    Raises:
        CashEntryValidationError: non-positive amount or duplicate id
    """
    if entry.amount <= 0:
        raise CashEntryValidationError("amount must be positive")
    if ledger.get(CASH_ENTRIES, entry.id) is not None:
        raise CashEntryValidationError(f"Cash entry {entry.id} already recorded")

    if employee_id and not entry.employee_id:
        entry = replace(entry, employee_id=employee_id)

    with ledger.transaction():
        record_entry(ledger, entry)

        if (
            entry.type is CashEntryType.INCOME
            and entry.customer_id
            and entry.category not in RESERVED_SALE_CATEGORIES
        ):
            decrease_customer_debt(ledger, entry.customer_id, entry.amount)

        if entry.type is CashEntryType.EXPENSE and entry.supplier_id:
            decrease_supplier_debt(ledger, entry.supplier_id, entry.amount)

    return entry


def cash_balance(ledger: Ledger) -> Decimal:
    """Sum of INCOME minus sum of EXPENSE over every entry."""
    balance = Decimal("0.00")
    for entry in ledger.cash_entries:
        if entry.type is CashEntryType.INCOME:
            balance += entry.amount
        else:
            balance -= entry.amount
    return balance
