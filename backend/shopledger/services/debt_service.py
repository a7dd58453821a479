# Overview: Customer receivables and supplier payables, floored at zero on decrease.

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from .ledger_service import Ledger, CUSTOMERS, SUPPLIERS

logger = logging.getLogger(__name__)


def _adjust(ledger: Ledger, key: str, party_id: str, delta: Decimal):
    party = ledger.get(key, party_id)
    if party is None:
        logger.warning("Debt change %s skipped: %s %s not found", delta, key, party_id)
        return None
    debt = party.debt + delta
    if delta < 0 and debt < 0:
        debt = Decimal("0.00")
    updated = replace(party, debt=debt)
    ledger.put(key, updated)
    return updated


def increase_customer_debt(ledger: Ledger, customer_id: str, amount: Decimal):
    return _adjust(ledger, CUSTOMERS, customer_id, amount)


def decrease_customer_debt(ledger: Ledger, customer_id: str, amount: Decimal):
    return _adjust(ledger, CUSTOMERS, customer_id, -amount)


def increase_supplier_debt(ledger: Ledger, supplier_id: str, amount: Decimal):
    return _adjust(ledger, SUPPLIERS, supplier_id, amount)


def decrease_supplier_debt(ledger: Ledger, supplier_id: str, amount: Decimal):
    return _adjust(ledger, SUPPLIERS, supplier_id, -amount)
