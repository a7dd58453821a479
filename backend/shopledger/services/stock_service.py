# Overview: Stock ledger; applies signed quantity deltas to product records.

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from ..records import Product
from .ledger_service import Ledger, PRODUCTS

"""
Stock invariants (authoritative)

- Quantity lives on the Product record and is changed only through
  apply_stock_delta().
- SERVICE items never have their quantity touched.
- Quantity is floored at zero. Over-decrementing does NOT raise: the deficit
  is dropped and logged. Cancel after an over-sale therefore restores more
  than was really there.
"""

logger = logging.getLogger(__name__)


def apply_stock_delta(ledger: Ledger, product_id: str, signed_quantity: Decimal) -> Product | None:
    """
    Add signed_quantity to a product's stock, flooring at zero.

    Returns the updated product, or None when the product no longer exists
    (e.g. it was removed from the catalog after a sale referenced it).
    """
    product = ledger.product(product_id)
    if product is None:
        logger.warning("Stock delta %s skipped: product %s not found", signed_quantity, product_id)
        return None

    if product.is_service:
        return product

    target = product.quantity + signed_quantity
    if target < 0:
        logger.warning(
            "Stock floor hit for product %s (%s): %s units of deficit dropped",
            product.id, product.name, -target,
        )
        target = Decimal("0")

    updated = replace(product, quantity=target)
    ledger.put(PRODUCTS, updated)
    return updated


def set_unit_cost(ledger: Ledger, product_id: str, unit_cost: Decimal) -> Product | None:
    """Overwrite the catalog cost (last received unit cost wins)."""
    product = ledger.product(product_id)
    if product is None:
        return None
    if product.cost == unit_cost:
        return product
    updated = replace(product, cost=unit_cost)
    ledger.put(PRODUCTS, updated)
    return updated
