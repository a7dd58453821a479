# Overview: Sale lifecycle (create / cancel / update) over the stock, debt and cash ledgers.

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

from ..records import CashEntry, CashEntryType, Sale
from ..validation import RecordNotFoundError, StateError, ValidationError
from .cash_service import SALE_CATEGORY, record_entry
from .debt_service import decrease_customer_debt, increase_customer_debt
from .ledger_service import Ledger, SALES
from .stock_service import apply_stock_delta

"""
Sale invariants (authoritative)

- ACTIVE -> DELETED is one-way. Cancelling a deleted sale is a no-op and a
  deleted sale cannot be edited.
- Every stock/debt effect of a sale goes through _apply_sale() and is undone
  by _reverse_sale(). Cancel is reverse; update is reverse(old) + apply(new),
  never a diff, so a change of payment method, customer, quantities and
  prices in one edit is still exact.
- Unit cost is captured on each line when the sale is created. Later catalog
  cost changes never alter historical profit.
- CASH/CARD sales book one INCOME entry under the reserved sale category.
  It is not reversed on cancel or edit.
"""


class SaleValidationError(ValidationError):
    """Raised when a sale is rejected before any ledger is touched."""
    pass


class SaleStateError(StateError):
    """Raised when a sale's lifecycle state forbids the operation."""
    pass


def _apply_sale(ledger: Ledger, sale: Sale) -> None:
    for item in sale.items:
        apply_stock_delta(ledger, item.product_id, -item.quantity)
    if sale.is_debt and sale.customer_id:
        increase_customer_debt(ledger, sale.customer_id, sale.total)


def _reverse_sale(ledger: Ledger, sale: Sale) -> None:
    for item in sale.items:
        apply_stock_delta(ledger, item.product_id, item.quantity)
    if sale.is_debt and sale.customer_id:
        decrease_customer_debt(ledger, sale.customer_id, sale.total)


def _prepare_sale(ledger: Ledger, sale: Sale) -> Sale:
    """Validate references and fill in captured costs and the total."""
    if not sale.items:
        raise SaleValidationError("Sale must have at least one item")

    items = []
    for item in sale.items:
        if item.quantity <= 0:
            raise SaleValidationError(
                "Item quantity must be positive",
                details={"product_id": item.product_id, "quantity": str(item.quantity)},
            )
        if item.price < 0:
            raise SaleValidationError(
                "Item price cannot be negative",
                details={"product_id": item.product_id},
            )
        product = ledger.product(item.product_id)
        if product is None:
            raise SaleValidationError(f"Product {item.product_id} not found")
        if item.cost is None:
            item = replace(item, cost=product.cost)
        items.append(item)

    # CASH/CARD sales may name a client with no record here (guest or B2B).
    if sale.is_debt:
        if not sale.customer_id:
            raise SaleValidationError("A customer is required for a DEBT sale")
        if ledger.customer(sale.customer_id) is None:
            raise SaleValidationError(f"Customer {sale.customer_id} not found")

    total = sale.total if sale.total is not None else sale.items_total()
    if total < 0:
        raise SaleValidationError("Sale total cannot be negative")

    return replace(sale, items=tuple(items), total=total)


def _sale_income_entry(ledger: Ledger, sale: Sale) -> CashEntry:
    description = f"Receipt #{sale.id[-4:]}"
    customer = ledger.customer(sale.customer_id)
    if customer is not None and customer.name:
        description = f"{description} ({customer.name})"
    return CashEntry(
        id=f"sale-{sale.id}",
        type=CashEntryType.INCOME,
        amount=sale.total,
        category=SALE_CATEGORY,
        customer_id=sale.customer_id,
        description=description,
        employee_id=sale.employee_id,
        date=sale.date,
    )


def get_sale(ledger: Ledger, sale_id: str) -> Sale:
    sale = ledger.get(SALES, sale_id)
    if sale is None:
        raise RecordNotFoundError(f"Sale {sale_id} not found")
    return sale


def create_sale(ledger: Ledger, sale: Sale) -> Sale:
    """
    Record a sale: decrement stock per line, then either accrue customer
    debt (DEBT) or book the sale income (CASH/CARD).

    Raises:
        SaleValidationError: empty/invalid lines, unknown product, DEBT
            without a known customer, duplicate id
    """
    if ledger.get(SALES, sale.id) is not None:
        raise SaleValidationError(f"Sale {sale.id} already recorded")
    if sale.is_deleted:
        raise SaleValidationError("Cannot record a deleted sale")
    sale = _prepare_sale(ledger, sale)

    with ledger.transaction():
        ledger.put(SALES, sale)
        _apply_sale(ledger, sale)
        if not sale.is_debt and sale.total > 0:
            record_entry(ledger, _sale_income_entry(ledger, sale))

    return sale


def cancel_sale(ledger: Ledger, sale_id: str) -> Sale:
    """Soft-delete a sale, restoring stock and (for DEBT) customer debt."""
    sale = get_sale(ledger, sale_id)
    if sale.is_deleted:
        return sale

    with ledger.transaction():
        _reverse_sale(ledger, sale)
        sale = sale.deleted()
        ledger.put(SALES, sale)

    return sale


def update_sale(ledger: Ledger, sale_id: str, new_sale: Sale) -> Sale:
    """
    Replace a sale by reversing the old one in full and applying the new one.

    The new sale keeps the old id. Cash entries are left as they are.

    Raises:
        RecordNotFoundError: unknown sale id
        SaleStateError: the sale is already cancelled
        SaleValidationError: the new sale fails validation
    """
    old_sale = get_sale(ledger, sale_id)
    if old_sale.is_deleted:
        raise SaleStateError("Cannot edit a cancelled sale", details={"sale_id": sale_id})

    new_sale = _prepare_sale(ledger, replace(new_sale, id=old_sale.id, status=old_sale.status))

    with ledger.transaction():
        _reverse_sale(ledger, old_sale)
        _apply_sale(ledger, new_sale)
        ledger.put(SALES, new_sale)

    return new_sale


def sale_profit(sale: Sale) -> Decimal:
    """Revenue minus captured cost for one sale."""
    cost = sum(
        (item.quantity * (item.cost or Decimal("0")) for item in sale.items),
        Decimal("0.00"),
    )
    return sale.total - cost if sale.total is not None else sale.items_total() - cost


def revise_sale(ledger: Ledger, sale_id: str, changes: dict) -> Sale:
    """
    Edit a sale from a partial camelCase payload.

    Unset fields keep their old values. When the items change and no total
    is sent, the total is recomputed from the new items.
    """
    old_sale = get_sale(ledger, sale_id)
    base = old_sale.to_dict()
    if "items" in changes:
        base.pop("total", None)
    return update_sale(ledger, sale_id, Sale.from_dict({**base, **changes, "id": old_sale.id}))
