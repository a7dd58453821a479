# Overview: Supplier intake; posts a batch of stock-IN transactions and accrues or pays supplier debt.

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal

from ..records import CashEntry, CashEntryType, PaymentMethod, Transaction, TransactionType, new_id
from ..time_utils import now_iso
from ..validation import (
    RecordNotFoundError,
    ValidationError,
    coerce_money,
    coerce_optional_id,
    coerce_quantity,
    coerce_text,
    to_number,
)
from .cash_service import PURCHASE_CATEGORY, record_entry
from .debt_service import decrease_supplier_debt, increase_supplier_debt
from .ledger_service import Ledger, TRANSACTIONS
from .stock_service import apply_stock_delta, set_unit_cost

"""
Intake invariants (authoritative)

- One IN transaction per batch line; every line shares one batchId.
- Stock is applied once per product with the quantities summed across the
  batch. The catalog cost becomes the LAST unit cost seen for that product
  in the batch (not an average).
- DEBT batches add sum(quantity * unitCost) to the supplier's debt.
- CASH batches book one EXPENSE "Purchase" entry for the batch total. It is
  appended directly and leaves supplier debt alone.
- No stock or debt level checks happen before posting.
"""

INTAKE_PAYMENT_METHODS = (PaymentMethod.CASH, PaymentMethod.DEBT)


class IntakeValidationError(ValidationError):
    """Raised when an intake batch is rejected before posting."""
    pass


@dataclass(frozen=True)
class IntakeLine:
    product_id: str
    quantity: Decimal
    unit_cost: Decimal
    note: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "IntakeLine":
        product_id = coerce_optional_id(data.get("productId"))
        if product_id is None:
            raise IntakeValidationError("productId is required for every line")
        return cls(
            product_id=product_id,
            quantity=coerce_quantity(data.get("quantity"), "quantity"),
            unit_cost=coerce_money(data.get("unitCost", data.get("pricePerUnit")), "unitCost"),
            note=coerce_text(data.get("note")),
        )


@dataclass(frozen=True)
class IntakeBatch:
    batch_id: str
    supplier_id: str
    payment_method: PaymentMethod
    transactions: tuple[Transaction, ...]
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "batchId": self.batch_id,
            "supplierId": self.supplier_id,
            "paymentMethod": self.payment_method.value,
            "total": to_number(self.total),
            "transactions": [t.to_dict() for t in self.transactions],
        }


def _validate_batch(ledger: Ledger, lines, supplier_id, payment_method) -> None:
    if not supplier_id:
        raise IntakeValidationError("A supplier must be chosen")
    if ledger.supplier(supplier_id) is None:
        raise IntakeValidationError(f"Supplier {supplier_id} not found")
    if payment_method not in INTAKE_PAYMENT_METHODS:
        raise IntakeValidationError(
            "paymentMethod must be CASH or DEBT",
            details={"payment_method": getattr(payment_method, "value", payment_method)},
        )
    if not lines:
        raise IntakeValidationError("Batch has no lines")

    for index, line in enumerate(lines):
        if ledger.product(line.product_id) is None:
            raise IntakeValidationError(
                f"Product {line.product_id} not found", details={"line": index}
            )
        if line.quantity <= 0:
            raise IntakeValidationError("quantity must be positive", details={"line": index})
        if line.unit_cost < 0:
            raise IntakeValidationError("unitCost cannot be negative", details={"line": index})


def post_intake_batch(
    ledger: Ledger,
    lines,
    *,
    supplier_id: str,
    payment_method: PaymentMethod,
    date: str | None = None,
    note: str | None = None,
    employee_id: str | None = None,
    batch_id: str | None = None,
    order_id: str | None = None,
) -> IntakeBatch:
    """
    Receive goods from a supplier.

    Args:
        lines: IntakeLine items; a product may appear more than once
        supplier_id: required, must exist
        payment_method: CASH or DEBT
        order_id: set when the batch settles a B2B order

    Raises:
        IntakeValidationError: missing/unknown supplier or product, bad
            payment method, non-positive quantity, negative cost
    """
    lines = list(lines)
    _validate_batch(ledger, lines, supplier_id, payment_method)

    batch_id = batch_id or new_id()
    date = date or now_iso()

    transactions = []
    received: "OrderedDict[str, Decimal]" = OrderedDict()
    last_cost: dict[str, Decimal] = {}
    total = Decimal("0.00")

    for line in lines:
        transactions.append(
            Transaction(
                id=new_id(),
                product_id=line.product_id,
                type=TransactionType.IN,
                quantity=line.quantity,
                supplier_id=supplier_id,
                price_per_unit=line.unit_cost,
                payment_method=payment_method,
                batch_id=batch_id,
                order_id=order_id,
                note=line.note or note or "",
                employee_id=employee_id,
                date=date,
            )
        )
        received[line.product_id] = received.get(line.product_id, Decimal("0")) + line.quantity
        last_cost[line.product_id] = line.unit_cost
        total += line.quantity * line.unit_cost

    with ledger.transaction():
        for transaction in transactions:
            ledger.put(TRANSACTIONS, transaction)

        for product_id, quantity in received.items():
            apply_stock_delta(ledger, product_id, quantity)
            set_unit_cost(ledger, product_id, last_cost[product_id])

        if payment_method is PaymentMethod.DEBT:
            increase_supplier_debt(ledger, supplier_id, total)
        elif total > 0:
            supplier = ledger.supplier(supplier_id)
            record_entry(
                ledger,
                CashEntry(
                    id=f"purchase-{batch_id}",
                    type=CashEntryType.EXPENSE,
                    amount=total,
                    category=PURCHASE_CATEGORY,
                    supplier_id=supplier_id,
                    description=f"Batch #{batch_id[-4:]} ({supplier.name})",
                    employee_id=employee_id,
                    date=date,
                ),
            )

    return IntakeBatch(
        batch_id=batch_id,
        supplier_id=supplier_id,
        payment_method=payment_method,
        transactions=tuple(transactions),
        total=total,
    )


def get_transaction(ledger: Ledger, transaction_id: str) -> Transaction:
    transaction = ledger.get(TRANSACTIONS, transaction_id)
    if transaction is None:
        raise RecordNotFoundError(f"Transaction {transaction_id} not found")
    return transaction


def delete_transaction(ledger: Ledger, transaction_id: str) -> Transaction:
    """
    Soft-delete a stock transaction.

    A deleted IN row gives back its stock and, when bought on DEBT, the
    supplier debt it created. The purchase cash entry of a CASH batch stays,
    the same way sale income stays when a sale is cancelled. PENDING_IN and
    other rows are only flagged.
    """
    transaction = get_transaction(ledger, transaction_id)
    if transaction.is_deleted:
        return transaction

    with ledger.transaction():
        if transaction.type is TransactionType.IN:
            apply_stock_delta(ledger, transaction.product_id, -transaction.quantity)
            if transaction.payment_method is PaymentMethod.DEBT and transaction.supplier_id:
                decrease_supplier_debt(ledger, transaction.supplier_id, transaction.total_cost)
        transaction = transaction.deleted()
        ledger.put(TRANSACTIONS, transaction)

    return transaction


def batch_transactions(ledger: Ledger, batch_id: str) -> list[Transaction]:
    return [t for t in ledger.transactions if t.batch_id == batch_id]
