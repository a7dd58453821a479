# Overview: B2B reconciliation; turns a remote shop's pending shipment into a local intake batch.

"""
B2B Reconciliation

When a shop orders from another shop on the platform, it records the order
lines as PENDING_IN transactions: no stock moves, the note carries the
remote product as "B2B:<remoteProductId>|<name>", and orderId points at the
order in the SUPPLIER's orders collection. Here supplierId is the remote
shop's owner id, which is also how this shop knows it as a supplier.

Reconciling an order group:

1. Every pending line is resolved to a local product, either an existing
   one (MapToProduct) or a new one created for it (CreateProduct).
2. Everything is validated up front: the remote order must exist and not be
   cancelled, mapped products must exist.
3. In one Ledger.transaction():
   a. new products are created (cost = remote unit price,
      price = cost x markup)
   b. remoteSupplierId_remoteProductId -> localProductId mappings are stored
   c. the lines are posted as a normal intake batch with a fresh batchId
   d. the PENDING_IN rows are removed

Reading the remote order goes through RemoteOrderReader. It is read-only
and separate from the local Ledger so the tenant boundary stays explicit.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Protocol

from ..records import (
    DEFAULT_UNIT,
    Order,
    OrderStatus,
    PaymentMethod,
    Product,
    Transaction,
    TransactionType,
    new_id,
)
from ..time_utils import now_iso
from ..validation import MONEY_QUANT, RecordNotFoundError, ValidationError
from .intake_service import IntakeBatch, IntakeLine, post_intake_batch
from .ledger_service import Ledger, PRODUCTS, TRANSACTIONS

logger = logging.getLogger(__name__)

DEFAULT_MARKUP = Decimal("1.5")
REMOTE_LABEL_PREFIX = "B2B:"


class ReconciliationError(ValidationError):
    """Raised when a pending shipment cannot be reconciled."""
    pass


class RemoteOrderReader(Protocol):
    """Read-only access to another shop's orders."""

    def get_order(self, supplier_owner_id: str, order_id: str) -> Order | None:
        ...


class InMemoryOrderReader:
    """RemoteOrderReader over plain dicts of {ownerId: [order, ...]}."""

    def __init__(self, orders_by_owner: Mapping[str, list] | None = None):
        self._orders = {}
        for owner_id, orders in (orders_by_owner or {}).items():
            self._orders[owner_id] = {
                order.id: order
                for order in (o if isinstance(o, Order) else Order.from_dict(o) for o in orders)
            }

    def get_order(self, supplier_owner_id: str, order_id: str) -> Order | None:
        return self._orders.get(supplier_owner_id, {}).get(order_id)


@dataclass(frozen=True)
class MapToProduct:
    product_id: str


@dataclass(frozen=True)
class CreateProduct:
    name: str
    category: str = ""
    unit: str = DEFAULT_UNIT


@dataclass(frozen=True)
class PendingLine:
    transaction: Transaction
    remote_product_id: str
    remote_name: str

    @property
    def supplier_id(self) -> str:
        return self.transaction.supplier_id or ""

    def to_dict(self) -> dict:
        return {
            **self.transaction.to_dict(),
            "remoteProductId": self.remote_product_id,
            "remoteName": self.remote_name,
        }


@dataclass(frozen=True)
class ReconciliationResult:
    order_id: str
    batch: IntakeBatch
    created_products: tuple[Product, ...]
    mappings: Mapping[str, str]

    def to_dict(self) -> dict:
        return {
            "orderId": self.order_id,
            "batch": self.batch.to_dict(),
            "createdProducts": [p.to_dict() for p in self.created_products],
            "mappings": dict(self.mappings),
        }


def resolution_from_dict(data: dict) -> MapToProduct | CreateProduct:
    """
    {"productId": "p1"} maps to an existing product;
    {"create": {"name": ..., "category": ..., "unit": ...}} asks for a new one.
    """
    if not isinstance(data, dict):
        raise ReconciliationError("Each resolution must be an object")
    if data.get("productId"):
        return MapToProduct(str(data["productId"]).strip())
    create = data.get("create")
    if isinstance(create, dict):
        return CreateProduct(
            name=str(create.get("name") or "").strip(),
            category=str(create.get("category") or "").strip(),
            unit=str(create.get("unit") or DEFAULT_UNIT).strip(),
        )
    raise ReconciliationError("Resolution needs productId or create")


def encode_remote_label(remote_product_id: str, name: str) -> str:
    return f"{REMOTE_LABEL_PREFIX}{remote_product_id}|{name}"


def extract_remote_label(note: str | None) -> tuple[str, str] | None:
    """(remoteProductId, name) from a pending line's note, or None."""
    if not note or not note.startswith(REMOTE_LABEL_PREFIX):
        return None
    body = note[len(REMOTE_LABEL_PREFIX):]
    remote_id, _, name = body.partition("|")
    remote_id = remote_id.strip()
    if not remote_id:
        return None
    return remote_id, name.strip()


def mapping_key(remote_supplier_id: str, remote_product_id: str) -> str:
    return f"{remote_supplier_id}_{remote_product_id}"


def record_pending_shipment(
    ledger: Ledger,
    *,
    supplier_id: str,
    order: Order,
    product_names: Mapping[str, str] | None = None,
    employee_id: str | None = None,
) -> list[Transaction]:
    """
    Record the lines of an order placed with another shop as PENDING_IN rows.

    Quantities and prices come from the order. product_names maps remote
    product ids to display names for the note label.
    """
    if not supplier_id:
        raise ReconciliationError("A supplier must be chosen")
    if ledger.supplier(supplier_id) is None:
        raise ReconciliationError(f"Supplier {supplier_id} not found")
    if not order.items:
        raise ReconciliationError("Order has no lines")
    if pending_lines(ledger, order.id):
        raise ReconciliationError(f"Order {order.id} already has a pending shipment")

    names = product_names or {}
    date = now_iso()
    rows = []
    for item in order.items:
        rows.append(
            Transaction(
                id=new_id(),
                product_id=item.product_id,
                type=TransactionType.PENDING_IN,
                quantity=item.quantity,
                supplier_id=supplier_id,
                price_per_unit=item.price,
                order_id=order.id,
                note=encode_remote_label(item.product_id, names.get(item.product_id, "")),
                employee_id=employee_id,
                date=date,
            )
        )

    with ledger.transaction():
        for row in rows:
            ledger.put(TRANSACTIONS, row)
    return rows


def pending_lines(ledger: Ledger, order_id: str) -> list[PendingLine]:
    lines = []
    for transaction in ledger.transactions:
        if transaction.type is not TransactionType.PENDING_IN or transaction.order_id != order_id:
            continue
        if transaction.is_deleted:
            continue
        label = extract_remote_label(transaction.note)
        if label is None:
            # Older rows only carry the remote id in productId.
            label = (transaction.product_id, "")
        lines.append(PendingLine(transaction=transaction, remote_product_id=label[0], remote_name=label[1]))
    return lines


def pending_orders(ledger: Ledger) -> "OrderedDict[str, list[PendingLine]]":
    """Pending lines grouped by orderId, in first-seen order."""
    groups: "OrderedDict[str, list[PendingLine]]" = OrderedDict()
    for transaction in ledger.transactions:
        if transaction.type is TransactionType.PENDING_IN and transaction.order_id and not transaction.is_deleted:
            groups.setdefault(transaction.order_id, [])
    for order_id in groups:
        groups[order_id] = pending_lines(ledger, order_id)
    return groups


def default_resolution(ledger: Ledger, line: PendingLine):
    """Reuse a stored mapping when its product still exists, else create one named after the remote label."""
    local_id = ledger.mapping(mapping_key(line.supplier_id, line.remote_product_id))
    if local_id and ledger.product(local_id) is not None:
        return MapToProduct(local_id)
    return CreateProduct(name=line.remote_name or line.remote_product_id)


def reconcile_pending_order(
    ledger: Ledger,
    order_id: str,
    resolutions: Mapping[str, MapToProduct | CreateProduct] | None = None,
    *,
    payment_method: PaymentMethod,
    remote_orders: RemoteOrderReader | None = None,
    markup: Decimal = DEFAULT_MARKUP,
    employee_id: str | None = None,
    date: str | None = None,
) -> ReconciliationResult:
    """
    Accept a pending B2B shipment into local stock as one atomic update.

    Args:
        resolutions: remoteProductId -> MapToProduct | CreateProduct; lines
            without one use default_resolution()
        remote_orders: when given, the supplier's copy of the order must
            exist and must not be CANCELLED; its prices fill lines that
            have none

    Raises:
        RecordNotFoundError: no pending lines for the order
        ReconciliationError: remote order missing or cancelled, mapped
            product missing, mixed suppliers in one group
        IntakeValidationError: the resulting batch is rejected
    """
    lines = pending_lines(ledger, order_id)
    if not lines:
        raise RecordNotFoundError(f"No pending shipment for order {order_id}")

    supplier_ids = {line.supplier_id for line in lines}
    if len(supplier_ids) != 1 or "" in supplier_ids:
        raise ReconciliationError(
            "Pending lines must share one supplier", details={"order_id": order_id}
        )
    supplier_id = supplier_ids.pop()

    remote_prices: dict[str, Decimal] = {}
    if remote_orders is not None:
        remote_order = remote_orders.get_order(supplier_id, order_id)
        if remote_order is None:
            raise ReconciliationError(
                "Supplier has no record of this order",
                details={"order_id": order_id, "supplier_id": supplier_id},
            )
        if remote_order.status is OrderStatus.CANCELLED:
            raise ReconciliationError(
                "Supplier cancelled this order", details={"order_id": order_id}
            )
        remote_prices = {item.product_id: item.price for item in remote_order.items}

    resolutions = resolutions or {}
    resolved = []
    for line in lines:
        resolution = resolutions.get(line.remote_product_id) or default_resolution(ledger, line)
        if isinstance(resolution, MapToProduct):
            if ledger.product(resolution.product_id) is None:
                raise ReconciliationError(
                    f"Product {resolution.product_id} not found",
                    details={"remote_product_id": line.remote_product_id},
                )
        elif isinstance(resolution, CreateProduct):
            if not resolution.name.strip():
                raise ReconciliationError(
                    "New product needs a name",
                    details={"remote_product_id": line.remote_product_id},
                )
        else:
            raise ReconciliationError(f"Unsupported resolution for {line.remote_product_id}")

        unit_cost = line.transaction.price_per_unit
        if unit_cost is None:
            unit_cost = remote_prices.get(line.remote_product_id, Decimal("0.00"))
        resolved.append((line, resolution, unit_cost))

    with ledger.transaction():
        created: dict[str, Product] = {}
        mappings: dict[str, str] = {}
        intake_lines = []

        for line, resolution, unit_cost in resolved:
            if isinstance(resolution, MapToProduct):
                local_id = resolution.product_id
            elif line.remote_product_id in created:
                local_id = created[line.remote_product_id].id
            else:
                product = Product(
                    id=new_id(),
                    name=resolution.name.strip(),
                    category=resolution.category,
                    unit=resolution.unit or DEFAULT_UNIT,
                    cost=unit_cost,
                    price=(unit_cost * markup).quantize(MONEY_QUANT),
                )
                ledger.put(PRODUCTS, product)
                created[line.remote_product_id] = product
                local_id = product.id

            key = mapping_key(supplier_id, line.remote_product_id)
            ledger.put_mapping(key, local_id)
            mappings[key] = local_id

            intake_lines.append(
                IntakeLine(
                    product_id=local_id,
                    quantity=line.transaction.quantity,
                    unit_cost=unit_cost,
                    note=line.transaction.note,
                )
            )

        batch = post_intake_batch(
            ledger,
            intake_lines,
            supplier_id=supplier_id,
            payment_method=payment_method,
            date=date,
            employee_id=employee_id,
            order_id=order_id,
        )

        for line in lines:
            ledger.remove(TRANSACTIONS, line.transaction.id)

    logger.info(
        "Reconciled order %s from supplier %s: %d lines, %d new products",
        order_id, supplier_id, len(lines), len(created),
    )
    return ReconciliationResult(
        order_id=order_id,
        batch=batch,
        created_products=tuple(created.values()),
        mappings=mappings,
    )
