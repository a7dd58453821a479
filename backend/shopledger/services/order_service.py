# Overview: Order pipeline; NEW -> ACCEPTED -> CONFIRMED | CANCELLED, confirmation produces a Sale.

from __future__ import annotations

import re
from dataclasses import replace
from decimal import Decimal

from ..records import Order, OrderItem, OrderStatus, PaymentMethod, Sale, SaleItem, new_id
from ..time_utils import now_iso
from ..validation import RecordNotFoundError, StateError, ValidationError
from .ledger_service import Ledger, ORDERS
from .sales_service import create_sale

"""
Order pipeline invariants (authoritative)

- Orders never touch stock or debt themselves. Only confirmation does, by
  delegating to sales_service.create_sale() with a sale built from the order.
- CONFIRMED and CANCELLED are terminal.
- Items may be edited only while ACCEPTED; the total is recomputed.
- Confirmation does not check available stock. The stock floor applies.
"""

_ALLOWED_TRANSITIONS = {
    OrderStatus.NEW: {OrderStatus.ACCEPTED, OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: set(),
    OrderStatus.CANCELLED: set(),
}

_CONTACT_NAME_RE = re.compile(r"\[(?:Name|Имя):\s*([^,\]]+)")
_CONTACT_PHONE_RE = re.compile(r"(?:Phone|Тел):\s*([^\]]+)")


class OrderValidationError(ValidationError):
    """Raised when order input is rejected."""
    pass


class OrderStateError(StateError):
    """Raised when an order's status forbids the operation."""
    pass


def order_sale_id(order_id: str) -> str:
    return f"order-{order_id}"


def get_order(ledger: Ledger, order_id: str) -> Order:
    order = ledger.get(ORDERS, order_id)
    if order is None:
        raise RecordNotFoundError(f"Order {order_id} not found")
    return order


def _transition(order: Order, target: OrderStatus) -> Order:
    if target not in _ALLOWED_TRANSITIONS[order.status]:
        raise OrderStateError(
            f"Cannot move order from {order.status.value} to {target.value}",
            details={"order_id": order.id, "status": order.status.value},
        )
    return order.with_status(target)


def _validate_items(items) -> tuple[OrderItem, ...]:
    if not items:
        raise OrderValidationError("Order must have at least one item")
    for item in items:
        if item.quantity <= 0:
            raise OrderValidationError(
                "Item quantity must be positive", details={"product_id": item.product_id}
            )
        if item.price < 0:
            raise OrderValidationError(
                "Item price cannot be negative", details={"product_id": item.product_id}
            )
    return tuple(items)


def _items_total(items) -> Decimal:
    return sum((item.quantity * item.price for item in items), Decimal("0.00"))


def place_order(
    ledger: Ledger,
    *,
    customer_id: str,
    items,
    payment_method: PaymentMethod | None = None,
    note: str | None = None,
    order_id: str | None = None,
    date: str | None = None,
) -> Order:
    """Create a NEW order. customer_id may name a client this shop has no record of."""
    if not customer_id:
        raise OrderValidationError("customerId is required")
    items = _validate_items(items)
    order_id = order_id or new_id()
    if ledger.get(ORDERS, order_id) is not None:
        raise OrderValidationError(f"Order {order_id} already exists")

    order = Order(
        id=order_id,
        customer_id=customer_id,
        items=items,
        total=_items_total(items),
        status=OrderStatus.NEW,
        payment_method=payment_method,
        note=note,
        date=date or now_iso(),
    )
    ledger.put(ORDERS, order)
    return order


def accept_order(ledger: Ledger, order_id: str) -> Order:
    order = _transition(get_order(ledger, order_id), OrderStatus.ACCEPTED)
    ledger.put(ORDERS, order)
    return order


def cancel_order(ledger: Ledger, order_id: str) -> Order:
    """Reject/cancel from NEW or ACCEPTED. Nothing was reserved, so nothing is released."""
    order = _transition(get_order(ledger, order_id), OrderStatus.CANCELLED)
    ledger.put(ORDERS, order)
    return order


def edit_order(ledger: Ledger, order_id: str, items, *, payment_method: PaymentMethod | None = None) -> Order:
    """Replace the lines of an ACCEPTED order and recompute its total."""
    order = get_order(ledger, order_id)
    if order.status is not OrderStatus.ACCEPTED:
        raise OrderStateError(
            "Only ACCEPTED orders can be edited",
            details={"order_id": order.id, "status": order.status.value},
        )
    items = _validate_items(items)
    order = replace(
        order,
        items=items,
        total=_items_total(items),
        payment_method=payment_method or order.payment_method,
    )
    ledger.put(ORDERS, order)
    return order


def confirm_order(
    ledger: Ledger,
    order_id: str,
    *,
    payment_method: PaymentMethod | None = None,
    employee_id: str | None = None,
) -> Sale:
    """
    Turn an open order into a sale and mark it CONFIRMED.

    Line costs come from the catalog at confirmation time. Payment falls
    back to the order's method, then DEBT. Returns the created Sale.

    Raises:
        OrderStateError: the order is CONFIRMED or CANCELLED
        SaleValidationError: the built sale is rejected (e.g. unknown
            customer on a DEBT sale); the order stays unchanged
    """
    order = get_order(ledger, order_id)
    confirmed = _transition(order, OrderStatus.CONFIRMED)

    method = payment_method or order.payment_method or PaymentMethod.DEBT
    items = []
    for item in order.items:
        product = ledger.product(item.product_id)
        items.append(
            SaleItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                cost=product.cost if product is not None else None,
            )
        )

    sale = Sale(
        id=order_sale_id(order.id),
        items=tuple(items),
        payment_method=method,
        total=order.total,
        customer_id=order.customer_id or None,
        employee_id=employee_id,
        date=now_iso(),
    )

    with ledger.transaction():
        sale = create_sale(ledger, sale)
        ledger.put(ORDERS, replace(confirmed, payment_method=method))

    return sale


def order_contact(ledger: Ledger, order: Order) -> dict:
    """
    Display name and phone for an order's client.

    Falls back to the "[Name: ..., Phone: ...]" block a guest client leaves
    in the note when the customer id has no record in this shop.
    """
    customer = ledger.customer(order.customer_id)
    if customer is not None:
        return {"name": customer.name, "phone": customer.phone, "known": True}

    note = order.note or ""
    name_match = _CONTACT_NAME_RE.search(note)
    phone_match = _CONTACT_PHONE_RE.search(note)
    if name_match and name_match.group(1).strip():
        name = name_match.group(1).strip()
    elif "[Name:" in note or "[Имя:" in note:
        name = "New client"
    else:
        name = "Unknown client"
    return {
        "name": name,
        "phone": phone_match.group(1).strip() if phone_match else "",
        "known": False,
    }
