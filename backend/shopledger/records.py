"""
Ledger records.

Every collection a shop owns (products, sales, orders, transactions, cash
entries, customers, suppliers) is stored as a JSON array of camelCase objects.
The classes below are the in-memory form of those objects: frozen, so the
services replace records instead of mutating them, which is what lets
Ledger.transaction() roll back by restoring the previous mappings.

Soft deletion is modelled as a RecordStatus instead of a loose boolean.
ACTIVE -> DELETED is one-way: records expose deleted() but nothing that goes
back, and the wire format keeps the legacy `isDeleted` flag.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from .time_utils import now_iso
from .validation import (
    ValidationError,
    coerce_choice,
    coerce_money,
    coerce_optional_id,
    coerce_quantity,
    coerce_text,
    to_number,
)


DEFAULT_UNIT = "шт"


def new_id() -> str:
    return uuid.uuid4().hex[:12]


class ProductType(str, Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    DEBT = "DEBT"


class OrderStatus(str, Enum):
    NEW = "NEW"
    ACCEPTED = "ACCEPTED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class TransactionType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    PENDING_IN = "PENDING_IN"


class CashEntryType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class RecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


def _status_from(data: dict) -> RecordStatus:
    return RecordStatus.DELETED if data.get("isDeleted") else RecordStatus.ACTIVE


def _record_id(data: dict) -> str:
    return coerce_optional_id(data.get("id")) or new_id()


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: str = ""
    unit: str = DEFAULT_UNIT
    type: ProductType = ProductType.PRODUCT
    quantity: Decimal = Decimal("0")
    cost: Decimal = Decimal("0.00")
    price: Decimal = Decimal("0.00")
    min_stock: Decimal = Decimal("0")
    sku: str = ""

    @property
    def is_service(self) -> bool:
        return self.type is ProductType.SERVICE

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        return cls(
            id=_record_id(data),
            name=coerce_text(data.get("name")),
            category=coerce_text(data.get("category")),
            unit=coerce_text(data.get("unit"), default=DEFAULT_UNIT) or DEFAULT_UNIT,
            type=coerce_choice(ProductType, data.get("type"), "type", default=ProductType.PRODUCT),
            quantity=coerce_quantity(data.get("quantity"), "quantity"),
            cost=coerce_money(data.get("cost"), "cost"),
            price=coerce_money(data.get("price"), "price"),
            min_stock=coerce_quantity(data.get("minStock"), "minStock"),
            sku=coerce_text(data.get("sku")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "unit": self.unit,
            "type": self.type.value,
            "quantity": to_number(self.quantity),
            "cost": to_number(self.cost),
            "price": to_number(self.price),
            "minStock": to_number(self.min_stock),
        }


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    phone: str = ""
    email: str | None = None
    address: str | None = None
    discount: Decimal | None = None
    debt: Decimal = Decimal("0.00")

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        return cls(
            id=_record_id(data),
            name=coerce_text(data.get("name")),
            phone=coerce_text(data.get("phone")),
            email=coerce_optional_id(data.get("email")),
            address=coerce_optional_id(data.get("address")),
            discount=coerce_quantity(data.get("discount"), "discount", default=None),
            debt=coerce_money(data.get("debt"), "debt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "discount": to_number(self.discount),
            "debt": to_number(self.debt),
        }


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    phone: str = ""
    email: str | None = None
    debt: Decimal = Decimal("0.00")

    @classmethod
    def from_dict(cls, data: dict) -> "Supplier":
        return cls(
            id=_record_id(data),
            name=coerce_text(data.get("name")),
            phone=coerce_text(data.get("phone")),
            email=coerce_optional_id(data.get("email")),
            debt=coerce_money(data.get("debt"), "debt"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "debt": to_number(self.debt),
        }


# ---------------------------------------------------------------------------
# Sales and orders
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SaleItem:
    product_id: str
    quantity: Decimal
    price: Decimal
    # Unit cost at the moment of sale; None until the sale service captures it.
    cost: Decimal | None = None

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.price

    @classmethod
    def from_dict(cls, data: dict) -> "SaleItem":
        product_id = coerce_optional_id(data.get("productId"))
        if product_id is None:
            raise ValidationError("productId is required for every item")
        return cls(
            product_id=product_id,
            quantity=coerce_quantity(data.get("quantity"), "quantity"),
            price=coerce_money(data.get("price"), "price"),
            cost=coerce_money(data.get("cost"), "cost", default=None),
        )

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": to_number(self.quantity),
            "price": to_number(self.price),
            "cost": to_number(self.cost if self.cost is not None else Decimal("0")),
        }


@dataclass(frozen=True)
class Sale:
    id: str
    items: tuple[SaleItem, ...]
    payment_method: PaymentMethod
    # None means "sum of the item lines"; the sale service fills it in.
    total: Decimal | None = None
    customer_id: str | None = None
    employee_id: str | None = None
    date: str = field(default_factory=now_iso)
    status: RecordStatus = RecordStatus.ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.status is RecordStatus.DELETED

    @property
    def is_debt(self) -> bool:
        return self.payment_method is PaymentMethod.DEBT

    def items_total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0.00"))

    def deleted(self) -> "Sale":
        return replace(self, status=RecordStatus.DELETED)

    @classmethod
    def from_dict(cls, data: dict) -> "Sale":
        return cls(
            id=_record_id(data),
            items=tuple(SaleItem.from_dict(item) for item in data.get("items") or ()),
            payment_method=coerce_choice(
                PaymentMethod, data.get("paymentMethod"), "paymentMethod", default=PaymentMethod.CASH
            ),
            total=coerce_money(data.get("total"), "total", default=None),
            customer_id=coerce_optional_id(data.get("customerId")),
            employee_id=coerce_optional_id(data.get("employeeId")),
            date=coerce_text(data.get("date")) or now_iso(),
            status=_status_from(data),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "items": [item.to_dict() for item in self.items],
            "total": to_number(self.total if self.total is not None else self.items_total()),
            "paymentMethod": self.payment_method.value,
            "customerId": self.customer_id,
            "date": self.date,
            "isDeleted": self.is_deleted,
        }


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    quantity: Decimal
    price: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> "OrderItem":
        product_id = coerce_optional_id(data.get("productId"))
        if product_id is None:
            raise ValidationError("productId is required for every item")
        return cls(
            product_id=product_id,
            quantity=coerce_quantity(data.get("quantity"), "quantity"),
            price=coerce_money(data.get("price"), "price"),
        )

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "quantity": to_number(self.quantity),
            "price": to_number(self.price),
        }


@dataclass(frozen=True)
class Order:
    id: str
    customer_id: str
    items: tuple[OrderItem, ...]
    total: Decimal
    status: OrderStatus = OrderStatus.NEW
    payment_method: PaymentMethod | None = None
    # Free text; also carries "[Name: ..., Phone: ...]" for unknown clients.
    note: str | None = None
    date: str = field(default_factory=now_iso)

    @property
    def is_open(self) -> bool:
        return self.status in (OrderStatus.NEW, OrderStatus.ACCEPTED)

    def with_status(self, status: OrderStatus) -> "Order":
        return replace(self, status=status)

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        items = tuple(OrderItem.from_dict(item) for item in data.get("items") or ())
        total = coerce_money(data.get("total"), "total", default=None)
        if total is None:
            total = sum((i.quantity * i.price for i in items), Decimal("0.00"))
        return cls(
            id=_record_id(data),
            customer_id=coerce_text(data.get("customerId")),
            items=items,
            total=total,
            status=coerce_choice(OrderStatus, data.get("status"), "status", default=OrderStatus.NEW),
            payment_method=coerce_choice(PaymentMethod, data.get("paymentMethod"), "paymentMethod"),
            note=coerce_optional_id(data.get("note")),
            date=coerce_text(data.get("date")) or now_iso(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customerId": self.customer_id,
            "items": [item.to_dict() for item in self.items],
            "total": to_number(self.total),
            "status": self.status.value,
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "note": self.note,
            "date": self.date,
        }


# ---------------------------------------------------------------------------
# Stock movements and cash
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Transaction:
    id: str
    product_id: str
    type: TransactionType
    quantity: Decimal
    supplier_id: str | None = None
    price_per_unit: Decimal | None = None
    payment_method: PaymentMethod | None = None
    batch_id: str | None = None
    order_id: str | None = None
    note: str = ""
    employee_id: str | None = None
    date: str = field(default_factory=now_iso)
    status: RecordStatus = RecordStatus.ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.status is RecordStatus.DELETED

    @property
    def total_cost(self) -> Decimal:
        return self.quantity * (self.price_per_unit or Decimal("0"))

    def deleted(self) -> "Transaction":
        return replace(self, status=RecordStatus.DELETED)

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        return cls(
            id=_record_id(data),
            product_id=coerce_text(data.get("productId")),
            type=coerce_choice(TransactionType, data.get("type"), "type", default=TransactionType.IN),
            quantity=coerce_quantity(data.get("quantity"), "quantity"),
            supplier_id=coerce_optional_id(data.get("supplierId")),
            price_per_unit=coerce_money(data.get("pricePerUnit"), "pricePerUnit", default=None),
            payment_method=coerce_choice(PaymentMethod, data.get("paymentMethod"), "paymentMethod"),
            batch_id=coerce_optional_id(data.get("batchId")),
            order_id=coerce_optional_id(data.get("orderId")),
            note=coerce_text(data.get("note")),
            employee_id=coerce_optional_id(data.get("employeeId")),
            date=coerce_text(data.get("date")) or now_iso(),
            status=_status_from(data),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "supplierId": self.supplier_id,
            "type": self.type.value,
            "quantity": to_number(self.quantity),
            "pricePerUnit": to_number(self.price_per_unit),
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "batchId": self.batch_id,
            "orderId": self.order_id,
            "note": self.note,
            "employeeId": self.employee_id,
            "date": self.date,
            "isDeleted": self.is_deleted,
        }


@dataclass(frozen=True)
class CashEntry:
    id: str
    type: CashEntryType
    amount: Decimal
    category: str
    customer_id: str | None = None
    supplier_id: str | None = None
    description: str = ""
    employee_id: str | None = None
    date: str = field(default_factory=now_iso)

    @classmethod
    def from_dict(cls, data: dict) -> "CashEntry":
        entry_type = coerce_choice(CashEntryType, data.get("type"), "type")
        if entry_type is None:
            raise ValidationError("type is required")
        return cls(
            id=_record_id(data),
            type=entry_type,
            amount=coerce_money(data.get("amount"), "amount"),
            category=coerce_text(data.get("category")),
            customer_id=coerce_optional_id(data.get("customerId")),
            supplier_id=coerce_optional_id(data.get("supplierId")),
            description=coerce_text(data.get("description")),
            employee_id=coerce_optional_id(data.get("employeeId")),
            date=coerce_text(data.get("date")) or now_iso(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": to_number(self.amount),
            "type": self.type.value,
            "category": self.category,
            "date": self.date,
            "description": self.description,
            "employeeId": self.employee_id,
            "customerId": self.customer_id,
            "supplierId": self.supplier_id,
        }
