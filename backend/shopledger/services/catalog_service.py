# Overview: Catalog CRUD for products, customers and suppliers.

from __future__ import annotations

from dataclasses import replace

from ..records import DEFAULT_UNIT, Customer, Product, ProductType, Supplier, new_id
from ..validation import (
    RecordNotFoundError,
    ValidationError,
    coerce_money,
    coerce_optional_id,
    coerce_quantity,
    coerce_text,
)
from .ledger_service import Ledger, CUSTOMERS, PRODUCTS, SUPPLIERS


class CatalogValidationError(ValidationError):
    """Raised for catalog input errors."""
    pass


# Stock and debt are owned by the ledgers; they are not patchable here.
_PRODUCT_FIELDS = {
    "name": ("name", coerce_text),
    "category": ("category", coerce_text),
    "unit": ("unit", lambda v: coerce_text(v) or DEFAULT_UNIT),
    "sku": ("sku", coerce_text),
    "cost": ("cost", lambda v: coerce_money(v, "cost")),
    "price": ("price", lambda v: coerce_money(v, "price")),
    "minStock": ("min_stock", lambda v: coerce_quantity(v, "minStock")),
}

_PARTY_FIELDS = {
    "name": ("name", coerce_text),
    "phone": ("phone", coerce_text),
    "email": ("email", coerce_optional_id),
}

_CUSTOMER_FIELDS = {
    **_PARTY_FIELDS,
    "address": ("address", coerce_optional_id),
    "discount": ("discount", lambda v: coerce_quantity(v, "discount", default=None)),
}


def _patch(record, fields: dict, changes: dict):
    updates = {}
    for key, value in changes.items():
        if key not in fields:
            raise CatalogValidationError(f"Field {key} cannot be changed", details={"field": key})
        attr, coerce = fields[key]
        updates[attr] = coerce(value)
    return replace(record, **updates)


def _require_name(record) -> None:
    if not record.name:
        raise CatalogValidationError("name is required")


def _check_prices(product: Product) -> None:
    if product.cost < 0 or product.price < 0:
        raise CatalogValidationError("cost and price cannot be negative")
    if product.min_stock < 0:
        raise CatalogValidationError("minStock cannot be negative")


def _get(ledger: Ledger, key: str, record_id: str, label: str):
    record = ledger.get(key, record_id)
    if record is None:
        raise RecordNotFoundError(f"{label} {record_id} not found")
    return record


# -- products -----------------------------------------------------------------

def create_product(ledger: Ledger, payload: dict) -> Product:
    """Add a product. SERVICE items always start (and stay) at quantity 0."""
    product = Product.from_dict({**payload, "id": payload.get("id") or new_id()})
    _require_name(product)
    _check_prices(product)
    if product.quantity < 0:
        raise CatalogValidationError("quantity cannot be negative")
    if ledger.product(product.id) is not None:
        raise CatalogValidationError(f"Product {product.id} already exists")
    if product.type is ProductType.SERVICE:
        product = replace(product, quantity=coerce_quantity(0, "quantity"))
    ledger.put(PRODUCTS, product)
    return product


def update_product(ledger: Ledger, product_id: str, changes: dict) -> Product:
    product = _patch(_get(ledger, PRODUCTS, product_id, "Product"), _PRODUCT_FIELDS, changes)
    _require_name(product)
    _check_prices(product)
    ledger.put(PRODUCTS, product)
    return product


def delete_product(ledger: Ledger, product_id: str) -> None:
    """Remove from the catalog. Past sales keep their lines and captured cost."""
    _get(ledger, PRODUCTS, product_id, "Product")
    ledger.remove(PRODUCTS, product_id)


# -- customers / suppliers ----------------------------------------------------

def create_customer(ledger: Ledger, payload: dict) -> Customer:
    customer = Customer.from_dict({**payload, "id": payload.get("id") or new_id(), "debt": 0})
    _require_name(customer)
    if ledger.customer(customer.id) is not None:
        raise CatalogValidationError(f"Customer {customer.id} already exists")
    ledger.put(CUSTOMERS, customer)
    return customer


def update_customer(ledger: Ledger, customer_id: str, changes: dict) -> Customer:
    customer = _patch(_get(ledger, CUSTOMERS, customer_id, "Customer"), _CUSTOMER_FIELDS, changes)
    _require_name(customer)
    ledger.put(CUSTOMERS, customer)
    return customer


def delete_customer(ledger: Ledger, customer_id: str) -> None:
    _get(ledger, CUSTOMERS, customer_id, "Customer")
    ledger.remove(CUSTOMERS, customer_id)


def create_supplier(ledger: Ledger, payload: dict) -> Supplier:
    supplier = Supplier.from_dict({**payload, "id": payload.get("id") or new_id(), "debt": 0})
    _require_name(supplier)
    if ledger.supplier(supplier.id) is not None:
        raise CatalogValidationError(f"Supplier {supplier.id} already exists")
    ledger.put(SUPPLIERS, supplier)
    return supplier


def update_supplier(ledger: Ledger, supplier_id: str, changes: dict) -> Supplier:
    supplier = _patch(_get(ledger, SUPPLIERS, supplier_id, "Supplier"), _PARTY_FIELDS, changes)
    _require_name(supplier)
    ledger.put(SUPPLIERS, supplier)
    return supplier


def delete_supplier(ledger: Ledger, supplier_id: str) -> None:
    _get(ledger, SUPPLIERS, supplier_id, "Supplier")
    ledger.remove(SUPPLIERS, supplier_id)
