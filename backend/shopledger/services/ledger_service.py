# Overview: The in-memory Ledger that owns one shop's collections; every service operates on it.

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping

from ..records import CashEntry, Customer, Order, Product, Sale, Supplier, Transaction

"""
Ledger invariants (authoritative)

- The Ledger is the only holder of a shop's mutable state. Callers never
  edit collections directly; they call service functions that take the
  ledger as first argument.
- Records are frozen dataclasses. Writes replace a record by id.
- Ledger.transaction() restores every collection if the block raises, so a
  failed command leaves no partial update behind.
- dirty_keys lists the collections written since the last save. Persistence
  writes whole collections (never deltas), so this is all it needs.
"""

PRODUCTS = "products"
SALES = "sales"
ORDERS = "orders"
TRANSACTIONS = "transactions"
CASH_ENTRIES = "cashEntries"
CUSTOMERS = "customers"
SUPPLIERS = "suppliers"
PRODUCT_MAPPINGS = "productMappings"

RECORD_TYPES: dict[str, type] = {
    PRODUCTS: Product,
    SALES: Sale,
    ORDERS: Order,
    TRANSACTIONS: Transaction,
    CASH_ENTRIES: CashEntry,
    CUSTOMERS: Customer,
    SUPPLIERS: Supplier,
}

LEDGER_KEYS = tuple(RECORD_TYPES) + (PRODUCT_MAPPINGS,)


@dataclass(frozen=True)
class LedgerSnapshot:
    """Read-only view of a ledger at one point in time."""
    owner_id: str
    collections: Mapping[str, Mapping[str, Any]]

    def records(self, key: str) -> tuple:
        return tuple(self.collections[key].values())

    def get(self, key: str, record_id: str):
        return self.collections[key].get(record_id)


@dataclass(frozen=True)
class CommandResult:
    """What a command returned, the state it left, and which collections it wrote."""
    value: Any
    snapshot: LedgerSnapshot
    changed_keys: frozenset[str]


class Ledger:
    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        self._collections: dict[str, dict[str, Any]] = {key: {} for key in LEDGER_KEYS}
        self.dirty_keys: set[str] = set()

    # -- construction / serialization -------------------------------------

    @classmethod
    def from_collections(cls, owner_id: str, data: Mapping[str, Any]) -> "Ledger":
        """
        Build a ledger from stored JSON payloads keyed by collection name.

        Missing keys load as empty collections. The mapping table is a plain
        object; every other key is an array of camelCase records.
        """
        ledger = cls(owner_id)
        for key, record_type in RECORD_TYPES.items():
            rows = data.get(key) or []
            ledger._collections[key] = {
                record.id: record
                for record in (record_type.from_dict(row) for row in rows if isinstance(row, dict))
            }
        mappings = data.get(PRODUCT_MAPPINGS) or {}
        if isinstance(mappings, dict):
            ledger._collections[PRODUCT_MAPPINGS] = {str(k): str(v) for k, v in mappings.items()}
        return ledger

    def payload(self, key: str) -> Any:
        """JSON-ready value for one collection key, as the store persists it."""
        if key == PRODUCT_MAPPINGS:
            return dict(self._collections[key])
        return [record.to_dict() for record in self._collections[key].values()]

    def to_collections(self, keys=None) -> dict[str, Any]:
        return {key: self.payload(key) for key in (keys or LEDGER_KEYS)}

    def replace_collection(self, key: str, payload: Any) -> None:
        """Overwrite one collection from a fetched payload (refetch path)."""
        fresh = Ledger.from_collections(self.owner_id, {key: payload})
        self._collections[key] = fresh._collections[key]
        self.dirty_keys.discard(key)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            owner_id=self.owner_id,
            collections=MappingProxyType(
                {key: MappingProxyType(dict(rows)) for key, rows in self._collections.items()}
            ),
        )

    # -- record access -----------------------------------------------------

    def records(self, key: str) -> tuple:
        return tuple(self._collections[key].values())

    def get(self, key: str, record_id: str | None):
        if record_id is None:
            return None
        return self._collections[key].get(record_id)

    def put(self, key: str, record) -> None:
        self._collections[key][record.id] = record
        self.dirty_keys.add(key)

    def remove(self, key: str, record_id: str) -> None:
        if self._collections[key].pop(record_id, None) is not None:
            self.dirty_keys.add(key)

    def product(self, product_id: str | None) -> Product | None:
        return self.get(PRODUCTS, product_id)

    def customer(self, customer_id: str | None) -> Customer | None:
        return self.get(CUSTOMERS, customer_id)

    def supplier(self, supplier_id: str | None) -> Supplier | None:
        return self.get(SUPPLIERS, supplier_id)

    @property
    def products(self) -> tuple[Product, ...]:
        return self.records(PRODUCTS)

    @property
    def sales(self) -> tuple[Sale, ...]:
        return self.records(SALES)

    @property
    def orders(self) -> tuple[Order, ...]:
        return self.records(ORDERS)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self.records(TRANSACTIONS)

    @property
    def cash_entries(self) -> tuple[CashEntry, ...]:
        return self.records(CASH_ENTRIES)

    @property
    def customers(self) -> tuple[Customer, ...]:
        return self.records(CUSTOMERS)

    @property
    def suppliers(self) -> tuple[Supplier, ...]:
        return self.records(SUPPLIERS)

    # -- B2B mapping table ---------------------------------------------------

    def mapping(self, mapping_key: str) -> str | None:
        return self._collections[PRODUCT_MAPPINGS].get(mapping_key)

    def put_mapping(self, mapping_key: str, local_product_id: str) -> None:
        self._collections[PRODUCT_MAPPINGS][mapping_key] = local_product_id
        self.dirty_keys.add(PRODUCT_MAPPINGS)

    @property
    def product_mappings(self) -> Mapping[str, str]:
        return MappingProxyType(self._collections[PRODUCT_MAPPINGS])

    # -- atomicity -------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["Ledger"]:
        """
        All-or-nothing block over every collection.

        Records are immutable, so a shallow copy of each id -> record mapping
        is a complete restore point. Nested blocks are fine: the innermost
        failure restores its own start point and re-raises.
        """
        saved = {key: dict(rows) for key, rows in self._collections.items()}
        saved_dirty = set(self.dirty_keys)
        try:
            yield self
        except Exception:
            self._collections = saved
            self.dirty_keys = saved_dirty
            raise

    def execute(self, command: Callable[..., Any], *args, **kwargs) -> CommandResult:
        """
        Run a service function against this ledger and report what it did.

        Example:
            result = ledger.execute(sales_service.cancel_sale, sale_id)
            result.changed_keys  # frozenset({"products", "sales"})
        """
        before = set(self.dirty_keys)
        self.dirty_keys = set()
        try:
            with self.transaction():
                value = command(self, *args, **kwargs)
            changed = frozenset(self.dirty_keys)
        finally:
            self.dirty_keys |= before
        return CommandResult(value=value, snapshot=self.snapshot(), changed_keys=changed)
