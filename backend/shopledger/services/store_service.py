# Overview: Service-layer operations for the per-shop key/value store; loads and saves whole ledger collections.

from __future__ import annotations

import logging
import time
from typing import Any

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import AppStoreEntry
from ..records import Order
from ..validation import LedgerError, ValidationError
from .ledger_service import CommandResult, Ledger, LEDGER_KEYS, ORDERS

logger = logging.getLogger(__name__)

ARRAY_KEYS = frozenset({
    "products",
    "transactions",
    "sales",
    "cashEntries",
    "suppliers",
    "customers",
    "employees",
    "categories",
    "orders",
    "posCart",
    "warehouseBatch",
})


class StoreError(ValidationError):
    """Raised for bad store keys or payloads."""
    pass


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locked database) and StaleDataError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Store write conflict, retrying (attempt %d)", attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))


def _check_key(owner_id: str, key: str) -> None:
    if not owner_id or not key:
        raise StoreError("Missing key or user_id")
    if len(key) > 64 or len(str(owner_id)) > 64:
        raise StoreError("key and user_id must be at most 64 characters")


def _default(key: str) -> Any:
    return [] if key in ARRAY_KEYS else {}


def _sanitize(key: str, data: Any) -> Any:
    if key in ARRAY_KEYS:
        return data if isinstance(data, list) else []
    return data


def get_data(owner_id: str, key: str) -> Any:
    """Last saved value for a key, or an empty default."""
    _check_key(owner_id, key)
    entry = db.session.get(AppStoreEntry, (owner_id, key))
    if entry is None or entry.data is None:
        return _default(key)
    return _sanitize(key, entry.data)


def save_data(owner_id: str, key: str, data: Any, *, commit: bool = True) -> AppStoreEntry:
    """Overwrite the whole value of a key (upsert)."""
    _check_key(owner_id, key)
    entry = db.session.get(AppStoreEntry, (owner_id, key))
    if entry is None:
        entry = AppStoreEntry(owner_id=owner_id, key=key)
        db.session.add(entry)
    entry.data = _sanitize(key, data)
    if commit:
        db.session.commit()
    return entry


def list_keys(owner_id: str) -> list[str]:
    rows = (
        db.session.query(AppStoreEntry.key)
        .filter(AppStoreEntry.owner_id == owner_id)
        .order_by(AppStoreEntry.key)
        .all()
    )
    return [row[0] for row in rows]


def load_ledger(owner_id: str) -> Ledger:
    rows = (
        db.session.query(AppStoreEntry)
        .filter(AppStoreEntry.owner_id == owner_id, AppStoreEntry.key.in_(LEDGER_KEYS))
        .all()
    )
    return Ledger.from_collections(owner_id, {row.key: row.data for row in rows})


def save_ledger(ledger: Ledger, keys=None, *, commit: bool = True) -> list[str]:
    """Persist the given (default: dirty) collections whole, then clear them from dirty_keys."""
    keys = sorted(keys if keys is not None else ledger.dirty_keys)
    for key in keys:
        save_data(ledger.owner_id, key, ledger.payload(key), commit=False)
    if commit:
        db.session.commit()
    ledger.dirty_keys.difference_update(keys)
    return keys


def run_command(owner_id: str, command, *args, **kwargs) -> CommandResult:
    """
    Load a shop's ledger, run one service command, save what it changed.

    A command that raises saves nothing.
    """
    def _op():
        ledger = load_ledger(owner_id)
        try:
            result = ledger.execute(command, *args, **kwargs)
        except LedgerError:
            db.session.rollback()
            raise
        save_ledger(ledger, result.changed_keys, commit=False)
        db.session.commit()
        return result

    return run_with_retry(_op)


class StoredOrderReader:
    """Read-only view of other shops' orders, as the B2B flow needs it."""

    def get_order(self, supplier_owner_id: str, order_id: str) -> Order | None:
        for row in get_data(supplier_owner_id, ORDERS):
            if isinstance(row, dict) and str(row.get("id")) == order_id:
                return Order.from_dict(row)
        return None
