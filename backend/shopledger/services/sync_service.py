# Overview: Client-side sync of a shop's ledger with the /api/data store (debounced save, periodic refetch).

"""
Sync session

A SyncSession holds one shop's Ledger in memory on the client side and keeps
it loosely in step with the server:

- run() executes a ledger command locally and marks the collections it
  touched as pending.
- tick() is called by the host loop. Once no command has run for
  debounce_seconds, every pending collection is saved WHOLE. Every
  refetch_seconds, all collections are fetched and overwrite local state.
- Nothing is saved before the first successful load, so an empty local
  ledger can never overwrite server data.

Failures never roll back local state. A failed save keeps its key pending
and sets status to ERROR; the next tick retries. Two sessions editing the
same shop resolve last-write-wins per collection, and a refetch that lands
before a pending save discards the local edit. Both are accepted behaviour
of whole-collection sync.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Protocol

import httpx

from ..validation import LedgerError
from .ledger_service import CommandResult, Ledger, LEDGER_KEYS

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    IDLE = "IDLE"
    SYNCING = "SYNCING"
    ERROR = "ERROR"


class SyncError(Exception):
    """Raised by a transport when the store cannot be reached or refuses a call."""
    pass


class Transport(Protocol):
    def fetch(self, key: str) -> Any:
        ...

    def save(self, key: str, data: Any) -> None:
        ...


class HttpTransport:
    """
    Speaks the /api/data protocol:

        POST /api/data       {"key", "user_id"}          -> stored value
        POST /api/data/save  {"key", "data", "user_id"}  -> 200
    """

    def __init__(
        self,
        base_url: str,
        owner_id: str,
        *,
        timeout: float = 8.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.owner_id = owner_id
        self.client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def _post(self, path: str, payload: dict) -> httpx.Response:
        try:
            response = self.client.post(path, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise SyncError(f"{path} failed: {exc}") from exc
        return response

    def fetch(self, key: str) -> Any:
        return self._post("/api/data", {"key": key, "user_id": self.owner_id}).json()

    def save(self, key: str, data: Any) -> None:
        self._post("/api/data/save", {"key": key, "data": data, "user_id": self.owner_id})

    def close(self) -> None:
        self.client.close()


class SyncSession:
    def __init__(
        self,
        owner_id: str,
        transport: Transport,
        *,
        debounce_seconds: float = 5.0,
        refetch_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        keys=LEDGER_KEYS,
    ):
        self.owner_id = owner_id
        self.transport = transport
        self.debounce_seconds = debounce_seconds
        self.refetch_seconds = refetch_seconds
        self.clock = clock
        self.keys = tuple(keys)

        self.ledger = Ledger(owner_id)
        self.status = SyncStatus.IDLE
        self.loaded = False
        self.pending: set[str] = set()
        self.last_error: str | None = None

        self._last_change: float | None = None
        self._last_fetch: float | None = None

    @classmethod
    def from_config(cls, base_url: str, owner_id: str, config, *, transport=None, **kwargs) -> "SyncSession":
        """Session over HttpTransport with timings from a Flask config mapping."""
        http = HttpTransport(
            base_url,
            owner_id,
            timeout=float(config.get("SYNC_TIMEOUT_SECONDS", 8.0)),
            transport=transport,
        )
        return cls(
            owner_id,
            http,
            debounce_seconds=float(config.get("SYNC_DEBOUNCE_SECONDS", 5.0)),
            refetch_seconds=float(config.get("SYNC_REFETCH_SECONDS", 30.0)),
            **kwargs,
        )

    def load(self) -> bool:
        """Fetch every collection. Returns False (status ERROR) if any fetch fails."""
        self.status = SyncStatus.SYNCING
        fetched = {}
        try:
            for key in self.keys:
                fetched[key] = self.transport.fetch(key)
            ledger = Ledger.from_collections(self.owner_id, fetched)
        except (SyncError, LedgerError, ValueError) as exc:
            self._fail("load", exc)
            return False

        self.ledger = ledger
        self.pending.clear()
        self.loaded = True
        self._last_fetch = self.clock()
        self.status = SyncStatus.IDLE
        self.last_error = None
        return True

    def run(self, command, *args, **kwargs) -> CommandResult:
        """Execute a ledger command locally and queue its collections for saving."""
        result = self.ledger.execute(command, *args, **kwargs)
        if result.changed_keys:
            self.pending |= result.changed_keys
            self._last_change = self.clock()
        return result

    def flush(self) -> bool:
        """Save every pending collection now. Refused until the first successful load."""
        if not self.loaded:
            logger.warning("Save skipped for %s: data was never loaded", self.owner_id)
            return False
        if not self.pending:
            return True

        self.status = SyncStatus.SYNCING
        failed = False
        for key in sorted(self.pending):
            try:
                self.transport.save(key, self.ledger.payload(key))
            except SyncError as exc:
                failed = True
                self._fail(f"save {key}", exc)
                continue
            self.pending.discard(key)
            self.ledger.dirty_keys.discard(key)

        if not failed:
            self.status = SyncStatus.IDLE
            self.last_error = None
        return not failed

    def tick(self) -> None:
        """Host-loop hook: flush after the quiet window, refetch on schedule."""
        now = self.clock()

        if self.pending and self._last_change is not None and now - self._last_change >= self.debounce_seconds:
            self.flush()

        if self._last_fetch is None or now - self._last_fetch >= self.refetch_seconds:
            self.load()

    def _fail(self, action: str, exc: Exception) -> None:
        self.status = SyncStatus.ERROR
        self.last_error = str(exc)
        logger.error("Sync %s failed for %s: %s", action, self.owner_id, exc)
