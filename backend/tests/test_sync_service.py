# Overview: Pytest coverage for the client sync session and its HTTP transport.

from decimal import Decimal

import httpx
import pytest

from shopledger.records import PaymentMethod, Sale, SaleItem
from shopledger.services import catalog_service, sales_service
from shopledger.services.sync_service import HttpTransport, SyncError, SyncSession, SyncStatus


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeTransport:
    """Dict-backed store; flip fail_fetch / fail_save to simulate outages."""

    def __init__(self, data=None):
        self.data = dict(data or {})
        self.saves = []
        self.fail_fetch = False
        self.fail_save = False

    def fetch(self, key):
        if self.fail_fetch:
            raise SyncError("offline")
        return self.data.get(key, {} if key == "productMappings" else [])

    def save(self, key, data):
        if self.fail_save:
            raise SyncError("offline")
        self.saves.append(key)
        self.data[key] = data


SERVER_DATA = {
    "products": [{"id": "p1", "name": "Tea", "quantity": 10, "cost": 5, "price": 8}],
    "customers": [{"id": "c1", "name": "Anna", "debt": 0}],
}


def _sale():
    return Sale(
        id="s-1",
        items=(SaleItem("p1", Decimal("3"), Decimal("8.00")),),
        payment_method=PaymentMethod.CASH,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return FakeTransport(SERVER_DATA)


@pytest.fixture
def session(transport, clock):
    return SyncSession("shop-1", transport, debounce_seconds=5, refetch_seconds=30, clock=clock)


class TestSyncSession:
    def test_no_save_before_first_load(self, session, transport):
        session.run(catalog_service.create_product, {"name": "Salt"})

        assert session.flush() is False
        assert transport.saves == []

    def test_saves_after_quiet_window(self, session, transport, clock):
        """
        SCENARIO: load, record a sale, tick at +2s and +6s
        EXPECTED: nothing saved at +2s; at +6s the touched collections are
                  saved whole and nothing stays pending
        """
        assert session.load() is True
        session.run(sales_service.create_sale, _sale())
        assert session.pending == {"sales", "products", "cashEntries"}

        clock.advance(2)
        session.tick()
        assert transport.saves == []

        clock.advance(4)
        session.tick()
        assert sorted(transport.saves) == ["cashEntries", "products", "sales"]
        assert session.pending == set()
        assert transport.data["products"][0]["quantity"] == 7
        assert session.status is SyncStatus.IDLE

    def test_failed_save_stays_pending(self, session, transport, clock):
        session.load()
        session.run(sales_service.create_sale, _sale())
        transport.fail_save = True

        assert session.flush() is False
        assert session.status is SyncStatus.ERROR
        assert session.last_error == "offline"
        assert "products" in session.pending
        # Local state is kept.
        assert session.ledger.product("p1").quantity == Decimal("7")

        transport.fail_save = False
        assert session.flush() is True
        assert session.status is SyncStatus.IDLE

    def test_failed_load_sets_error(self, session, transport):
        transport.fail_fetch = True

        assert session.load() is False
        assert session.status is SyncStatus.ERROR
        assert session.loaded is False

    def test_refetch_replaces_local_state(self, session, transport, clock):
        session.load()
        transport.data["products"] = [{"id": "p1", "name": "Tea", "quantity": 42}]

        clock.advance(10)
        session.tick()
        assert session.ledger.product("p1").quantity == Decimal("10")

        clock.advance(25)
        session.tick()
        assert session.ledger.product("p1").quantity == Decimal("42")

    def test_failed_command_queues_nothing(self, session):
        session.load()
        with pytest.raises(sales_service.SaleValidationError):
            session.run(sales_service.create_sale, Sale(id="x", items=(), payment_method=PaymentMethod.CASH))

        assert session.pending == set()


class TestHttpTransport:
    def test_server_error_becomes_sync_error(self):
        mock = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "Internal server error"}))
        transport = HttpTransport("http://store.test", "shop-1", transport=mock)

        with pytest.raises(SyncError):
            transport.fetch("products")

    def test_request_shape(self):
        seen = []

        def handler(request):
            seen.append((request.url.path, request.read()))
            return httpx.Response(200, json=[])

        transport = HttpTransport("http://store.test/", "shop-1", transport=httpx.MockTransport(handler))
        assert transport.fetch("sales") == []

        path, body = seen[0]
        assert path == "/api/data"
        assert b'"user_id": "shop-1"' in body or b'"user_id":"shop-1"' in body

    def test_round_trip_against_app(self, app, client, seeded_store):
        """
        SCENARIO: a session syncs with the real Flask app over WSGI
        EXPECTED: a local sale is visible through POST /api/data after flush
        """
        http = HttpTransport("http://testserver", "shop-1", transport=httpx.WSGITransport(app=app))
        session = SyncSession("shop-1", http)

        assert session.load() is True
        assert session.ledger.product("p1").quantity == Decimal("10")

        session.run(sales_service.create_sale, _sale())
        assert session.flush() is True
        http.close()

        products = client.post("/api/data", json={"key": "products", "user_id": "shop-1"}).get_json()
        assert {p["id"]: p["quantity"] for p in products}["p1"] == 7


def test_session_from_config():
    config = {"SYNC_DEBOUNCE_SECONDS": "2", "SYNC_REFETCH_SECONDS": 60, "SYNC_TIMEOUT_SECONDS": 3}
    mock = httpx.MockTransport(lambda request: httpx.Response(200, json=[]))

    session = SyncSession.from_config("http://store.test", "shop-1", config, transport=mock)

    assert session.debounce_seconds == 2.0
    assert session.refetch_seconds == 60.0
    assert session.transport.client.timeout.read == 3.0
    assert session.load() is True
