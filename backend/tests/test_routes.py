# Overview: HTTP-level tests for the Flask blueprints against in-memory SQLite.

"""
Route tests

Every command route loads the shop's ledger, runs one service command and
saves the collections it changed. State is read back through POST /api/data,
the same endpoint the client sync uses.
"""

from sqlalchemy import text

OWNER_ID = "shop-1"


SHOP = f"/api/shops/{OWNER_ID}"


def _stored(client, key, owner_id=OWNER_ID):
    response = client.post("/api/data", json={"key": key, "user_id": owner_id})
    assert response.status_code == 200
    return response.get_json()


def _by_id(rows):
    return {row["id"]: row for row in rows}


class TestSystemAndData:
    def test_health(self, client, db_session):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json()["checks"]["database"]["status"] == "healthy"

    def test_sqlite_busy_timeout_applied(self, app, db_session):
        busy_timeout = db_session.execute(text("PRAGMA busy_timeout")).scalar()

        assert busy_timeout == app.config["SQLITE_BUSY_TIMEOUT_MS"]

    def test_missing_key_or_user(self, client, db_session):
        assert client.post("/api/data", json={"key": "products"}).status_code == 400
        assert client.post("/api/data/save", json={"user_id": "u"}).status_code == 400

    def test_unset_keys_default_by_shape(self, client, db_session):
        assert _stored(client, "products", "nobody") == []
        assert _stored(client, "settings", "nobody") == {}

    def test_save_overwrites_whole_value(self, client, db_session):
        client.post("/api/data/save", json={"key": "categories", "user_id": "u", "data": ["A", "B"]})
        client.post("/api/data/save", json={"key": "categories", "user_id": "u", "data": ["C"]})

        assert _stored(client, "categories", "u") == ["C"]

    def test_array_key_with_object_is_stored_empty(self, client, db_session):
        response = client.post("/api/data/save", json={"key": "sales", "user_id": "u", "data": {"x": 1}})

        assert response.get_json() == {"status": "ok"}
        assert _stored(client, "sales", "u") == []

    def test_tenants_are_isolated(self, client, db_session):
        client.post("/api/data/save", json={"key": "settings", "user_id": "a", "data": {"currency": "RUB"}})
        assert _stored(client, "settings", "b") == {}


class TestSaleRoutes:
    def test_create_and_cancel_cash_sale(self, client, seeded_store):
        response = client.post(f"{SHOP}/sales", json={
            "id": "s-1",
            "paymentMethod": "CASH",
            "items": [{"productId": "p1", "quantity": 3, "price": 8}],
        })

        assert response.status_code == 201
        assert response.get_json()["sale"]["total"] == 24
        assert _by_id(_stored(client, "products"))["p1"]["quantity"] == 7
        [entry] = _stored(client, "cashEntries")
        assert entry["category"] == "Sale"

        response = client.post(f"{SHOP}/sales/s-1/cancel")
        assert response.status_code == 200
        assert response.get_json()["sale"]["isDeleted"] is True
        assert _by_id(_stored(client, "products"))["p1"]["quantity"] == 10
        assert len(_stored(client, "cashEntries")) == 1

    def test_rejected_sale_saves_nothing(self, client, seeded_store):
        response = client.post(f"{SHOP}/sales", json={
            "paymentMethod": "DEBT",
            "items": [{"productId": "p1", "quantity": 3, "price": 8}],
        })

        assert response.status_code == 400
        assert "customer" in response.get_json()["error"].lower()
        assert _stored(client, "sales") == []
        assert _by_id(_stored(client, "products"))["p1"]["quantity"] == 10

    def test_edit_sale(self, client, seeded_store):
        client.post(f"{SHOP}/sales", json={
            "id": "s-1",
            "paymentMethod": "DEBT",
            "customerId": "c1",
            "items": [{"productId": "p1", "quantity": 1, "price": 8}],
        })
        response = client.put(f"{SHOP}/sales/s-1", json={
            "items": [{"productId": "p1", "quantity": 2, "price": 8}],
        })

        assert response.status_code == 200
        assert _by_id(_stored(client, "customers"))["c1"]["debt"] == 16
        assert _by_id(_stored(client, "products"))["p1"]["quantity"] == 8

    def test_unknown_sale_is_404(self, client, seeded_store):
        assert client.post(f"{SHOP}/sales/nope/cancel").status_code == 404


class TestOrderRoutes:
    def test_order_to_debt_sale(self, client, seeded_store):
        response = client.post(f"{SHOP}/orders", json={
            "id": "o-1",
            "customerId": "c1",
            "items": [{"productId": "p2", "quantity": 2, "price": 30}],
        })
        assert response.status_code == 201
        assert response.get_json()["order"]["status"] == "NEW"

        assert client.post(f"{SHOP}/orders/o-1/accept").status_code == 200
        response = client.post(f"{SHOP}/orders/o-1/confirm", json={"paymentMethod": "DEBT"})

        assert response.status_code == 200
        assert response.get_json()["sale"]["id"] == "order-o-1"
        assert _by_id(_stored(client, "customers"))["c1"]["debt"] == 60
        assert _by_id(_stored(client, "orders"))["o-1"]["status"] == "CONFIRMED"

        listed = client.get(f"{SHOP}/orders?status=confirmed").get_json()["items"]
        assert listed[0]["contact"]["name"] == "Anna"

    def test_edit_new_order_is_400(self, client, seeded_store):
        client.post(f"{SHOP}/orders", json={
            "id": "o-1", "customerId": "c1", "items": [{"productId": "p1", "quantity": 1, "price": 8}],
        })
        response = client.put(f"{SHOP}/orders/o-1", json={"items": [{"productId": "p1", "quantity": 2, "price": 8}]})

        assert response.status_code == 400
        assert response.get_json()["details"]["status"] == "NEW"


class TestCashAndIntakeRoutes:
    def test_customer_payment(self, client, seeded_store):
        client.post(f"{SHOP}/sales", json={
            "paymentMethod": "DEBT", "customerId": "c1",
            "items": [{"productId": "p1", "quantity": 5, "price": 20}],
        })
        response = client.post(f"{SHOP}/cash", json={
            "type": "INCOME", "amount": 40, "category": "Debt payment", "customerId": "c1",
        })

        assert response.status_code == 201
        assert _by_id(_stored(client, "customers"))["c1"]["debt"] == 60
        assert client.get(f"{SHOP}/cash").get_json()["balance"] == 40

    def test_cash_entry_validation(self, client, seeded_store):
        response = client.post(f"{SHOP}/cash", json={"type": "INCOME", "amount": 0})
        assert response.status_code == 400

    def test_intake_and_delete(self, client, seeded_store):
        response = client.post(f"{SHOP}/intake", json={
            "supplierId": "s1",
            "paymentMethod": "DEBT",
            "lines": [
                {"productId": "p1", "quantity": 5, "unitCost": 10},
                {"productId": "p1", "quantity": 3, "unitCost": 12},
            ],
        })

        assert response.status_code == 201
        batch = response.get_json()["batch"]
        assert batch["total"] == 86
        product = _by_id(_stored(client, "products"))["p1"]
        assert (product["quantity"], product["cost"]) == (18, 12)
        assert _by_id(_stored(client, "suppliers"))["s1"]["debt"] == 86

        rows = client.get(f"{SHOP}/transactions?batch_id={batch['batchId']}").get_json()["items"]
        assert len(rows) == 2

        response = client.delete(f"{SHOP}/transactions/{rows[0]['id']}")
        assert response.status_code == 200
        assert _by_id(_stored(client, "suppliers"))["s1"]["debt"] == 36


class TestB2BRoutes:
    def test_pending_shipment_to_stock(self, client, seeded_store):
        """
        SCENARIO: supplier shop s1 holds order ro-1; this shop records the
                  shipment, then reconciles it mapping r1 -> p1
        EXPECTED: pending list empties, p1 +2, supplier debt 20
        """
        remote_order = {
            "id": "ro-1",
            "customerId": OWNER_ID,
            "status": "ACCEPTED",
            "items": [{"productId": "r1", "quantity": 2, "price": 10}],
        }
        client.post("/api/data/save", json={"key": "orders", "user_id": "s1", "data": [remote_order]})

        response = client.post(f"{SHOP}/b2b/orders", json={
            "supplierId": "s1", "order": remote_order, "productNames": {"r1": "Tea"},
        })
        assert response.status_code == 201

        pending = client.get(f"{SHOP}/b2b/pending").get_json()["items"]
        assert [group["orderId"] for group in pending] == ["ro-1"]

        response = client.post(f"{SHOP}/b2b/pending/ro-1/reconcile", json={
            "paymentMethod": "DEBT",
            "resolutions": {"r1": {"productId": "p1"}},
        })

        assert response.status_code == 200
        assert response.get_json()["mappings"] == {"s1_r1": "p1"}
        assert client.get(f"{SHOP}/b2b/pending").get_json()["items"] == []
        assert _by_id(_stored(client, "products"))["p1"]["quantity"] == 12
        assert _by_id(_stored(client, "suppliers"))["s1"]["debt"] == 20

    def test_reconcile_cancelled_remote_order(self, client, seeded_store):
        remote_order = {
            "id": "ro-2",
            "customerId": OWNER_ID,
            "status": "CANCELLED",
            "items": [{"productId": "r1", "quantity": 1, "price": 10}],
        }
        client.post("/api/data/save", json={"key": "orders", "user_id": "s1", "data": [remote_order]})
        client.post(f"{SHOP}/b2b/orders", json={"supplierId": "s1", "order": remote_order})

        response = client.post(f"{SHOP}/b2b/pending/ro-2/reconcile", json={"paymentMethod": "CASH"})

        assert response.status_code == 400
        assert len(client.get(f"{SHOP}/b2b/pending").get_json()["items"]) == 1

    def test_nothing_pending_is_404(self, client, seeded_store):
        response = client.post(f"{SHOP}/b2b/pending/none/reconcile", json={"paymentMethod": "CASH"})
        assert response.status_code == 404


class TestCatalogAndReportRoutes:
    def test_product_crud(self, client, seeded_store):
        response = client.post(f"{SHOP}/products", json={"id": "p9", "name": "Honey", "quantity": 2, "price": 12})
        assert response.status_code == 201
        assert response.get_json()["product"]["unit"] == "шт"

        response = client.patch(f"{SHOP}/products/p9", json={"price": 14})
        assert response.get_json()["product"]["price"] == 14

        assert client.patch(f"{SHOP}/products/p9", json={"quantity": 50}).status_code == 400
        assert client.delete(f"{SHOP}/products/p9").get_json() == {"status": "deleted", "id": "p9"}
        assert client.delete(f"{SHOP}/products/p9").status_code == 404

    def test_list_customers(self, client, seeded_store):
        items = client.get(f"{SHOP}/customers").get_json()["items"]
        assert [c["id"] for c in items] == ["c1"]

    def test_low_stock_uses_configured_threshold(self, client, seeded_store):
        items = client.get(f"{SHOP}/reports/low-stock").get_json()["items"]
        assert [p["id"] for p in items] == ["p2"]

        items = client.get(f"{SHOP}/reports/low-stock?threshold=10").get_json()["items"]
        assert [p["id"] for p in items] == ["p2", "p1"]

    def test_bad_threshold(self, client, seeded_store):
        assert client.get(f"{SHOP}/reports/low-stock?threshold=lots").status_code == 400

    def test_sales_report_and_statement(self, client, seeded_store):
        client.post(f"{SHOP}/sales", json={
            "paymentMethod": "DEBT", "customerId": "c1",
            "items": [{"productId": "p1", "quantity": 2, "price": 8}],
        })

        assert client.get(f"{SHOP}/reports/sales").get_json() == {
            "count": 1, "revenue": 16, "cost": 10, "profit": 6,
        }
        statement = client.get(f"{SHOP}/reports/customers/c1").get_json()
        assert statement["debt"] == 16
        assert client.get(f"{SHOP}/reports/customers/ghost").status_code == 404
        assert client.get(f"{SHOP}/reports/sales?start=soon").status_code == 400
