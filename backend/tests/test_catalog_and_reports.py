# Overview: Pytest coverage for catalog CRUD and the read-only reports.

from decimal import Decimal

import pytest

from shopledger.records import CashEntry, CashEntryType, PaymentMethod, ProductType, Sale, SaleItem
from shopledger.services import cash_service, catalog_service, reporting_service, sales_service
from shopledger.services.catalog_service import CatalogValidationError
from shopledger.services.reporting_service import ReportError
from shopledger.validation import RecordNotFoundError


class TestCatalog:
    def test_service_product_always_has_zero_quantity(self, ledger):
        product = catalog_service.create_product(
            ledger, {"name": "Gift wrap", "type": "SERVICE", "quantity": 12, "price": 3}
        )

        assert product.type is ProductType.SERVICE
        assert product.quantity == Decimal("0")
        assert ledger.product(product.id) == product

    def test_update_product_fields(self, ledger):
        product = catalog_service.update_product(ledger, "p1", {"price": "9.5", "minStock": 3, "unit": ""})

        assert product.price == Decimal("9.50")
        assert product.min_stock == Decimal("3")
        assert product.unit == "шт"
        assert product.quantity == Decimal("10")

    @pytest.mark.parametrize("changes", [{"quantity": 100}, {"price": -1}, {"name": ""}])
    def test_rejected_product_patch(self, ledger, changes):
        with pytest.raises(CatalogValidationError):
            catalog_service.update_product(ledger, "p1", changes)
        assert ledger.product("p1").quantity == Decimal("10")

    def test_duplicate_product_id(self, ledger):
        with pytest.raises(CatalogValidationError):
            catalog_service.create_product(ledger, {"id": "p1", "name": "Other tea"})

    def test_new_parties_start_without_debt(self, ledger):
        customer = catalog_service.create_customer(ledger, {"name": "Boris", "debt": 500})
        supplier = catalog_service.create_supplier(ledger, {"name": "Farm", "debt": 70})

        assert customer.debt == Decimal("0.00")
        assert supplier.debt == Decimal("0.00")

    def test_customer_debt_not_patchable(self, ledger):
        with pytest.raises(CatalogValidationError):
            catalog_service.update_customer(ledger, "c1", {"debt": 0})

    def test_update_supplier_contact(self, ledger):
        supplier = catalog_service.update_supplier(ledger, "s1", {"phone": " 555 ", "email": ""})
        assert supplier.phone == "555"
        assert supplier.email is None

    def test_delete_and_delete_again(self, ledger):
        catalog_service.delete_customer(ledger, "c1")
        assert ledger.customer("c1") is None

        with pytest.raises(RecordNotFoundError):
            catalog_service.delete_customer(ledger, "c1")


@pytest.fixture
def trading_day(ledger):
    """Two live sales a month apart, one cancelled sale, and a 10.00 debt payment from c1."""
    sales_service.create_sale(ledger, Sale(
        id="s-jan",
        items=(SaleItem("p1", Decimal("3"), Decimal("8.00")),),
        payment_method=PaymentMethod.CASH,
        date="2026-01-10T10:00:00Z",
    ))
    sales_service.create_sale(ledger, Sale(
        id="s-feb",
        items=(SaleItem("p2", Decimal("1"), Decimal("30.00")),),
        payment_method=PaymentMethod.DEBT,
        customer_id="c1",
        date="2026-02-10T10:00:00Z",
    ))
    sales_service.create_sale(ledger, Sale(
        id="s-void",
        items=(SaleItem("p1", Decimal("1"), Decimal("8.00")),),
        payment_method=PaymentMethod.DEBT,
        customer_id="c1",
        date="2026-02-11T10:00:00Z",
    ))
    sales_service.cancel_sale(ledger, "s-void")
    cash_service.add_cash_entry(ledger, CashEntry(
        id="pay-1",
        type=CashEntryType.INCOME,
        amount=Decimal("10.00"),
        category="Debt payment",
        customer_id="c1",
    ))
    return ledger


class TestReports:
    def test_sales_summary_all_time(self, trading_day):
        summary = reporting_service.sales_summary(trading_day)

        assert summary.count == 2
        assert summary.revenue == Decimal("54.00")
        assert summary.cost == Decimal("35.00")
        assert summary.profit == Decimal("19.00")
        assert summary.to_dict() == {"count": 2, "revenue": 54, "cost": 35, "profit": 19}

    def test_sales_summary_range_is_inclusive(self, trading_day):
        summary = reporting_service.sales_summary(
            trading_day, start="2026-02-01T00:00:00Z", end="2026-02-10T10:00:00Z"
        )
        assert summary.count == 1
        assert summary.revenue == Decimal("30.00")

    def test_sales_summary_bad_range(self, ledger):
        with pytest.raises(ReportError):
            reporting_service.sales_summary(ledger, start="last week")

    @pytest.mark.parametrize(
        "threshold, expected",
        [(None, ["p2"]), (Decimal("5"), ["p2"]), (Decimal("10"), ["p2", "p1"])],
    )
    def test_low_stock(self, ledger, threshold, expected):
        assert [p.id for p in reporting_service.low_stock(ledger, threshold)] == expected

    def test_customer_statement(self, trading_day):
        statement = reporting_service.customer_statement(trading_day, "c1")

        assert statement["salesCount"] == 1
        assert statement["debtPurchased"] == 30
        assert statement["totalPaid"] == 10
        assert statement["debt"] == 20
        assert [p["id"] for p in statement["payments"]] == ["pay-1"]

    def test_customer_statement_unknown(self, ledger):
        with pytest.raises(RecordNotFoundError):
            reporting_service.customer_statement(ledger, "ghost")

    def test_balance_report(self, trading_day):
        assert reporting_service.balance_report(trading_day) == {
            "income": 34,
            "expense": 0,
            "balance": 34,
            "receivables": 20,
            "payables": 0,
        }
