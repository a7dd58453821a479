# Overview: Pytest coverage for supplier intake batches and transaction deletion.

from decimal import Decimal

import pytest

from shopledger.records import CashEntryType, PaymentMethod, TransactionType
from shopledger.services import intake_service
from shopledger.services.intake_service import IntakeLine, IntakeValidationError
from shopledger.validation import RecordNotFoundError


def _post(ledger, lines, method=PaymentMethod.DEBT, **kwargs):
    return intake_service.post_intake_batch(
        ledger, lines, supplier_id=kwargs.pop("supplier_id", "s1"), payment_method=method, **kwargs
    )


class TestPostIntakeBatch:
    def test_debt_batch_same_product_twice(self, ledger):
        """
        SCENARIO: two lines for p1 (5 @ 10, then 3 @ 12) bought on DEBT
        EXPECTED: p1 +8, cost = 12 (last line), supplier debt 86, two IN rows
        """
        batch = _post(ledger, [
            IntakeLine("p1", Decimal("5"), Decimal("10.00")),
            IntakeLine("p1", Decimal("3"), Decimal("12.00")),
        ])

        product = ledger.product("p1")
        assert product.quantity == Decimal("18")
        assert product.cost == Decimal("12.00")
        assert ledger.supplier("s1").debt == Decimal("86.00")
        assert batch.total == Decimal("86.00")

        rows = intake_service.batch_transactions(ledger, batch.batch_id)
        assert len(rows) == 2
        assert {row.type for row in rows} == {TransactionType.IN}
        assert ledger.cash_entries == ()

    def test_cash_batch_books_one_purchase_expense(self, ledger):
        batch = _post(ledger, [
            IntakeLine("p1", Decimal("2"), Decimal("5.00")),
            IntakeLine("p2", Decimal("1"), Decimal("19.50")),
        ], method=PaymentMethod.CASH)

        assert ledger.supplier("s1").debt == Decimal("0.00")
        [entry] = ledger.cash_entries
        assert entry.type is CashEntryType.EXPENSE
        assert entry.amount == Decimal("29.50")
        assert entry.category == "Purchase"
        assert entry.id == f"purchase-{batch.batch_id}"
        assert "Wholesale Ltd" in entry.description

    def test_zero_cost_cash_batch_books_nothing(self, ledger):
        _post(ledger, [IntakeLine("p1", Decimal("1"), Decimal("0"))], method=PaymentMethod.CASH)
        assert ledger.cash_entries == ()

    def test_line_from_payload_accepts_legacy_price_field(self):
        line = IntakeLine.from_dict({"productId": "p1", "quantity": "2", "pricePerUnit": 4})
        assert line.unit_cost == Decimal("4.00")

    @pytest.mark.parametrize(
        "lines, kwargs",
        [
            ([IntakeLine("p1", Decimal("1"), Decimal("1"))], {"supplier_id": ""}),
            ([IntakeLine("p1", Decimal("1"), Decimal("1"))], {"supplier_id": "ghost"}),
            ([IntakeLine("p1", Decimal("1"), Decimal("1"))], {"method": PaymentMethod.CARD}),
            ([], {}),
            ([IntakeLine("ghost", Decimal("1"), Decimal("1"))], {}),
            ([IntakeLine("p1", Decimal("0"), Decimal("1"))], {}),
            ([IntakeLine("p1", Decimal("1"), Decimal("-1"))], {}),
        ],
        ids=["no-supplier", "unknown-supplier", "card", "empty", "unknown-product", "zero-qty", "negative-cost"],
    )
    def test_rejected_batches_change_nothing(self, ledger, lines, kwargs):
        before = ledger.to_collections()

        with pytest.raises(IntakeValidationError):
            _post(ledger, lines, **kwargs)

        assert ledger.to_collections() == before


class TestDeleteTransaction:
    def test_delete_debt_row_reverses_stock_and_debt(self, ledger):
        batch = _post(ledger, [
            IntakeLine("p1", Decimal("5"), Decimal("10.00")),
            IntakeLine("p2", Decimal("2"), Decimal("20.00")),
        ])
        first = batch.transactions[0]

        deleted = intake_service.delete_transaction(ledger, first.id)

        assert deleted.is_deleted
        assert ledger.product("p1").quantity == Decimal("10")
        assert ledger.supplier("s1").debt == Decimal("40.00")

    def test_delete_cash_row_keeps_expense(self, ledger):
        batch = _post(ledger, [IntakeLine("p1", Decimal("5"), Decimal("10.00"))], method=PaymentMethod.CASH)
        intake_service.delete_transaction(ledger, batch.transactions[0].id)

        assert ledger.product("p1").quantity == Decimal("10")
        assert len(ledger.cash_entries) == 1

    def test_delete_twice_is_noop(self, ledger):
        batch = _post(ledger, [IntakeLine("p1", Decimal("5"), Decimal("10.00"))])
        row_id = batch.transactions[0].id
        intake_service.delete_transaction(ledger, row_id)
        intake_service.delete_transaction(ledger, row_id)

        assert ledger.product("p1").quantity == Decimal("10")
        assert ledger.supplier("s1").debt == Decimal("0.00")

    def test_delete_unknown(self, ledger):
        with pytest.raises(RecordNotFoundError):
            intake_service.delete_transaction(ledger, "nope")
