# Overview: Read-only figures over a ledger: sales summary, low stock, customer statement.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from ..records import CashEntryType, Product, ProductType
from ..time_utils import parse_iso_datetime
from ..validation import RecordNotFoundError, ValidationError, to_number
from .cash_service import RESERVED_SALE_CATEGORIES, cash_balance
from .ledger_service import Ledger
from .sales_service import sale_profit


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""
    pass


@dataclass(frozen=True)
class SalesSummary:
    count: int
    revenue: Decimal
    cost: Decimal
    profit: Decimal

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "revenue": to_number(self.revenue),
            "cost": to_number(self.cost),
            "profit": to_number(self.profit),
        }


def _parse_range(start: str | None, end: str | None) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if start else None
        end_dt = parse_iso_datetime(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO-8601 datetimes")
    return start_dt, end_dt


def _in_range(date: str, start_dt: datetime | None, end_dt: datetime | None) -> bool:
    if start_dt is None and end_dt is None:
        return True
    try:
        when = parse_iso_datetime(date)
    except ValueError:
        return False
    if when is None:
        return False
    if start_dt is not None and when < start_dt:
        return False
    if end_dt is not None and when > end_dt:
        return False
    return True


def sales_summary(ledger: Ledger, *, start: str | None = None, end: str | None = None) -> SalesSummary:
    """Revenue, captured cost and profit over active sales in an inclusive date range."""
    start_dt, end_dt = _parse_range(start, end)
    count = 0
    revenue = Decimal("0.00")
    profit = Decimal("0.00")
    for sale in ledger.sales:
        if sale.is_deleted or not _in_range(sale.date, start_dt, end_dt):
            continue
        count += 1
        revenue += sale.total if sale.total is not None else sale.items_total()
        profit += sale_profit(sale)
    return SalesSummary(count=count, revenue=revenue, cost=revenue - profit, profit=profit)


def low_stock(ledger: Ledger, threshold: Decimal | None = None) -> list[Product]:
    """
    Physical products at or below their reorder point.

    A product's own minStock wins when set; otherwise the shop-wide
    threshold applies. Services are never listed.
    """
    items = []
    for product in ledger.products:
        if product.type is ProductType.SERVICE:
            continue
        limit = product.min_stock if product.min_stock > 0 else threshold
        if limit is not None and product.quantity <= limit:
            items.append(product)
    return sorted(items, key=lambda p: (p.quantity, p.name))


def customer_statement(ledger: Ledger, customer_id: str) -> dict:
    customer = ledger.customer(customer_id)
    if customer is None:
        raise RecordNotFoundError(f"Customer {customer_id} not found")

    sales = [s for s in ledger.sales if s.customer_id == customer_id and not s.is_deleted]
    payments = [
        e for e in ledger.cash_entries
        if e.type is CashEntryType.INCOME
        and e.customer_id == customer_id
        and e.category not in RESERVED_SALE_CATEGORIES
    ]
    purchased = sum((s.total for s in sales), Decimal("0.00"))
    debt_purchased = sum((s.total for s in sales if s.is_debt), Decimal("0.00"))
    paid = sum((e.amount for e in payments), Decimal("0.00"))

    return {
        "customer": customer.to_dict(),
        "salesCount": len(sales),
        "totalPurchased": to_number(purchased),
        "debtPurchased": to_number(debt_purchased),
        "totalPaid": to_number(paid),
        "debt": to_number(customer.debt),
        "sales": [s.to_dict() for s in sorted(sales, key=lambda s: s.date, reverse=True)],
        "payments": [e.to_dict() for e in sorted(payments, key=lambda e: e.date, reverse=True)],
    }


def balance_report(ledger: Ledger) -> dict:
    income = sum((e.amount for e in ledger.cash_entries if e.type is CashEntryType.INCOME), Decimal("0.00"))
    expense = sum((e.amount for e in ledger.cash_entries if e.type is CashEntryType.EXPENSE), Decimal("0.00"))
    return {
        "income": to_number(income),
        "expense": to_number(expense),
        "balance": to_number(cash_balance(ledger)),
        "receivables": to_number(sum((c.debt for c in ledger.customers), Decimal("0.00"))),
        "payables": to_number(sum((s.debt for s in ledger.suppliers), Decimal("0.00"))),
    }
