from decimal import Decimal, InvalidOperation

from flask import Blueprint, current_app, jsonify, request

from ..services import reporting_service, store_service
from ..validation import LedgerError, RecordNotFoundError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/shops/<owner_id>/reports")


@reports_bp.get("/sales")
def sales_report(owner_id: str):
    start = request.args.get("start")
    end = request.args.get("end")

    try:
        ledger = store_service.load_ledger(owner_id)
        summary = reporting_service.sales_summary(ledger, start=start, end=end)
        return jsonify(summary.to_dict()), 200
    except LedgerError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/low-stock")
def low_stock_report(owner_id: str):
    raw = request.args.get("threshold") or current_app.config.get("LOW_STOCK_THRESHOLD")
    try:
        threshold = Decimal(str(raw)) if raw is not None else None
    except InvalidOperation:
        return jsonify({"error": "threshold must be a number"}), 400

    try:
        ledger = store_service.load_ledger(owner_id)
        items = reporting_service.low_stock(ledger, threshold)
        return jsonify({"items": [p.to_dict() for p in items]}), 200
    except LedgerError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/balance")
def balance_report(owner_id: str):
    try:
        ledger = store_service.load_ledger(owner_id)
        return jsonify(reporting_service.balance_report(ledger)), 200
    except LedgerError as exc:
        return jsonify({"error": str(exc)}), 400


@reports_bp.get("/customers/<customer_id>")
def customer_statement(owner_id: str, customer_id: str):
    try:
        ledger = store_service.load_ledger(owner_id)
        return jsonify(reporting_service.customer_statement(ledger, customer_id)), 200
    except RecordNotFoundError as exc:
        return jsonify({"error": str(exc)}), 404
    except LedgerError as exc:
        return jsonify({"error": str(exc)}), 400
