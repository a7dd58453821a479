# Overview: Flask API routes for the cash ledger; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..records import CashEntry
from ..services import cash_service, store_service
from ..validation import LedgerError, to_number


cash_bp = Blueprint("cash", __name__, url_prefix="/api/shops/<owner_id>/cash")


@cash_bp.get("")
def list_cash_entries_route(owner_id: str):
    try:
        ledger = store_service.load_ledger(owner_id)
        entries = sorted(ledger.cash_entries, key=lambda e: e.date, reverse=True)
        return jsonify({
            "items": [e.to_dict() for e in entries],
            "balance": to_number(cash_service.cash_balance(ledger)),
        }), 200
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to list cash entries")
        return jsonify({"error": "Internal server error"}), 500


@cash_bp.post("")
def add_cash_entry_route(owner_id: str):
    """
    Record income or expense.

    INCOME with customerId is a customer debt payment; EXPENSE with
    supplierId pays down supplier debt.
    """
    try:
        data = request.get_json(silent=True) or {}
        entry = CashEntry.from_dict(data)
        result = store_service.run_command(owner_id, cash_service.add_cash_entry, entry)
        return jsonify({"entry": result.value.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to add cash entry")
        return jsonify({"error": "Internal server error"}), 500
