# Overview: Flask API routes for supplier intake and stock transactions.

from flask import Blueprint, request, jsonify, current_app

from ..records import PaymentMethod
from ..services import intake_service, store_service
from ..services.intake_service import IntakeLine
from ..validation import LedgerError, RecordNotFoundError, coerce_choice, coerce_optional_id


intake_bp = Blueprint("intake", __name__, url_prefix="/api/shops/<owner_id>")


@intake_bp.get("/transactions")
def list_transactions_route(owner_id: str):
    batch_id = request.args.get("batch_id")
    try:
        ledger = store_service.load_ledger(owner_id)
        if batch_id:
            rows = intake_service.batch_transactions(ledger, batch_id)
        else:
            rows = sorted(ledger.transactions, key=lambda t: t.date, reverse=True)
        return jsonify({"items": [t.to_dict() for t in rows]}), 200
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500


@intake_bp.post("/intake")
def post_intake_route(owner_id: str):
    """
    Post a supplier batch.

    Body: {"supplierId", "paymentMethod": "CASH"|"DEBT", "date"?, "note"?,
           "lines": [{"productId", "quantity", "unitCost"}]}
    """
    try:
        data = request.get_json(silent=True) or {}
        lines = [IntakeLine.from_dict(line) for line in data.get("lines") or ()]
        result = store_service.run_command(
            owner_id,
            intake_service.post_intake_batch,
            lines,
            supplier_id=coerce_optional_id(data.get("supplierId")),
            payment_method=coerce_choice(PaymentMethod, data.get("paymentMethod"), "paymentMethod"),
            date=coerce_optional_id(data.get("date")),
            note=coerce_optional_id(data.get("note")),
            employee_id=coerce_optional_id(data.get("employeeId")),
        )
        return jsonify({"batch": result.value.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to post intake batch")
        return jsonify({"error": "Internal server error"}), 500


@intake_bp.delete("/transactions/<transaction_id>")
def delete_transaction_route(owner_id: str, transaction_id: str):
    try:
        result = store_service.run_command(owner_id, intake_service.delete_transaction, transaction_id)
        return jsonify({"transaction": result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Internal server error"}), 500
