# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..records import Sale
from ..services import sales_service, store_service
from ..validation import LedgerError, RecordNotFoundError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/shops/<owner_id>/sales")


@sales_bp.get("")
def list_sales_route(owner_id: str):
    include_deleted = request.args.get("include_deleted", "false").lower() == "true"
    try:
        ledger = store_service.load_ledger(owner_id)
        sales = [s for s in ledger.sales if include_deleted or not s.is_deleted]
        sales.sort(key=lambda s: s.date, reverse=True)
        return jsonify({"items": [s.to_dict() for s in sales]}), 200
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
def create_sale_route(owner_id: str):
    """
    Record a sale.

    Body: camelCase Sale (items, paymentMethod, customerId, total optional).
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = Sale.from_dict(data)
        result = store_service.run_command(owner_id, sales_service.create_sale, sale)
        return jsonify({"sale": result.value.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.put("/<sale_id>")
def update_sale_route(owner_id: str, sale_id: str):
    try:
        changes = request.get_json(silent=True) or {}
        result = store_service.run_command(owner_id, sales_service.revise_sale, sale_id, changes)
        return jsonify({"sale": result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<sale_id>/cancel")
def cancel_sale_route(owner_id: str, sale_id: str):
    try:
        result = store_service.run_command(owner_id, sales_service.cancel_sale, sale_id)
        return jsonify({"sale": result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500
