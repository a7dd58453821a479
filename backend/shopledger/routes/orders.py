# Overview: Flask API routes for customer orders; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..records import OrderItem, PaymentMethod
from ..services import order_service, store_service
from ..validation import LedgerError, RecordNotFoundError, coerce_choice, coerce_optional_id


orders_bp = Blueprint("orders", __name__, url_prefix="/api/shops/<owner_id>/orders")


def _parse_items(data: dict) -> tuple:
    return tuple(OrderItem.from_dict(item) for item in data.get("items") or ())


@orders_bp.get("")
def list_orders_route(owner_id: str):
    status = (request.args.get("status") or "").upper() or None
    try:
        ledger = store_service.load_ledger(owner_id)
        orders = [o for o in ledger.orders if status is None or o.status.value == status]
        orders.sort(key=lambda o: o.date, reverse=True)
        return jsonify({
            "items": [
                {**o.to_dict(), "contact": order_service.order_contact(ledger, o)}
                for o in orders
            ]
        }), 200
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("")
def place_order_route(owner_id: str):
    """Place a NEW order in this shop (owner_id is the selling shop)."""
    try:
        data = request.get_json(silent=True) or {}
        result = store_service.run_command(
            owner_id,
            order_service.place_order,
            customer_id=coerce_optional_id(data.get("customerId")) or "",
            items=_parse_items(data),
            payment_method=coerce_choice(PaymentMethod, data.get("paymentMethod"), "paymentMethod"),
            note=coerce_optional_id(data.get("note")),
            order_id=coerce_optional_id(data.get("id")),
        )
        return jsonify({"order": result.value.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/accept")
def accept_order_route(owner_id: str, order_id: str):
    try:
        result = store_service.run_command(owner_id, order_service.accept_order, order_id)
        return jsonify({"order": result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to accept order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<order_id>")
def edit_order_route(owner_id: str, order_id: str):
    try:
        data = request.get_json(silent=True) or {}
        result = store_service.run_command(
            owner_id,
            order_service.edit_order,
            order_id,
            _parse_items(data),
            payment_method=coerce_choice(PaymentMethod, data.get("paymentMethod"), "paymentMethod"),
        )
        return jsonify({"order": result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to edit order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/confirm")
def confirm_order_route(owner_id: str, order_id: str):
    """Confirm an order; responds with the Sale it produced."""
    try:
        data = request.get_json(silent=True) or {}
        result = store_service.run_command(
            owner_id,
            order_service.confirm_order,
            order_id,
            payment_method=coerce_choice(PaymentMethod, data.get("paymentMethod"), "paymentMethod"),
            employee_id=coerce_optional_id(data.get("employeeId")),
        )
        return jsonify({"sale": result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to confirm order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/cancel")
def cancel_order_route(owner_id: str, order_id: str):
    try:
        result = store_service.run_command(owner_id, order_service.cancel_order, order_id)
        return jsonify({"order": result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500
