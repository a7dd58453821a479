# Overview: Flask API routes for B2B pending shipments and their reconciliation.

from decimal import Decimal

from flask import Blueprint, request, jsonify, current_app

from ..records import Order, PaymentMethod
from ..services import b2b_service, store_service
from ..services.b2b_service import resolution_from_dict
from ..services.store_service import StoredOrderReader
from ..validation import LedgerError, RecordNotFoundError, coerce_choice, coerce_optional_id


b2b_bp = Blueprint("b2b", __name__, url_prefix="/api/shops/<owner_id>/b2b")


@b2b_bp.get("/pending")
def list_pending_route(owner_id: str):
    try:
        ledger = store_service.load_ledger(owner_id)
        groups = b2b_service.pending_orders(ledger)
        return jsonify({
            "items": [
                {
                    "orderId": order_id,
                    "supplierId": lines[0].supplier_id if lines else None,
                    "lines": [line.to_dict() for line in lines],
                }
                for order_id, lines in groups.items()
            ]
        }), 200
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to list pending shipments")
        return jsonify({"error": "Internal server error"}), 500


@b2b_bp.post("/orders")
def place_remote_order_route(owner_id: str):
    """
    Record an order this shop placed with a supplier shop.

    Body: {"supplierId", "order": <Order as saved by the supplier>,
           "productNames"?: {remoteProductId: name}}
    The supplier's own copy of the order is written by that shop.
    """
    try:
        data = request.get_json(silent=True) or {}
        order = Order.from_dict(data.get("order") or {})
        result = store_service.run_command(
            owner_id,
            b2b_service.record_pending_shipment,
            supplier_id=coerce_optional_id(data.get("supplierId")),
            order=order,
            product_names=data.get("productNames") or {},
            employee_id=coerce_optional_id(data.get("employeeId")),
        )
        return jsonify({"items": [t.to_dict() for t in result.value]}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to record pending shipment")
        return jsonify({"error": "Internal server error"}), 500


@b2b_bp.post("/pending/<order_id>/reconcile")
def reconcile_route(owner_id: str, order_id: str):
    """
    Accept a pending shipment into stock.

    Body: {"paymentMethod": "CASH"|"DEBT",
           "resolutions"?: {remoteProductId: {"productId"} | {"create": {...}}}}
    """
    try:
        data = request.get_json(silent=True) or {}
        resolutions = {
            str(remote_id): resolution_from_dict(value)
            for remote_id, value in (data.get("resolutions") or {}).items()
        }
        result = store_service.run_command(
            owner_id,
            b2b_service.reconcile_pending_order,
            order_id,
            resolutions,
            payment_method=coerce_choice(PaymentMethod, data.get("paymentMethod"), "paymentMethod"),
            remote_orders=StoredOrderReader(),
            markup=Decimal(str(current_app.config.get("B2B_PRICE_MARKUP", "1.5"))),
            employee_id=coerce_optional_id(data.get("employeeId")),
        )
        return jsonify(result.value.to_dict()), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to reconcile pending shipment")
        return jsonify({"error": "Internal server error"}), 500
