# Overview: Flask API routes for products, customers and suppliers.

from flask import Blueprint, request, jsonify, current_app

from ..services import catalog_service, store_service
from ..validation import LedgerError, RecordNotFoundError


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/shops/<owner_id>")

# collection -> (record accessor on Ledger, create, update, delete, response key)
_RESOURCES = {
    "products": ("products", catalog_service.create_product, catalog_service.update_product,
                 catalog_service.delete_product, "product"),
    "customers": ("customers", catalog_service.create_customer, catalog_service.update_customer,
                  catalog_service.delete_customer, "customer"),
    "suppliers": ("suppliers", catalog_service.create_supplier, catalog_service.update_supplier,
                  catalog_service.delete_supplier, "supplier"),
}


@catalog_bp.get("/<any(products, customers, suppliers):collection>")
def list_records_route(owner_id: str, collection: str):
    resource = _RESOURCES[collection]
    try:
        ledger = store_service.load_ledger(owner_id)
        records = sorted(getattr(ledger, resource[0]), key=lambda r: r.name.lower())
        return jsonify({"items": [r.to_dict() for r in records]}), 200
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to list %s", collection)
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.post("/<any(products, customers, suppliers):collection>")
def create_record_route(owner_id: str, collection: str):
    resource = _RESOURCES[collection]
    try:
        data = request.get_json(silent=True) or {}
        result = store_service.run_command(owner_id, resource[1], data)
        return jsonify({resource[4]: result.value.to_dict()}), 201

    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to create %s", resource[4])
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.patch("/<any(products, customers, suppliers):collection>/<record_id>")
def update_record_route(owner_id: str, collection: str, record_id: str):
    resource = _RESOURCES[collection]
    try:
        changes = request.get_json(silent=True) or {}
        result = store_service.run_command(owner_id, resource[2], record_id, changes)
        return jsonify({resource[4]: result.value.to_dict()}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to update %s", resource[4])
        return jsonify({"error": "Internal server error"}), 500


@catalog_bp.delete("/<any(products, customers, suppliers):collection>/<record_id>")
def delete_record_route(owner_id: str, collection: str, record_id: str):
    resource = _RESOURCES[collection]
    try:
        store_service.run_command(owner_id, resource[3], record_id)
        return jsonify({"status": "deleted", "id": record_id}), 200

    except RecordNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LedgerError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to delete %s", resource[4])
        return jsonify({"error": "Internal server error"}), 500
