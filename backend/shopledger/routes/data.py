# Overview: Whole-collection key/value endpoints the client sync talks to.

from flask import Blueprint, request, jsonify, current_app

from ..services import store_service
from ..services.store_service import StoreError

"""
Protocol:
- POST /api/data       {"key", "user_id"}          -> saved value, or [] / {} when unset
- POST /api/data/save  {"key", "data", "user_id"}  -> overwrites the whole value
Array keys that receive a non-array are stored as [].
"""

data_bp = Blueprint("data", __name__, url_prefix="/api/data")


@data_bp.post("")
def get_data_route():
    payload = request.get_json(silent=True) or {}
    key = payload.get("key")
    owner_id = payload.get("user_id")
    if not key or not owner_id:
        return jsonify({"error": "Missing key or user_id"}), 400

    try:
        return jsonify(store_service.get_data(str(owner_id), str(key))), 200
    except StoreError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to read store key")
        return jsonify({"error": "Internal server error"}), 500


@data_bp.post("/save")
def save_data_route():
    payload = request.get_json(silent=True) or {}
    key = payload.get("key")
    owner_id = payload.get("user_id")
    if not key or not owner_id:
        return jsonify({"error": "Missing key or user_id"}), 400

    try:
        store_service.save_data(str(owner_id), str(key), payload.get("data"))
        return jsonify({"status": "ok"}), 200
    except StoreError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except Exception:
        current_app.logger.exception("Failed to save store key")
        return jsonify({"error": "Internal server error"}), 500
