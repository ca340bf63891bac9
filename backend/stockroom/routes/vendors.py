# backend/stockroom/routes/vendors.py
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import StockroomError, error_response
from ..services import vendor_service
from ..validation import ConflictError, ValidationError

vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")

DOMAIN_ERRORS = (StockroomError, ValidationError, ConflictError)


@vendors_bp.get("")
@require_auth
def list_vendors_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    vendors = vendor_service.list_vendors(g.tenant_id, include_inactive=include_inactive)
    return jsonify({"items": [v.to_dict() for v in vendors], "count": len(vendors)}), 200


@vendors_bp.post("")
@require_auth
def create_vendor_route():
    payload = request.get_json(silent=True)
    try:
        vendor = vendor_service.create_vendor(g.tenant_id, payload)
        return jsonify(vendor.to_dict()), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create vendor")
        return jsonify({"error": "Failed to create vendor"}), 500


@vendors_bp.put("/<int:vendor_id>")
@require_auth
def update_vendor_route(vendor_id: int):
    payload = request.get_json(silent=True)
    try:
        vendor = vendor_service.update_vendor(g.tenant_id, vendor_id, payload)
        return jsonify(vendor.to_dict()), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update vendor")
        return jsonify({"error": "Failed to update vendor"}), 500
