# backend/stockroom/routes/purchase_orders.py
"""
Purchase order routes.

Creation and manual status changes have no stock effect; receiving goods
increments stock and received quantities together.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import StockroomError, error_response
from ..services import purchase_order_service
from ..validation import ConflictError, ValidationError, require_json_object

purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

DOMAIN_ERRORS = (StockroomError, ValidationError, ConflictError)


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders_route():
    try:
        pos = purchase_order_service.list_purchase_orders(
            g.tenant_id,
            status=request.args.get("status"),
            vendor_id=request.args.get("vendor_id", type=int),
            limit=request.args.get("limit", default=100, type=int),
            offset=request.args.get("offset", default=0, type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify({"items": [po.to_dict() for po in pos], "count": len(pos)}), 200


@purchase_orders_bp.post("")
@require_auth
def create_purchase_order_route():
    payload = request.get_json(silent=True)
    try:
        po = purchase_order_service.create_purchase_order(
            g.tenant_id, payload, actor_user_id=g.current_user.id
        )
        return jsonify(po.to_dict()), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Failed to create purchase order"}), 500


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
def get_purchase_order_route(po_id: int):
    try:
        return jsonify(purchase_order_service.get_purchase_order(g.tenant_id, po_id).to_dict()), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@purchase_orders_bp.put("/<int:po_id>/status")
@require_auth
def update_purchase_order_status_route(po_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        po, flagged = purchase_order_service.update_purchase_order_status(
            g.tenant_id, po_id, payload.get("status"), actor_user_id=g.current_user.id
        )
        body = po.to_dict()
        body["status_transition_flagged"] = flagged
        return jsonify(body), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase order status")
        return jsonify({"error": "Failed to update purchase order status"}), 500


@purchase_orders_bp.post("/<int:po_id>/receive")
@require_auth
def receive_purchase_order_route(po_id: int):
    """
    Body: {"items": [{"sku", "quantity", "actual_unit_cost_cents"?}]}

    Quantities beyond what is outstanding are capped; SKUs not on the PO
    are skipped and reported back.
    """
    try:
        payload = require_json_object(request.get_json(silent=True))
        po, summary = purchase_order_service.receive_items(
            g.tenant_id, po_id, payload.get("items"), actor_user_id=g.current_user.id
        )
        return jsonify({"purchase_order": po.to_dict(), **summary}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to receive purchase order")
        return jsonify({"error": "Failed to receive purchase order"}), 500
