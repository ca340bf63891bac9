# backend/stockroom/routes/orders.py
"""
Sales order routes.

Placing an order deducts stock for every line atomically; cancelling
restores it. Status updates never touch stock.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import StockroomError, error_response
from ..services import order_service
from ..validation import ConflictError, ValidationError, require_json_object

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")

DOMAIN_ERRORS = (StockroomError, ValidationError, ConflictError)


@orders_bp.get("")
@require_auth
def list_orders_route():
    try:
        orders = order_service.list_orders(
            g.tenant_id,
            status=request.args.get("status"),
            limit=request.args.get("limit", default=100, type=int),
            offset=request.args.get("offset", default=0, type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.post("")
@require_auth
def place_order_route():
    """
    Body: {"customer_name", "shipping_address", "items": [{"sku", "quantity", "unit_price_cents"?}],
           "total_amount_cents"?, "vendor_id"?}

    409 with {"details": {"sku", "available", "requested"}} when a line
    exceeds available stock; nothing is deducted in that case.
    """
    payload = request.get_json(silent=True)
    try:
        order = order_service.place_order(g.tenant_id, payload, actor_user_id=g.current_user.id)
        return jsonify(order.to_dict()), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Failed to place order"}), 500


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        return jsonify(order_service.get_order(g.tenant_id, order_id).to_dict()), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(g.tenant_id, order_id, actor_user_id=g.current_user.id)
        return jsonify(order.to_dict()), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Failed to cancel order"}), 500


@orders_bp.patch("/<int:order_id>/status")
@require_auth
def update_order_status_route(order_id: int):
    try:
        payload = require_json_object(request.get_json(silent=True))
        order, flagged = order_service.update_order_status(
            g.tenant_id, order_id, payload.get("status"), actor_user_id=g.current_user.id
        )
        body = order.to_dict()
        body["status_transition_flagged"] = flagged
        return jsonify(body), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Failed to update order status"}), 500
