# backend/stockroom/routes/products.py
"""
Product catalog and stock routes.

SECURITY: All routes require authentication; tenant context comes from the
session. Manual stock adjustments are limited to OWNER and MANAGER roles.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..errors import StockroomError, error_response
from ..services import alert_service, catalog_service, ledger_service, stock_service
from ..validation import ConflictError, ValidationError, enforce_rules_stock_adjustment

products_bp = Blueprint("products", __name__, url_prefix="/api/products")

DOMAIN_ERRORS = (StockroomError, ValidationError, ConflictError)


@products_bp.get("")
@require_auth
def list_products_route():
    products = catalog_service.list_products(
        g.tenant_id,
        search=request.args.get("search"),
        category=request.args.get("category"),
        brand=request.args.get("brand"),
    )
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True)
    try:
        product = catalog_service.create_product(g.tenant_id, payload, actor_user_id=g.current_user.id)
        return jsonify(product.to_dict()), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Failed to create product"}), 500


@products_bp.post("/bulk")
@require_auth
def bulk_create_products_route():
    payload = request.get_json(silent=True) or {}
    products = payload.get("products") if isinstance(payload, dict) else payload
    try:
        created = catalog_service.bulk_create_products(g.tenant_id, products, actor_user_id=g.current_user.id)
        return jsonify({"items": [p.to_dict() for p in created], "count": len(created)}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to bulk create products")
        return jsonify({"error": "Failed to create products"}), 500


@products_bp.post("/stock-adjustment")
@require_auth
@require_role("OWNER", "MANAGER")
def stock_adjustment_route():
    """
    Body: {"sku": str, "quantity": signed int, "reason": str?, "note": str?}

    Positive quantities add stock, negative ones remove it. Reason defaults
    to STOCK_TAKE.
    """
    payload = request.get_json(silent=True)
    try:
        data = enforce_rules_stock_adjustment(payload)
        variant = stock_service.adjust(
            g.tenant_id,
            data["sku"],
            data["quantity"],
            reason=data["reason"],
            actor_user_id=g.current_user.id,
            note=data["note"],
        )
        return jsonify({"variant": variant.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Failed to adjust stock"}), 500


@products_bp.get("/low-stock")
@require_auth
def low_stock_route():
    alerts = alert_service.get_low_stock_alerts(g.tenant_id)
    return jsonify({"items": alerts, "count": len(alerts)}), 200


@products_bp.get("/movements")
@require_auth
def list_movements_route():
    product_id = request.args.get("product_id", type=int)
    sku = request.args.get("sku")
    limit = request.args.get("limit", default=200, type=int)

    movements = ledger_service.list_movements(g.tenant_id, product_id=product_id, sku=sku, limit=limit)
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)}), 200


@products_bp.get("/reconciliation")
@require_auth
@require_role("OWNER", "MANAGER")
def reconciliation_route():
    mismatches = ledger_service.reconcile(g.tenant_id)
    return jsonify({"consistent": not mismatches, "mismatches": mismatches}), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return jsonify(catalog_service.get_product(g.tenant_id, product_id).to_dict()), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True)
    try:
        product = catalog_service.update_product(
            g.tenant_id, product_id, payload, actor_user_id=g.current_user.id
        )
        return jsonify(product.to_dict()), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Failed to update product"}), 500
