# Overview: Low-stock projection recomputed from live stock and open purchase orders.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Product, ProductVariant, PurchaseOrder, PurchaseOrderLine, PurchaseOrderStatus


def pending_inbound_by_sku(tenant_id: int) -> dict[str, int]:
    """Outstanding (ordered - received) quantity per SKU across open purchase orders."""
    outstanding = PurchaseOrderLine.quantity - PurchaseOrderLine.received_quantity
    rows = (
        db.session.query(PurchaseOrderLine.sku, func.sum(outstanding))
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id)
        .filter(
            PurchaseOrder.tenant_id == tenant_id,
            PurchaseOrder.status.in_(PurchaseOrderStatus.OPEN),
            outstanding > 0,
        )
        .group_by(PurchaseOrderLine.sku)
        .all()
    )
    return {sku: int(qty or 0) for sku, qty in rows}


def get_low_stock_alerts(tenant_id: int) -> list[dict]:
    """
    Variants at or below their reorder level that inbound stock will not cover.

    A variant alerts only when stock + pending <= reorder_level. Nothing is
    cached; every call recomputes from current rows.
    """
    candidates = (
        db.session.query(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
        .populate_existing()
        .filter(
            ProductVariant.tenant_id == tenant_id,
            ProductVariant.stock <= ProductVariant.reorder_level,
        )
        .all()
    )
    if not candidates:
        return []

    pending = pending_inbound_by_sku(tenant_id)

    alerts = []
    for variant, product in candidates:
        pending_stock = pending.get(variant.sku, 0)
        projected = variant.stock + pending_stock
        if projected > variant.reorder_level:
            continue
        alerts.append({
            "product_id": product.id,
            "product_name": product.name,
            "sku": variant.sku,
            "variant_name": variant.name,
            "category": product.category,
            "current_stock": variant.stock,
            "reorder_level": variant.reorder_level,
            "pending_stock": pending_stock,
            "projected_stock": projected,
        })

    alerts.sort(key=lambda a: (a["product_name"], a["sku"]))
    return alerts
