# Overview: Sales order coordinator; multi-line placement and cancellation as single transactions.

"""
Sales Order Service

PLACEMENT (all-or-nothing):
1. Validate the whole request before touching the database
2. BEGIN IMMEDIATE (SQLite) so concurrent placements queue
3. Allocate the order number and flush the order row
4. deduct() each line against the order; the first failure rolls back
   every deduction, every ledger row and the order itself
5. Commit, then emit order-created

Two concurrent placements against one SKU can never both succeed past the
available stock: the guarantee comes from the conditional UPDATE in
catalog_service.adjust_stock, not from any lock held here.
"""
from __future__ import annotations

from ..errors import InvalidStateError, NotFoundError
from ..extensions import db
from ..models import MovementReason, OrderStatus, ReferenceType, SalesOrder, SalesOrderLine
from ..time_utils import utcnow
from ..validation import (
    ValidationError,
    coerce_int,
    enforce_rules_order_line,
    require_non_negative_int,
    require_text,
)
from . import document_service
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .events import emit_order_created
from .stock_service import deduct, restore
from .transitions import ORDER_STATUS_TRANSITIONS, check_transition
from .vendor_service import get_vendor


def clean_order_payload(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("Order must contain at least one item")

    cleaned = {
        "customer_name": require_text(payload.get("customer_name"), "customer_name"),
        "shipping_address": require_text(payload.get("shipping_address"), "shipping_address", max_length=2000),
        "items": [enforce_rules_order_line(item) for item in items],
        "total_amount_cents": None,
        "vendor_id": None,
    }
    if payload.get("total_amount_cents") is not None:
        cleaned["total_amount_cents"] = require_non_negative_int(
            payload["total_amount_cents"], "total_amount_cents"
        )
    if payload.get("vendor_id") is not None:
        cleaned["vendor_id"] = coerce_int(payload["vendor_id"], "vendor_id")
    return cleaned


def get_order(tenant_id: int, order_id: int) -> SalesOrder:
    order = db.session.query(SalesOrder).filter_by(id=order_id, tenant_id=tenant_id).first()
    if not order:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def list_orders(tenant_id: int, *, status: str | None = None, limit: int = 100, offset: int = 0) -> list[SalesOrder]:
    query = db.session.query(SalesOrder).filter(SalesOrder.tenant_id == tenant_id)
    if status:
        if status not in OrderStatus.ALL:
            raise ValidationError(f"Invalid status: {status}")
        query = query.filter(SalesOrder.status == status)
    limit = min(max(limit, 1), 500)
    offset = max(offset, 0)
    return (
        query.order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def place_order(tenant_id: int, payload: dict, *, actor_user_id: int | None = None) -> SalesOrder:
    """
    Place a sales order, deducting stock for every line.

    Raises:
        ValidationError: malformed request (nothing touched)
        InsufficientStockError: a line exceeds available stock (all rolled back)
        NotFoundError: unknown SKU or vendor (all rolled back)
    """
    cleaned = clean_order_payload(payload)

    def _op() -> SalesOrder:
        begin_immediate()

        if cleaned["vendor_id"] is not None:
            get_vendor(tenant_id, cleaned["vendor_id"])

        order = SalesOrder(
            tenant_id=tenant_id,
            order_number=document_service.next_document_number(
                tenant_id=tenant_id, document_type=document_service.SALES_ORDER
            ),
            customer_name=cleaned["customer_name"],
            shipping_address=cleaned["shipping_address"],
            vendor_id=cleaned["vendor_id"],
            status=OrderStatus.PENDING,
            total_amount_cents=0,
            created_by_user_id=actor_user_id,
        )
        db.session.add(order)
        db.session.flush()

        computed_total = 0
        for item in cleaned["items"]:
            variant = deduct(
                tenant_id,
                item["sku"],
                item["quantity"],
                reason=MovementReason.SALE,
                reference_type=ReferenceType.SALES_ORDER,
                reference_id=order.id,
                actor_user_id=actor_user_id,
                commit=False,
            )
            if item["product_id"] is not None and item["product_id"] != variant.product_id:
                raise ValidationError(
                    f"SKU {item['sku']} does not belong to product {item['product_id']}"
                )

            unit_price = item["unit_price_cents"]
            if unit_price is None:
                unit_price = variant.selling_price_cents
            line_total = unit_price * item["quantity"]
            computed_total += line_total

            db.session.add(SalesOrderLine(
                order_id=order.id,
                product_id=variant.product_id,
                variant_id=variant.id,
                sku=variant.sku,
                quantity=item["quantity"],
                unit_price_cents=unit_price,
                line_total_cents=line_total,
            ))

        if cleaned["total_amount_cents"] is not None:
            order.total_amount_cents = cleaned["total_amount_cents"]
        else:
            order.total_amount_cents = computed_total

        db.session.commit()
        return order

    order = run_with_retry(_op)
    emit_order_created(order)
    return order


def cancel_order(tenant_id: int, order_id: int, *, actor_user_id: int | None = None) -> SalesOrder:
    """Restore stock for every line and mark the order CANCELLED."""
    def _op() -> SalesOrder:
        begin_immediate()
        order = lock_for_update(
            db.session.query(SalesOrder).filter_by(id=order_id, tenant_id=tenant_id)
        ).first()
        if not order:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        if order.status == OrderStatus.CANCELLED:
            raise InvalidStateError(
                f"Order {order.order_number} is already cancelled",
                status=order.status,
                details={"order_id": order.id},
            )

        for line in order.lines:
            restore(
                tenant_id,
                line.sku,
                line.quantity,
                reason=MovementReason.RETURN_FROM_CUSTOMER,
                reference_type=ReferenceType.SALES_ORDER,
                reference_id=order.id,
                actor_user_id=actor_user_id,
                note=f"Cancel {order.order_number}",
                commit=False,
            )

        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utcnow()
        order.cancelled_by_user_id = actor_user_id
        db.session.commit()
        return order

    return run_with_retry(_op)


def update_order_status(
    tenant_id: int,
    order_id: int,
    status: str,
    *,
    actor_user_id: int | None = None,
) -> tuple[SalesOrder, bool]:
    """
    Field update only, no stock effect.

    Returns (order, flagged) where flagged marks a transition outside
    ORDER_STATUS_TRANSITIONS.
    """
    if not status or status not in OrderStatus.ALL:
        raise ValidationError(f"Invalid status: {status}")
    if status == OrderStatus.CANCELLED:
        raise ValidationError("Use the cancel operation to cancel an order so stock is restored")

    def _op() -> tuple[SalesOrder, bool]:
        order = get_order(tenant_id, order_id)
        if order.status == OrderStatus.CANCELLED:
            raise InvalidStateError(
                f"Order {order.order_number} is cancelled",
                status=order.status,
                details={"order_id": order.id},
            )
        flagged = check_transition(
            ORDER_STATUS_TRANSITIONS, order.status, status, document=order.order_number
        )
        order.status = status
        db.session.commit()
        return order, flagged

    return run_with_retry(_op)
