# Overview: Purchase order coordinator; creation, status changes and multi-line receipts.

"""
Purchase Order Service

RECEIPT (all-or-nothing per call):
- Lines not on the PO are skipped, as are lines already closed
- Each line receives min(requested, ordered - received); over-receipt is capped
- A differing actual unit cost re-prices the line and adds
  (actual - contracted) * ordered to the PO total
- received_quantity and variant stock move together in one transaction
- The PO becomes RECEIVED only when every line is closed, otherwise
  PARTIALLY_RECEIVED (even when nothing on this call was accepted)
"""
from __future__ import annotations

from ..errors import InvalidStateError, NotFoundError
from ..extensions import db
from ..models import (
    MovementReason,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    ReferenceType,
)
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import (
    ValidationError,
    coerce_int,
    enforce_rules_po_line,
    enforce_rules_receipt_line,
    require_non_negative_int,
)
from . import document_service
from .catalog_service import find_variant
from .concurrency import begin_immediate, lock_for_update, run_with_retry
from .events import emit_po_updated
from .stock_service import receive
from .transitions import PO_STATUS_TRANSITIONS, check_transition
from .vendor_service import get_vendor

RECEIPT_ONLY_STATUSES = {PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.PARTIALLY_RECEIVED}


def clean_purchase_order_payload(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if payload.get("vendor_id") is None:
        raise ValidationError("vendor_id is required")

    items = payload.get("items")
    if not isinstance(items, list) or not items:
        raise ValidationError("Purchase order must contain at least one item")

    lines = [enforce_rules_po_line(item) for item in items]
    seen = set()
    for line in lines:
        if line["sku"] in seen:
            raise ValidationError(f"Duplicate SKU on purchase order: {line['sku']}")
        seen.add(line["sku"])

    cleaned = {
        "vendor_id": coerce_int(payload["vendor_id"], "vendor_id"),
        "items": lines,
        "total_amount_cents": None,
        "expected_date": None,
        "notes": None,
    }
    if payload.get("total_amount_cents") is not None:
        cleaned["total_amount_cents"] = require_non_negative_int(
            payload["total_amount_cents"], "total_amount_cents"
        )
    if payload.get("expected_date"):
        try:
            cleaned["expected_date"] = parse_iso_datetime(str(payload["expected_date"]))
        except ValueError:
            raise ValidationError("expected_date must be an ISO-8601 datetime")
    if payload.get("notes"):
        cleaned["notes"] = str(payload["notes"]).strip()
    return cleaned


def get_purchase_order(tenant_id: int, po_id: int) -> PurchaseOrder:
    po = db.session.query(PurchaseOrder).filter_by(id=po_id, tenant_id=tenant_id).first()
    if not po:
        raise NotFoundError("Purchase order not found", details={"purchase_order_id": po_id})
    return po


def list_purchase_orders(
    tenant_id: int,
    *,
    status: str | None = None,
    vendor_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[PurchaseOrder]:
    query = db.session.query(PurchaseOrder).filter(PurchaseOrder.tenant_id == tenant_id)
    if status:
        if status not in PurchaseOrderStatus.ALL:
            raise ValidationError(f"Invalid status: {status}")
        query = query.filter(PurchaseOrder.status == status)
    if vendor_id is not None:
        query = query.filter(PurchaseOrder.vendor_id == vendor_id)
    limit = min(max(limit, 1), 500)
    offset = max(offset, 0)
    return (
        query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def create_purchase_order(tenant_id: int, payload: dict, *, actor_user_id: int | None = None) -> PurchaseOrder:
    """DRAFT purchase order; no stock effect."""
    cleaned = clean_purchase_order_payload(payload)

    def _op() -> PurchaseOrder:
        begin_immediate()
        vendor = get_vendor(tenant_id, cleaned["vendor_id"])

        po = PurchaseOrder(
            tenant_id=tenant_id,
            po_number=document_service.next_document_number(
                tenant_id=tenant_id, document_type=document_service.PURCHASE_ORDER
            ),
            vendor_id=vendor.id,
            status=PurchaseOrderStatus.DRAFT,
            total_amount_cents=0,
            expected_date=cleaned["expected_date"],
            notes=cleaned["notes"],
            created_by_user_id=actor_user_id,
        )
        db.session.add(po)
        db.session.flush()

        computed_total = 0
        for item in cleaned["items"]:
            variant = find_variant(tenant_id, item["sku"])
            db.session.add(PurchaseOrderLine(
                purchase_order_id=po.id,
                product_id=variant.product_id,
                variant_id=variant.id,
                sku=variant.sku,
                quantity=item["quantity"],
                received_quantity=0,
                unit_cost_cents=item["unit_cost_cents"],
            ))
            computed_total += item["quantity"] * item["unit_cost_cents"]

        if cleaned["total_amount_cents"] is not None:
            po.total_amount_cents = cleaned["total_amount_cents"]
        else:
            po.total_amount_cents = computed_total

        db.session.commit()
        return po

    return run_with_retry(_op)


def update_purchase_order_status(
    tenant_id: int,
    po_id: int,
    status: str,
    *,
    actor_user_id: int | None = None,
) -> tuple[PurchaseOrder, bool]:
    """
    Manual status change (DRAFT -> SENT -> CONFIRMED, or CANCELLED).

    RECEIVED / PARTIALLY_RECEIVED only ever result from receipts.
    Returns (po, flagged).
    """
    if not status or status not in PurchaseOrderStatus.ALL:
        raise ValidationError(f"Invalid status: {status}")
    if status in RECEIPT_ONLY_STATUSES:
        raise ValidationError(f"{status} is set by receiving goods, not manually")

    def _op() -> tuple[PurchaseOrder, bool]:
        po = get_purchase_order(tenant_id, po_id)
        if po.status in PurchaseOrderStatus.TERMINAL:
            raise InvalidStateError(
                f"Purchase order {po.po_number} is {po.status}",
                status=po.status,
                details={"purchase_order_id": po.id},
            )
        flagged = check_transition(PO_STATUS_TRANSITIONS, po.status, status, document=po.po_number)
        po.status = status
        db.session.commit()
        return po, flagged

    po, flagged = run_with_retry(_op)
    emit_po_updated(po)
    return po, flagged


def receive_items(
    tenant_id: int,
    po_id: int,
    items: list,
    *,
    actor_user_id: int | None = None,
) -> tuple[PurchaseOrder, dict]:
    """
    Receive a shipment against a PO.

    Returns (po, summary) where summary lists the accepted and skipped
    lines and the price variance applied to the total.
    Any NotFoundError from the mutation engine aborts the whole receipt.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")
    cleaned_items = [enforce_rules_receipt_line(item) for item in items]

    def _op() -> tuple[PurchaseOrder, dict]:
        begin_immediate()
        po = lock_for_update(
            db.session.query(PurchaseOrder).filter_by(id=po_id, tenant_id=tenant_id)
        ).first()
        if not po:
            raise NotFoundError("Purchase order not found", details={"purchase_order_id": po_id})
        if po.status in PurchaseOrderStatus.TERMINAL:
            raise InvalidStateError(
                f"Cannot receive against purchase order {po.po_number} in status {po.status}",
                status=po.status,
                details={"purchase_order_id": po.id},
            )

        lines_by_sku = {line.sku: line for line in po.lines}
        received = []
        skipped = []
        variance = 0

        for item in cleaned_items:
            line = lines_by_sku.get(item["sku"])
            if line is None:
                skipped.append({"sku": item["sku"], "reason": "NOT_ON_ORDER"})
                continue

            to_receive = min(item["quantity"], line.quantity - line.received_quantity)
            if to_receive <= 0:
                skipped.append({"sku": item["sku"], "reason": "ALREADY_RECEIVED"})
                continue

            actual = item["actual_unit_cost_cents"]
            if actual is not None and actual != line.unit_cost_cents:
                variance += (actual - line.unit_cost_cents) * line.quantity
                line.unit_cost_cents = actual

            line.received_quantity += to_receive
            receive(
                tenant_id,
                line.sku,
                to_receive,
                reason=MovementReason.PURCHASE,
                reference_type=ReferenceType.PURCHASE_ORDER,
                reference_id=po.id,
                actor_user_id=actor_user_id,
                note=f"Receive {po.po_number}",
                commit=False,
            )
            received.append({"sku": line.sku, "quantity": to_receive})

        # A supplied total can be lower than the line sum; never go negative
        po.total_amount_cents = max(0, po.total_amount_cents + variance)
        if all(line.is_closed for line in po.lines):
            po.status = PurchaseOrderStatus.RECEIVED
            po.received_date = utcnow()
        else:
            po.status = PurchaseOrderStatus.PARTIALLY_RECEIVED

        db.session.commit()
        return po, {"received": received, "skipped": skipped, "price_variance_cents": variance}

    po, summary = run_with_retry(_op)
    emit_po_updated(po)
    return po, summary
