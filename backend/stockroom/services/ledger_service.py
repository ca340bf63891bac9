# Overview: Append-only stock movement ledger; the audit trail behind every stock count.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from sqlalchemy import case, func

from ..extensions import db
from ..models import (
    MovementDirection,
    MovementReason,
    ProductVariant,
    ReferenceType,
    StockMovement,
)
from ..time_utils import utcnow
from ..validation import ValidationError
"""
Stock Movement Ledger Invariants (authoritative)

- Append-only: rows are never updated or deleted.
- Movements are written inside the same DB transaction as the stock UPDATE
  they record; this module never commits.
- quantity is always positive; direction carries the sign.
- For every (tenant_id, sku): sum(IN) - sum(OUT) == ProductVariant.stock.
"""

MAX_LIST_LIMIT = 500


def _signed_quantity():
    return case(
        (StockMovement.direction == MovementDirection.IN, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )


def append_movement(
    *,
    tenant_id: int,
    variant: ProductVariant,
    direction: str,
    quantity: int,
    reason: str,
    reference_type: str | None = None,
    reference_id: int | None = None,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
) -> StockMovement:
    """
    Append one immutable movement row for `variant`.

    - No stock changes here; callers pair this with catalog_service.adjust_stock.
    - Flushes so the row id is assigned, never commits.
    """
    if direction not in MovementDirection.ALL:
        raise ValidationError(f"Invalid movement direction: {direction}")
    if reason not in MovementReason.ALL:
        raise ValidationError(f"Invalid movement reason: {reason}")
    if reference_type is not None and reference_type not in ReferenceType.ALL:
        raise ValidationError(f"Invalid reference type: {reference_type}")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Movement quantity must be a positive integer")

    movement = StockMovement(
        tenant_id=tenant_id,
        product_id=variant.product_id,
        variant_id=variant.id,
        sku=variant.sku,
        direction=direction,
        quantity=quantity,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        user_id=actor_user_id,
        note=note,
        occurred_at=occurred_at or utcnow(),
    )
    db.session.add(movement)
    db.session.flush()  # ensures movement.id is assigned without committing
    return movement


def list_movements(
    tenant_id: int,
    *,
    product_id: int | None = None,
    sku: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    """Newest first, ordered by (occurred_at desc, id desc)."""
    if limit < 1:
        limit = 1
    if limit > MAX_LIST_LIMIT:
        limit = MAX_LIST_LIMIT

    query = db.session.query(StockMovement).filter(StockMovement.tenant_id == tenant_id)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if sku:
        query = query.filter(StockMovement.sku == sku)
    if reference_type:
        query = query.filter(StockMovement.reference_type == reference_type)
    if reference_id is not None:
        query = query.filter(StockMovement.reference_id == reference_id)

    return (
        query.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def net_movement(tenant_id: int, sku: str) -> int:
    """sum(IN) - sum(OUT) for one SKU."""
    total = (
        db.session.query(func.coalesce(func.sum(_signed_quantity()), 0))
        .filter(StockMovement.tenant_id == tenant_id, StockMovement.sku == sku)
        .scalar()
    )
    return int(total or 0)


def reconcile(tenant_id: int) -> list[dict]:
    """
    Audit: compare every variant's stock against its net movement.

    Returns only the mismatches; an empty list means the ledger explains
    every stock count for the tenant.
    """
    net_by_sku = dict(
        db.session.query(StockMovement.sku, func.sum(_signed_quantity()))
        .filter(StockMovement.tenant_id == tenant_id)
        .group_by(StockMovement.sku)
        .all()
    )

    variants = (
        db.session.query(ProductVariant)
        .populate_existing()
        .filter(ProductVariant.tenant_id == tenant_id)
        .order_by(ProductVariant.sku.asc())
        .all()
    )

    mismatches = []
    for variant in variants:
        net = int(net_by_sku.get(variant.sku) or 0)
        if net != variant.stock:
            mismatches.append({
                "variant_id": variant.id,
                "product_id": variant.product_id,
                "sku": variant.sku,
                "stock": variant.stock,
                "net_movement": net,
                "difference": variant.stock - net,
            })
    return mismatches
