# Overview: Stock mutation engine; pairs every atomic stock update with its ledger movement.

from __future__ import annotations

from typing import Optional

from ..extensions import db
from ..models import MovementDirection, MovementReason, ProductVariant, ReferenceType
from ..validation import ValidationError, require_positive_int
from .catalog_service import adjust_stock
from .concurrency import begin_immediate, run_with_retry
from .ledger_service import append_movement

"""
Each operation here is the unit of atomicity offered to callers:

- adjust_stock and append_movement run in the same transaction
- if adjust_stock fails, no movement is written
- commit=True: own transaction (BEGIN IMMEDIATE on SQLite, retry, commit)
- commit=False: compose into the caller's wider transaction (order placement,
  PO receipt, product update); the caller commits or rolls back
"""

OUT_REASONS = {
    MovementReason.SALE,
    MovementReason.RETURN_TO_SUPPLIER,
    MovementReason.STOCK_TAKE,
    MovementReason.DAMAGED,
}
IN_REASONS = {
    MovementReason.PURCHASE,
    MovementReason.RETURN_FROM_CUSTOMER,
    MovementReason.STOCK_TAKE,
}


def _run(op, commit: bool):
    if not commit:
        return op()

    def _op():
        begin_immediate()
        result = op()
        db.session.commit()
        return result

    return run_with_retry(_op)


def deduct(
    tenant_id: int,
    sku: str,
    qty: int,
    *,
    reason: str = MovementReason.SALE,
    reference_type: str | None = None,
    reference_id: int | None = None,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    commit: bool = True,
) -> ProductVariant:
    """Remove `qty` units. Raises InsufficientStockError / NotFoundError with no ledger row written."""
    qty = require_positive_int(qty, "quantity")
    if reason not in OUT_REASONS:
        raise ValidationError(f"Reason {reason} cannot decrease stock")

    def _op() -> ProductVariant:
        variant = adjust_stock(tenant_id, sku, -qty, min_resulting_stock=0)
        append_movement(
            tenant_id=tenant_id,
            variant=variant,
            direction=MovementDirection.OUT,
            quantity=qty,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
            actor_user_id=actor_user_id,
            note=note,
        )
        return variant

    return _run(_op, commit)


def restore(
    tenant_id: int,
    sku: str,
    qty: int,
    *,
    reason: str = MovementReason.RETURN_FROM_CUSTOMER,
    reference_type: str | None = None,
    reference_id: int | None = None,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    commit: bool = True,
) -> ProductVariant:
    """Add `qty` units back. Always satisfiable for an existing SKU; raises NotFoundError otherwise."""
    qty = require_positive_int(qty, "quantity")
    if reason not in IN_REASONS:
        raise ValidationError(f"Reason {reason} cannot increase stock")

    def _op() -> ProductVariant:
        variant = adjust_stock(tenant_id, sku, qty, min_resulting_stock=0)
        append_movement(
            tenant_id=tenant_id,
            variant=variant,
            direction=MovementDirection.IN,
            quantity=qty,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
            actor_user_id=actor_user_id,
            note=note,
        )
        return variant

    return _run(_op, commit)


def receive(
    tenant_id: int,
    sku: str,
    qty: int,
    *,
    reason: str = MovementReason.PURCHASE,
    reference_type: str | None = ReferenceType.PURCHASE_ORDER,
    reference_id: int | None = None,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    commit: bool = True,
) -> ProductVariant:
    """Goods received against a purchase order."""
    return restore(
        tenant_id,
        sku,
        qty,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        actor_user_id=actor_user_id,
        note=note,
        commit=commit,
    )


def adjust(
    tenant_id: int,
    sku: str,
    quantity: int,
    *,
    reason: str | None = None,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    commit: bool = True,
) -> ProductVariant:
    """
    Manual signed adjustment (stock take, damage write-off, supplier return).

    quantity > 0 -> restore, quantity < 0 -> deduct, 0 is rejected.
    Defaults to STOCK_TAKE.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity == 0:
        raise ValidationError("quantity must be non-zero for an adjustment")

    reason = reason or MovementReason.STOCK_TAKE
    if reason not in MovementReason.ALL:
        raise ValidationError(f"Invalid movement reason: {reason}")

    if quantity > 0:
        return restore(
            tenant_id, sku, quantity,
            reason=reason, actor_user_id=actor_user_id, note=note, commit=commit,
        )
    return deduct(
        tenant_id, sku, -quantity,
        reason=reason, actor_user_id=actor_user_id, note=note, commit=commit,
    )
