from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from stockroom.time_utils import to_utc_z


class MovementDirection:
    IN = "IN"
    OUT = "OUT"

    ALL = (IN, OUT)


class MovementReason:
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    RETURN_FROM_CUSTOMER = "RETURN_FROM_CUSTOMER"
    RETURN_TO_SUPPLIER = "RETURN_TO_SUPPLIER"
    STOCK_TAKE = "STOCK_TAKE"
    DAMAGED = "DAMAGED"

    ALL = (PURCHASE, SALE, RETURN_FROM_CUSTOMER, RETURN_TO_SUPPLIER, STOCK_TAKE, DAMAGED)


class ReferenceType:
    SALES_ORDER = "SALES_ORDER"
    PURCHASE_ORDER = "PURCHASE_ORDER"

    ALL = (SALES_ORDER, PURCHASE_ORDER)


class StockMovement(db.Model):
    """
    Append-only record of a single stock change.

    RULES:
    - One row per successful adjust_stock call, written in the same transaction
    - quantity is always positive; direction carries the sign
    - Never updated or deleted (enforced by mapper events below)

    RECONCILIATION:
    For every (tenant_id, sku): sum(IN) - sum(OUT) == ProductVariant.stock

    product_id / reference_id are weak references: they are kept for
    traceability and never cascade.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_tenant_sku", "tenant_id", "sku"),
        db.Index("ix_stock_movements_tenant_occurred", "tenant_id", "occurred_at"),
        db.Index("ix_stock_movements_reference", "tenant_id", "reference_type", "reference_id"),
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=False, index=True)
    variant_id = db.Column(db.Integer, nullable=False)
    sku = db.Column(db.String(64), nullable=False)

    direction = db.Column(db.String(3), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False, index=True)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    # Null for system actions (CLI, migrations)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def signed_quantity(self) -> int:
        return self.quantity if self.direction == MovementDirection.IN else -self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "sku": self.sku,
            "direction": self.direction,
            "quantity": self.quantity,
            "signed_quantity": self.signed_quantity,
            "reason": self.reason,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "user_id": self.user_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class ImmutableMovementError(RuntimeError):
    """Raised when code attempts to change or remove a ledger row."""


@event.listens_for(StockMovement, "before_update")
def _block_movement_update(mapper, connection, target):
    raise ImmutableMovementError(f"StockMovement {target.id} is immutable")


@event.listens_for(StockMovement, "before_delete")
def _block_movement_delete(mapper, connection, target):
    raise ImmutableMovementError(f"StockMovement {target.id} cannot be deleted")
