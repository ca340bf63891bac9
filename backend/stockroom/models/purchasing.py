from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class PurchaseOrderStatus:
    DRAFT = "DRAFT"
    SENT = "SENT"
    CONFIRMED = "CONFIRMED"
    PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"

    ALL = (DRAFT, SENT, CONFIRMED, PARTIALLY_RECEIVED, RECEIVED, CANCELLED)
    # Quantities on these POs still count as inbound stock
    OPEN = (DRAFT, SENT, CONFIRMED, PARTIALLY_RECEIVED)
    TERMINAL = (RECEIVED, CANCELLED)


class Vendor(db.Model):
    """
    Vendor / supplier entity.

    MULTI-TENANT: Vendor names are unique within a tenant.
    Purchase orders require a vendor; sales orders may optionally name one.
    """
    __tablename__ = "vendors"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_vendors_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseOrder(db.Model):
    """
    Purchase order document.

    Creation has no stock effect. Each receipt increments
    PurchaseOrderLine.received_quantity and variant stock in lockstep; the PO
    becomes RECEIVED only when every line is closed (received >= ordered).
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "po_number", name="uq_purchase_orders_tenant_number"),
        db.Index("ix_purchase_orders_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    po_number = db.Column(db.String(64), nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)

    status = db.Column(db.String(24), nullable=False, default=PurchaseOrderStatus.DRAFT, index=True)

    # Adjusted by price variance on receipt
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    expected_date = db.Column(db.DateTime(timezone=True), nullable=True)
    received_date = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    vendor = db.relationship("Vendor", backref=db.backref("purchase_orders", lazy=True))
    lines = db.relationship(
        "PurchaseOrderLine",
        backref="purchase_order",
        order_by="PurchaseOrderLine.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} number={self.po_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "po_number": self.po_number,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "items": [line.to_dict() for line in self.lines],
            "expected_date": to_utc_z(self.expected_date) if self.expected_date else None,
            "received_date": to_utc_z(self.received_date) if self.received_date else None,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseOrderLine(db.Model):
    """Line item on a purchase order. SKUs are unique within a PO."""
    __tablename__ = "purchase_order_lines"
    __table_args__ = (
        db.UniqueConstraint("purchase_order_id", "sku", name="uq_purchase_order_lines_po_sku"),
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.CheckConstraint("received_quantity >= 0", name="received_non_negative"),
        db.CheckConstraint("unit_cost_cents >= 0", name="unit_cost_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)
    sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    @property
    def outstanding_quantity(self) -> int:
        return max(self.quantity - (self.received_quantity or 0), 0)

    @property
    def is_closed(self) -> bool:
        return (self.received_quantity or 0) >= self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "sku": self.sku,
            "quantity": self.quantity,
            "received_quantity": self.received_quantity,
            "outstanding_quantity": self.outstanding_quantity,
            "unit_cost_cents": self.unit_cost_cents,
        }
