from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class OrderStatus:
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"

    ALL = (PENDING, PROCESSING, SHIPPED, DELIVERED, CANCELLED, RETURNED)


class SalesOrder(db.Model):
    """
    Sales order document.

    Stock for every line is deducted when the order is placed (in the same
    transaction that inserts this row) and restored when it is cancelled.
    Status changes other than cancellation never touch stock.
    """
    __tablename__ = "sales_orders"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "order_number", name="uq_sales_orders_tenant_number"),
        db.Index("ix_sales_orders_tenant_status_created", "tenant_id", "status", "created_at"),
        db.CheckConstraint("total_amount_cents >= 0", name="total_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    # Human-readable document number (e.g., "SO-001-0042")
    order_number = db.Column(db.String(64), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False)
    shipping_address = db.Column(db.Text, nullable=False)

    # Optional supplier the goods are drop-shipped from
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default=OrderStatus.PENDING, index=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "SalesOrderLine",
        backref="order",
        order_by="SalesOrderLine.id",
        lazy=True,
    )
    vendor = db.relationship("Vendor")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<SalesOrder id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "shipping_address": self.shipping_address,
            "vendor_id": self.vendor_id,
            "status": self.status,
            "total_amount_cents": self.total_amount_cents,
            "items": [line.to_dict() for line in self.lines],
            "created_by_user_id": self.created_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SalesOrderLine(db.Model):
    """Individual line items on a sales order."""
    __tablename__ = "sales_order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="unit_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("sales_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=False)
    sku = db.Column(db.String(64), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
