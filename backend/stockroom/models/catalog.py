from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data. Sellable units live on ProductVariant.

    MULTI-TENANT: Products are scoped directly by tenant_id.

    A product is created together with its variants; variants are never
    deleted on their own. Descriptive fields use optimistic locking
    (version_id) so concurrent edits surface as StaleDataError.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        db.Index("ix_products_tenant_category", "tenant_id", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(120), nullable=True)
    brand = db.Column(db.String(120), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))
    variants = db.relationship(
        "ProductVariant",
        backref="product",
        order_by="ProductVariant.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        variants = [v.to_dict() for v in self.variants]
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "brand": self.brand,
            "variants": variants,
            "total_stock": sum(v["stock"] for v in variants),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductVariant(db.Model):
    """
    Sellable unit identified by SKU.

    SKU DESIGN DECISION:
    SKUs are unique within a tenant: UniqueConstraint("tenant_id", "sku").
    tenant_id is denormalized from Product so the constraint and every
    stock UPDATE can be expressed on this table alone.

    STOCK:
    `stock` is changed only through catalog_service.adjust_stock, a single
    conditional UPDATE. The CHECK constraint is the last line of defence
    against a negative count. No version_id_col here: the atomic UPDATE
    bypasses the ORM and would otherwise trip optimistic locking.
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_product_variants_tenant_sku"),
        db.CheckConstraint("stock >= 0", name="stock_non_negative"),
        db.CheckConstraint("buying_price_cents >= 0", name="buying_price_non_negative"),
        db.CheckConstraint("selling_price_cents >= 0", name="selling_price_non_negative"),
        db.CheckConstraint("reorder_level >= 0", name="reorder_level_non_negative"),
        db.Index("ix_product_variants_tenant_stock", "tenant_id", "stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Free-form option map, e.g. {"size": "M", "color": "red"}
    attributes = db.Column(db.JSON, nullable=False, default=dict)

    # Authoritative storage in cents
    buying_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductVariant id={self.id} sku={self.sku!r} stock={self.stock} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "attributes": dict(self.attributes or {}),
            "buying_price_cents": self.buying_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "stock": self.stock,
            "reorder_level": self.reorder_level,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
