# backend/stockroom/services/catalog_service.py
"""
Catalog Service with Multi-Tenant Support

MULTI-TENANT: Every lookup and mutation is scoped by tenant_id.
- Variants are addressed by (tenant_id, sku); SKUs are unique per tenant
- Products own their variants; variants are never deleted on their own

STOCK:
adjust_stock is the only code path that changes ProductVariant.stock. It is a
single conditional UPDATE, so two racing deductions cannot both pass the
non-negative check. It never commits; the caller owns the transaction.
Initial and corrected stock levels on create/update flow through
stock_service so every unit is explained by a ledger movement.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStockError, NotFoundError
from ..extensions import db
from ..models import MovementReason, Product, ProductVariant
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_variant,
    validate_payload,
)
from .concurrency import begin_immediate, lock_for_update, run_with_retry

PRODUCT_MUTABLE_FIELDS = {"name", "description", "category", "brand"}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name"},
)

VARIANT_METADATA_FIELDS = {"name", "attributes", "buying_price_cents", "selling_price_cents", "reorder_level"}


# =============================================================================
# Stock primitive
# =============================================================================

def _load_variant(tenant_id: int, sku: str, *, for_update: bool = False) -> ProductVariant | None:
    query = (
        db.session.query(ProductVariant)
        .populate_existing()
        .filter_by(tenant_id=tenant_id, sku=sku)
    )
    if for_update:
        query = lock_for_update(query)
    return query.first()


def find_variant(tenant_id: int, sku: str, *, for_update: bool = False) -> ProductVariant:
    variant = _load_variant(tenant_id, sku, for_update=for_update)
    if variant is None:
        raise NotFoundError(f"Product variant with SKU {sku} not found", details={"sku": sku})
    return variant


def adjust_stock(tenant_id: int, sku: str, delta: int, *, min_resulting_stock: int = 0) -> ProductVariant:
    """
    Atomically apply `delta` to a variant's stock.

    UPDATE product_variants SET stock = stock + :delta
     WHERE tenant_id = :t AND sku = :s AND stock + :delta >= :min

    rowcount 1 -> the refreshed variant is returned.
    rowcount 0 -> the row is re-read to tell NotFoundError from
    InsufficientStockError. No read-then-write, no commit.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")

    stmt = (
        update(ProductVariant)
        .where(
            ProductVariant.tenant_id == tenant_id,
            ProductVariant.sku == sku,
            ProductVariant.stock + delta >= min_resulting_stock,
        )
        .values(stock=ProductVariant.stock + delta)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    variant = _load_variant(tenant_id, sku)
    if result.rowcount == 1 and variant is not None:
        return variant
    if variant is None:
        raise NotFoundError(f"Product variant with SKU {sku} not found", details={"sku": sku})
    raise InsufficientStockError(sku, available=variant.stock, requested=abs(delta))


# =============================================================================
# Products
# =============================================================================

def clean_product_payload(payload: dict, *, partial: bool = False) -> dict:
    """
    Validate a product create/update body.

    Returns {"fields": {...}, "variants": [...] | None}. Variant SKUs must be
    unique within the payload. On create at least one variant is required.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    raw_variants = payload.get("variants")
    product_fields = {k: v for k, v in payload.items() if k != "variants"}
    fields = validate_payload(model=Product, payload=product_fields, policy=PRODUCT_POLICY, partial=partial)

    variants = None
    if raw_variants is not None or not partial:
        if not isinstance(raw_variants, list) or (not partial and not raw_variants):
            raise ValidationError("variants must be a non-empty list")
        variants = [enforce_rules_variant(v, partial=partial) for v in raw_variants]
        seen = set()
        for v in variants:
            if v["sku"] in seen:
                raise ConflictError(f"Duplicate SKU in request: {v['sku']}")
            seen.add(v["sku"])

    return {"fields": fields, "variants": variants}


def get_product(tenant_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id).first()
    if not product:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def list_products(
    tenant_id: int,
    *,
    search: str | None = None,
    category: str | None = None,
    brand: str | None = None,
) -> list[Product]:
    query = db.session.query(Product).filter(Product.tenant_id == tenant_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.variants.any(ProductVariant.sku.ilike(pattern)),
            )
        )
    if category:
        query = query.filter(Product.category == category)
    if brand:
        query = query.filter(Product.brand == brand)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def _require_sku_available(tenant_id: int, sku: str) -> None:
    exists = db.session.query(ProductVariant.id).filter_by(tenant_id=tenant_id, sku=sku).first()
    if exists:
        raise ConflictError(f"SKU already exists: {sku}")


def _insert_variant(
    tenant_id: int,
    product: Product,
    data: dict,
    *,
    reason: str,
    actor_user_id: int | None,
) -> ProductVariant:
    """Insert a variant at zero stock, then book its opening stock through the ledger."""
    from .stock_service import restore

    _require_sku_available(tenant_id, data["sku"])
    variant = ProductVariant(
        product_id=product.id,
        tenant_id=tenant_id,
        sku=data["sku"],
        name=data["name"],
        attributes=data.get("attributes") or {},
        buying_price_cents=data.get("buying_price_cents", 0),
        selling_price_cents=data.get("selling_price_cents", 0),
        stock=0,
        reorder_level=data.get("reorder_level", current_app.config.get("DEFAULT_REORDER_LEVEL", 10)),
    )
    db.session.add(variant)
    try:
        db.session.flush()
    except IntegrityError:
        raise ConflictError(f"SKU already exists: {data['sku']}")

    opening = data.get("stock", 0)
    if opening > 0:
        restore(
            tenant_id,
            variant.sku,
            opening,
            reason=reason,
            actor_user_id=actor_user_id,
            note="Opening stock",
            commit=False,
        )
    return variant


def _insert_product(tenant_id: int, cleaned: dict, actor_user_id: int | None) -> Product:
    product = Product(tenant_id=tenant_id, **cleaned["fields"])
    db.session.add(product)
    db.session.flush()
    for data in cleaned["variants"]:
        _insert_variant(
            tenant_id,
            product,
            data,
            reason=MovementReason.PURCHASE,
            actor_user_id=actor_user_id,
        )
    return product


def create_product(tenant_id: int, payload: dict, *, actor_user_id: int | None = None) -> Product:
    """
    Create a product with its variants in one transaction.

    Opening stock is recorded as IN/PURCHASE movements so the ledger
    reconciles from the first moment the variant exists.
    """
    cleaned = clean_product_payload(payload)

    def _op() -> Product:
        begin_immediate()
        product = _insert_product(tenant_id, cleaned, actor_user_id)
        db.session.commit()
        return product

    return run_with_retry(_op)


def bulk_create_products(tenant_id: int, products: list, *, actor_user_id: int | None = None) -> list[Product]:
    """All-or-nothing: any invalid product or duplicate SKU rejects the whole batch."""
    if not isinstance(products, list) or not products:
        raise ValidationError("products must be a non-empty list")

    cleaned_batch = []
    seen = set()
    for idx, payload in enumerate(products):
        try:
            cleaned = clean_product_payload(payload)
        except ValidationError as e:
            raise ValidationError(f"products[{idx}]: {e}")
        for v in cleaned["variants"]:
            if v["sku"] in seen:
                raise ConflictError(f"Duplicate SKU in request: {v['sku']}")
            seen.add(v["sku"])
        cleaned_batch.append(cleaned)

    def _op() -> list[Product]:
        begin_immediate()
        created = [_insert_product(tenant_id, cleaned, actor_user_id) for cleaned in cleaned_batch]
        db.session.commit()
        return created

    return run_with_retry(_op)


def update_product(
    tenant_id: int,
    product_id: int,
    payload: dict,
    *,
    actor_user_id: int | None = None,
) -> Product:
    """
    Update descriptive fields and variants.

    - Variants matched by SKU get their metadata patched
    - A changed `stock` on an existing variant becomes a signed STOCK_TAKE
      adjustment through stock_service (never a direct column write)
    - Unknown SKUs become new variants with opening stock as IN/STOCK_TAKE
    - Variants missing from the payload are left untouched
    """
    from .stock_service import adjust

    cleaned = clean_product_payload(payload, partial=True)

    def _op() -> Product:
        begin_immediate()
        product = get_product(tenant_id, product_id)

        for k, v in cleaned["fields"].items():
            if k in PRODUCT_MUTABLE_FIELDS:
                setattr(product, k, v)

        existing = {v.sku: v for v in product.variants}
        for data in cleaned["variants"] or []:
            variant = existing.get(data["sku"])
            if variant is None:
                new_data = enforce_rules_variant(data)
                _insert_variant(
                    tenant_id,
                    product,
                    new_data,
                    reason=MovementReason.STOCK_TAKE,
                    actor_user_id=actor_user_id,
                )
                continue

            for k, v in data.items():
                if k in VARIANT_METADATA_FIELDS:
                    setattr(variant, k, v)
            db.session.flush()

            if "stock" in data:
                # The delta is relative to this locked read
                current = find_variant(tenant_id, variant.sku, for_update=True).stock
                delta = data["stock"] - current
                if delta:
                    adjust(
                        tenant_id,
                        variant.sku,
                        delta,
                        reason=MovementReason.STOCK_TAKE,
                        actor_user_id=actor_user_id,
                        note="Stock level corrected via product update",
                        commit=False,
                    )

        db.session.commit()
        return product

    return run_with_retry(_op)
