# Overview: Service-layer operations for vendors; encapsulates business logic and database work.

"""
Vendor Service

MULTI-TENANT: Vendors are scoped to tenants via tenant_id.
Vendor names are unique within a tenant.

Every purchase order names exactly one vendor; a sales order may name one
as its drop-ship supplier.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError
from ..extensions import db
from ..models import Vendor
from ..validation import ConflictError, ModelValidationPolicy, validate_payload
from .concurrency import run_with_retry

VENDOR_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_name", "email", "phone", "address", "is_active"},
    required_on_create={"name"},
)


def get_vendor(tenant_id: int, vendor_id: int) -> Vendor:
    vendor = db.session.query(Vendor).filter_by(id=vendor_id, tenant_id=tenant_id).first()
    if not vendor:
        raise NotFoundError("Vendor not found", details={"vendor_id": vendor_id})
    return vendor


def list_vendors(tenant_id: int, *, include_inactive: bool = False) -> list[Vendor]:
    query = db.session.query(Vendor).filter(Vendor.tenant_id == tenant_id)
    if not include_inactive:
        query = query.filter(Vendor.is_active.is_(True))
    return query.order_by(Vendor.name.asc(), Vendor.id.asc()).all()


def _require_unique_name(tenant_id: int, name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Vendor.id).filter(Vendor.tenant_id == tenant_id, Vendor.name == name)
    if exclude_id is not None:
        query = query.filter(Vendor.id != exclude_id)
    if query.first():
        raise ConflictError(f"Vendor '{name}' already exists")


def create_vendor(tenant_id: int, payload: dict) -> Vendor:
    patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=False)

    def _op() -> Vendor:
        _require_unique_name(tenant_id, patch["name"])
        vendor = Vendor(tenant_id=tenant_id, **patch)
        db.session.add(vendor)
        try:
            db.session.flush()
        except IntegrityError:
            raise ConflictError(f"Vendor '{patch['name']}' already exists")
        db.session.commit()
        return vendor

    return run_with_retry(_op)


def update_vendor(tenant_id: int, vendor_id: int, payload: dict) -> Vendor:
    patch = validate_payload(model=Vendor, payload=payload, policy=VENDOR_POLICY, partial=True)

    def _op() -> Vendor:
        vendor = get_vendor(tenant_id, vendor_id)
        if "name" in patch:
            _require_unique_name(tenant_id, patch["name"], exclude_id=vendor.id)
        for k, v in patch.items():
            setattr(vendor, k, v)
        db.session.commit()
        return vendor

    return run_with_retry(_op)
