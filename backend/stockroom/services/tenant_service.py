# Overview: Tenant creation and lookup.

"""
Every request is scoped to exactly one tenant; the tenant id comes from the
authenticated session (g.tenant_id), never from request parameters.
"""
from __future__ import annotations

from flask import g

from ..errors import NotFoundError
from ..extensions import db
from ..models import Tenant
from ..models.tenancy import TENANT_CURRENCIES, TENANT_PLANS
from ..validation import ConflictError, ValidationError, require_text


class TenantAccessError(Exception):
    """Raised when no tenant context has been established."""
    pass


def get_current_tenant_id() -> int:
    if getattr(g, "tenant_id", None) is None:
        raise TenantAccessError("Tenant context not established")
    return g.tenant_id


def get_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise NotFoundError("Tenant not found", details={"tenant_id": tenant_id})
    return tenant


def list_tenants() -> list[Tenant]:
    return db.session.query(Tenant).order_by(Tenant.id.asc()).all()


def create_tenant(*, name: str, email: str, plan: str = "Basic", currency: str = "USD") -> Tenant:
    name = require_text(name, "name")
    email = require_text(email, "email").lower()
    if plan not in TENANT_PLANS:
        raise ValidationError(f"Invalid plan: {plan}")
    currency = (currency or "").upper()
    if currency not in TENANT_CURRENCIES:
        raise ValidationError(f"Unsupported currency: {currency}")

    if db.session.query(Tenant.id).filter_by(email=email).first():
        raise ConflictError("A tenant with this email already exists")

    tenant = Tenant(name=name, email=email, plan=plan, currency=currency, is_active=True)
    db.session.add(tenant)
    db.session.commit()
    return tenant
