# Overview: Password hashing, user creation and credential checks.

"""
Authentication Service

MULTI-TENANT: Users belong to exactly one tenant. Email uniqueness is
tenant-scoped, so login may name the tenant explicitly; without it the
email must identify exactly one active user.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, mixed case, digit and special char
- Session tokens managed separately (see session_service.py)
"""
from __future__ import annotations

import re

import bcrypt
from flask import current_app, has_app_context

from ..extensions import db
from ..models import Tenant, User
from ..models.auth import USER_ROLES
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError, require_text


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt_rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", 12))
    return 12


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=_bcrypt_rounds())
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe; malformed hashes count as a mismatch."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    *,
    tenant_id: int,
    name: str,
    email: str,
    password: str,
    role: str = "STAFF",
) -> User:
    """
    Raises:
        ValidationError: tenant inactive, bad role or weak password
        ConflictError: email already used within the tenant
    """
    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise ValidationError("Tenant not found")
    if not tenant.is_active:
        raise ValidationError("Tenant is not active")

    name = require_text(name, "name")
    email = require_text(email, "email").lower()
    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role: {role}")

    existing = db.session.query(User.id).filter_by(tenant_id=tenant_id, email=email).first()
    if existing:
        raise ConflictError("Email already exists in this tenant")

    user = User(
        tenant_id=tenant_id,
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(email: str, password: str, tenant_id: int | None = None) -> User | None:
    """
    Returns the User if credentials are valid and the tenant is active, None otherwise.
    Updates last_login_at on success.
    """
    if not email or not password:
        return None

    query = (
        db.session.query(User)
        .join(Tenant, Tenant.id == User.tenant_id)
        .filter(
            User.email == email.strip().lower(),
            User.is_active.is_(True),
            Tenant.is_active.is_(True),
        )
    )
    if tenant_id is not None:
        query = query.filter(User.tenant_id == tenant_id)

    candidates = query.all()
    if len(candidates) != 1:
        return None

    user = candidates[0]
    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user
