from __future__ import annotations
from datetime import datetime
from stockroom.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta


# Maximum money amount: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Upper bound for a single line / adjustment quantity
MAX_QUANTITY = 1_000_000


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_positive_int(value: Any, field: str) -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    n = coerce_int(value, field)
    if n <= 0:
        raise ValidationError(f"{field} must be > 0")
    if n > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return n


def require_non_negative_int(value: Any, field: str, *, maximum: int = MAX_PRICE_CENTS) -> int:
    if value is None:
        raise ValidationError(f"{field} is required")
    n = coerce_int(value, field)
    if n < 0:
        raise ValidationError(f"{field} must be >= 0")
    if n > maximum:
        raise ValidationError(f"{field} cannot exceed {maximum}")
    return n


def require_json_object(payload: Any) -> dict:
    # Request bodies must be JSON objects; a missing body is treated as {}
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


VARIANT_FIELDS = {
    "sku", "name", "attributes", "buying_price_cents", "selling_price_cents", "stock", "reorder_level",
}


def enforce_rules_variant(data: dict, *, partial: bool = False) -> dict:
    """
    Normalize one variant payload for product create/update.

    partial=False: new variant; prices and stock default to 0, name to the SKU.
    partial=True: existing variant; only the keys provided are returned.
    The SKU is always required since it identifies the variant.

    Returns a cleaned dict; raises ValidationError on malformed input.
    """
    if not isinstance(data, dict):
        raise ValidationError("variant must be an object")

    for k in data.keys():
        if k not in VARIANT_FIELDS and k != "id":
            raise ValidationError(f"Field not allowed: {k}")

    cleaned: dict = {"sku": require_text(data.get("sku"), "sku", max_length=64)}

    if not partial:
        data = {
            "name": data.get("name") or cleaned["sku"],
            "attributes": {},
            "buying_price_cents": 0,
            "selling_price_cents": 0,
            "stock": 0,
            **{k: v for k, v in data.items() if v is not None},
        }

    if "name" in data:
        cleaned["name"] = require_text(data["name"], "name")
    if "attributes" in data:
        attributes = data["attributes"] or {}
        if not isinstance(attributes, dict):
            raise ValidationError("attributes must be an object")
        cleaned["attributes"] = {str(k): str(v) for k, v in attributes.items()}
    for price_field in ("buying_price_cents", "selling_price_cents"):
        if price_field in data:
            cleaned[price_field] = require_non_negative_int(data[price_field], price_field)
    if "stock" in data:
        cleaned["stock"] = require_non_negative_int(data["stock"], "stock", maximum=MAX_QUANTITY)
    if data.get("reorder_level") is not None:
        cleaned["reorder_level"] = require_non_negative_int(
            data["reorder_level"], "reorder_level", maximum=MAX_QUANTITY
        )
    return cleaned


def enforce_rules_order_line(data: dict) -> dict:
    # Order lines require sku and qty > 0; unit price is optional (defaults to variant price)
    if not isinstance(data, dict):
        raise ValidationError("items must be objects")
    cleaned = {
        "sku": require_text(data.get("sku"), "sku", max_length=64),
        "quantity": require_positive_int(data.get("quantity"), "quantity"),
        "unit_price_cents": None,
        "product_id": None,
    }
    if data.get("unit_price_cents") is not None:
        cleaned["unit_price_cents"] = require_non_negative_int(data["unit_price_cents"], "unit_price_cents")
    if data.get("product_id") is not None:
        cleaned["product_id"] = coerce_int(data["product_id"], "product_id")
    return cleaned


def enforce_rules_po_line(data: dict) -> dict:
    # PO lines require sku, qty > 0 and a contracted unit cost >= 0
    if not isinstance(data, dict):
        raise ValidationError("items must be objects")
    return {
        "sku": require_text(data.get("sku"), "sku", max_length=64),
        "quantity": require_positive_int(data.get("quantity"), "quantity"),
        "unit_cost_cents": require_non_negative_int(data.get("unit_cost_cents"), "unit_cost_cents"),
    }


def enforce_rules_receipt_line(data: dict) -> dict:
    # Receipt lines require sku and qty > 0; actual cost is optional but must be >= 0
    if not isinstance(data, dict):
        raise ValidationError("items must be objects")
    cleaned = {
        "sku": require_text(data.get("sku"), "sku", max_length=64),
        "quantity": require_positive_int(data.get("quantity"), "quantity"),
        "actual_unit_cost_cents": None,
    }
    if data.get("actual_unit_cost_cents") is not None:
        cleaned["actual_unit_cost_cents"] = require_non_negative_int(
            data["actual_unit_cost_cents"], "actual_unit_cost_cents"
        )
    return cleaned


def enforce_rules_stock_adjustment(data: dict) -> dict:
    # ADJUST requires a non-zero signed quantity
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    sku = require_text(data.get("sku"), "sku", max_length=64)
    if data.get("quantity") is None:
        raise ValidationError("quantity is required")
    quantity = coerce_int(data["quantity"], "quantity")
    if quantity == 0:
        raise ValidationError("quantity must be non-zero for an adjustment")
    if abs(quantity) > MAX_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_QUANTITY}")
    note = data.get("note")
    if note is not None:
        note = require_text(note, "note")
    return {"sku": sku, "quantity": quantity, "reason": data.get("reason"), "note": note}
