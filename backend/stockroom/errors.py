# Overview: Domain error taxonomy shared by services and routes.

"""
Stockroom error taxonomy.

Every domain error carries a human-readable message plus a ``details`` dict
with enough structure (offending SKU, available quantity, current status) for
the caller to correct and retry. None of these are fatal to the process; they
abort the single requested operation and its transaction.

HTTP mapping (see routes): NotFoundError -> 404, InsufficientStockError and
InvalidStateError -> 409. Input problems use validation.ValidationError (400).
"""


class StockroomError(Exception):
    """Base class for domain errors."""

    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(StockroomError):
    """Tenant-scoped entity (product, variant, order, PO, vendor) does not exist."""

    http_status = 404


class InsufficientStockError(StockroomError):
    """A deduction would take a variant's stock below zero."""

    http_status = 409

    def __init__(self, sku: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {sku}. Available: {available}",
            details={"sku": sku, "available": available, "requested": requested},
        )
        self.sku = sku
        self.available = available
        self.requested = requested


class InvalidStateError(StockroomError):
    """Operation attempted against a terminal or incompatible status."""

    http_status = 409

    def __init__(self, message: str, status: str | None = None, details: dict | None = None):
        merged = dict(details or {})
        if status is not None:
            merged.setdefault("status", status)
        super().__init__(message, details=merged)
        self.status = status


def error_response(exc: Exception):
    """Map a domain or validation error to a Flask (body, status) pair."""
    from flask import jsonify
    from .validation import ConflictError, ValidationError

    if isinstance(exc, StockroomError):
        status = exc.http_status
        details = exc.details
    elif isinstance(exc, ConflictError):
        status, details = 409, {}
    elif isinstance(exc, ValidationError):
        status, details = 400, {}
    else:
        raise exc
    return jsonify({"error": str(exc), "details": details}), status
