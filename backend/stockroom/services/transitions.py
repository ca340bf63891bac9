# Overview: Status transition tables for sales and purchase orders.

"""
Transitions outside these tables are *flagged*, not silently accepted:
the service logs a warning and reports status_transition_flagged=True.
With STRICT_STATUS_TRANSITIONS enabled they are rejected instead.
"""
from __future__ import annotations

from flask import current_app

from ..errors import InvalidStateError
from ..models import OrderStatus, PurchaseOrderStatus

ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.RETURNED: set(),
    OrderStatus.CANCELLED: set(),
}

PO_STATUS_TRANSITIONS = {
    PurchaseOrderStatus.DRAFT: {PurchaseOrderStatus.SENT, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.SENT: {PurchaseOrderStatus.CONFIRMED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.CONFIRMED: {PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.PARTIALLY_RECEIVED: {PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.RECEIVED: set(),
    PurchaseOrderStatus.CANCELLED: set(),
}


def is_transition_allowed(table: dict, current: str, new: str) -> bool:
    if current == new:
        return True
    return new in table.get(current, set())


def check_transition(table: dict, current: str, new: str, *, document: str) -> bool:
    """
    Returns True when the transition is flagged (outside the table).

    Raises InvalidStateError for flagged transitions in strict mode.
    """
    if is_transition_allowed(table, current, new):
        return False

    if current_app.config.get("STRICT_STATUS_TRANSITIONS", False):
        raise InvalidStateError(
            f"Cannot move {document} from {current} to {new}",
            status=current,
            details={"requested_status": new},
        )

    current_app.logger.warning(
        "Flagged status transition on %s: %s -> %s", document, current, new
    )
    return True
