# Overview: Post-commit notifications on tenant-scoped blinker signals.

"""
Outbound events

Signals:
- order-created: a sales order was placed (payload: SalesOrder.to_dict())
- po-updated: a purchase order changed status or received goods

The sender is the tenant id, so `signal.connect(fn, sender=tenant_id)`
subscribes to a single tenant's channel; connecting without a sender
receives every tenant.

Delivery is best-effort: events are sent only after the transaction has
committed, each receiver runs in isolation, and a failing receiver is
logged and never affects the caller.
"""
from __future__ import annotations

import logging

from blinker import Namespace
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

_signals = Namespace()

order_created = _signals.signal("order-created")
po_updated = _signals.signal("po-updated")


def _events_enabled() -> bool:
    if has_app_context():
        return bool(current_app.config.get("EVENTS_ENABLED", True))
    return True


def emit(signal, tenant_id: int, payload: dict) -> int:
    """Send `payload` to every receiver on the tenant's channel. Returns the number delivered."""
    if not _events_enabled():
        return 0

    delivered = 0
    for receiver in signal.receivers_for(tenant_id):
        try:
            receiver(tenant_id, payload=payload)
            delivered += 1
        except Exception:
            logger.exception("Receiver %r failed for %s (tenant %s)", receiver, signal.name, tenant_id)
    logger.debug("Emitted %s for tenant %s to %d receiver(s)", signal.name, tenant_id, delivered)
    return delivered


def emit_order_created(order) -> int:
    return emit(order_created, order.tenant_id, order.to_dict())


def emit_po_updated(po) -> int:
    return emit(po_updated, po.tenant_id, po.to_dict())


def log_event(sender, payload=None, **kwargs):
    """Application-level receiver: one log line per event."""
    payload = payload or {}
    number = payload.get("order_number") or payload.get("po_number")
    current_app.logger.info(
        "event tenant=%s document=%s status=%s",
        sender,
        number,
        payload.get("status"),
    )


def connect_app_receivers() -> None:
    order_created.connect(log_event)
    po_updated.connect(log_event)
