# Overview: Pytest coverage for purchase order creation, status rules and receipts.

import pytest

from stockroom.errors import InvalidStateError, NotFoundError
from stockroom.models import MovementReason, ProductVariant, PurchaseOrderStatus, ReferenceType
from stockroom.services import ledger_service, purchase_order_service
from stockroom.services.events import po_updated
from stockroom.validation import ValidationError


def _po_payload(vendor_id, *lines, **extra):
    payload = {
        "vendor_id": vendor_id,
        "items": [{"sku": sku, "quantity": qty, "unit_cost_cents": cost} for sku, qty, cost in lines],
    }
    payload.update(extra)
    return payload


def _stock(db_session, tenant_id, sku):
    return db_session.query(ProductVariant).filter_by(tenant_id=tenant_id, sku=sku).one().stock


@pytest.fixture
def po(tenant_a, vendor_a, product_a):
    """Draft PO: 10 x TEE-M at 100 and 4 x TEE-L at 250."""
    return purchase_order_service.create_purchase_order(
        tenant_a.id, _po_payload(vendor_a.id, ("TEE-M", 10, 100), ("TEE-L", 4, 250))
    )


class TestCreatePurchaseOrder:

    def test_create_is_draft_without_stock_effect(self, db_session, tenant_a, vendor_a, po):
        assert po.status == PurchaseOrderStatus.DRAFT
        assert po.po_number == f"PO-{tenant_a.id:03d}-0001"
        assert po.total_amount_cents == 10 * 100 + 4 * 250
        assert po.to_dict()["vendor_name"] == "Northwind Wholesale"
        assert [(line.sku, line.received_quantity) for line in po.lines] == [("TEE-M", 0), ("TEE-L", 0)]
        assert _stock(db_session, tenant_a.id, "TEE-M") == 10

    def test_expected_date_and_notes(self, db_session, tenant_a, vendor_a, product_a):
        po = purchase_order_service.create_purchase_order(
            tenant_a.id,
            _po_payload(vendor_a.id, ("TEE-M", 1, 100), expected_date="2030-01-15T09:00:00Z", notes=" rush "),
        )
        assert po.to_dict()["expected_date"] == "2030-01-15T09:00:00Z"
        assert po.notes == "rush"

    def test_duplicate_sku_rejected(self, db_session, tenant_a, vendor_a, product_a):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order(
                tenant_a.id, _po_payload(vendor_a.id, ("TEE-M", 1, 100), ("TEE-M", 2, 100))
            )

    def test_vendor_required(self, db_session, tenant_a, product_a):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order(tenant_a.id, {"items": [{"sku": "TEE-M", "quantity": 1}]})

    def test_unknown_vendor(self, db_session, tenant_a, product_a):
        with pytest.raises(NotFoundError):
            purchase_order_service.create_purchase_order(tenant_a.id, _po_payload(999999, ("TEE-M", 1, 100)))

    def test_unknown_sku_leaves_no_po(self, db_session, tenant_a, vendor_a, product_a):
        with pytest.raises(NotFoundError):
            purchase_order_service.create_purchase_order(
                tenant_a.id, _po_payload(vendor_a.id, ("TEE-M", 1, 100), ("GHOST", 1, 100))
            )
        assert purchase_order_service.list_purchase_orders(tenant_a.id) == []

    def test_unit_cost_required(self, db_session, tenant_a, vendor_a, product_a):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order(
                tenant_a.id, {"vendor_id": vendor_a.id, "items": [{"sku": "TEE-M", "quantity": 1}]}
            )


class TestPurchaseOrderStatus:

    def test_draft_to_sent(self, db_session, tenant_a, po):
        updated, flagged = purchase_order_service.update_purchase_order_status(
            tenant_a.id, po.id, PurchaseOrderStatus.SENT
        )
        assert updated.status == PurchaseOrderStatus.SENT
        assert flagged is False

    def test_skipping_sent_is_flagged(self, db_session, tenant_a, po):
        updated, flagged = purchase_order_service.update_purchase_order_status(
            tenant_a.id, po.id, PurchaseOrderStatus.CONFIRMED
        )
        assert updated.status == PurchaseOrderStatus.CONFIRMED
        assert flagged is True

    @pytest.mark.parametrize("status", [PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.PARTIALLY_RECEIVED])
    def test_receipt_statuses_are_not_manual(self, db_session, tenant_a, po, status):
        with pytest.raises(ValidationError):
            purchase_order_service.update_purchase_order_status(tenant_a.id, po.id, status)

    def test_cancelled_po_is_terminal(self, db_session, tenant_a, po):
        purchase_order_service.update_purchase_order_status(tenant_a.id, po.id, PurchaseOrderStatus.CANCELLED)
        with pytest.raises(InvalidStateError):
            purchase_order_service.update_purchase_order_status(tenant_a.id, po.id, PurchaseOrderStatus.SENT)

    def test_status_change_emits_po_updated(self, db_session, tenant_a, po):
        received = []

        def receiver(sender, payload=None, **kwargs):
            received.append(payload["status"])

        with po_updated.connected_to(receiver, sender=tenant_a.id):
            purchase_order_service.update_purchase_order_status(tenant_a.id, po.id, PurchaseOrderStatus.SENT)

        assert received == [PurchaseOrderStatus.SENT]


class TestReceiveItems:

    def test_partial_then_full_receipt(self, db_session, tenant_a, owner_a, po):
        po, summary = purchase_order_service.receive_items(
            tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 4}], actor_user_id=owner_a.id
        )
        assert po.status == PurchaseOrderStatus.PARTIALLY_RECEIVED
        assert summary["received"] == [{"sku": "TEE-M", "quantity": 4}]
        assert _stock(db_session, tenant_a.id, "TEE-M") == 14

        # Over-receipt is capped at what is still outstanding
        po, summary = purchase_order_service.receive_items(
            tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 10}, {"sku": "TEE-L", "quantity": 4}]
        )
        assert summary["received"] == [{"sku": "TEE-M", "quantity": 6}, {"sku": "TEE-L", "quantity": 4}]
        assert po.status == PurchaseOrderStatus.RECEIVED
        assert po.received_date is not None
        assert _stock(db_session, tenant_a.id, "TEE-M") == 20
        assert _stock(db_session, tenant_a.id, "TEE-L") == 9

        movements = ledger_service.list_movements(
            tenant_a.id, reference_type=ReferenceType.PURCHASE_ORDER, reference_id=po.id
        )
        assert sorted(m.quantity for m in movements) == [4, 4, 6]
        assert all(m.reason == MovementReason.PURCHASE for m in movements)
        assert ledger_service.reconcile(tenant_a.id) == []

    def test_received_po_rejects_further_receipts(self, db_session, tenant_a, po):
        purchase_order_service.receive_items(
            tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 10}, {"sku": "TEE-L", "quantity": 4}]
        )
        with pytest.raises(InvalidStateError):
            purchase_order_service.receive_items(tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 1}])
        assert _stock(db_session, tenant_a.id, "TEE-M") == 20

    def test_cancelled_po_rejects_receipts(self, db_session, tenant_a, po):
        purchase_order_service.update_purchase_order_status(tenant_a.id, po.id, PurchaseOrderStatus.CANCELLED)
        with pytest.raises(InvalidStateError):
            purchase_order_service.receive_items(tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 1}])

    def test_lines_not_on_order_or_closed_are_skipped(self, db_session, tenant_a, po, product_a):
        purchase_order_service.receive_items(tenant_a.id, po.id, [{"sku": "TEE-L", "quantity": 4}])

        po, summary = purchase_order_service.receive_items(
            tenant_a.id,
            po.id,
            [{"sku": "TEE-L", "quantity": 1}, {"sku": "HAT-9", "quantity": 1}, {"sku": "TEE-M", "quantity": 2}],
        )
        assert summary["skipped"] == [
            {"sku": "TEE-L", "reason": "ALREADY_RECEIVED"},
            {"sku": "HAT-9", "reason": "NOT_ON_ORDER"},
        ]
        assert summary["received"] == [{"sku": "TEE-M", "quantity": 2}]
        assert _stock(db_session, tenant_a.id, "TEE-L") == 9

    def test_receipt_accepting_nothing_marks_partially_received(self, db_session, tenant_a, po):
        po, summary = purchase_order_service.receive_items(tenant_a.id, po.id, [{"sku": "HAT-9", "quantity": 1}])
        assert summary["received"] == []
        assert po.status == PurchaseOrderStatus.PARTIALLY_RECEIVED

    def test_price_variance_adjusts_total(self, db_session, tenant_a, po):
        po, summary = purchase_order_service.receive_items(
            tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 5, "actual_unit_cost_cents": 120}]
        )
        assert summary["price_variance_cents"] == 200
        assert po.total_amount_cents == 2000 + 200
        assert po.lines[0].unit_cost_cents == 120

    def test_variance_never_drives_total_negative(self, db_session, tenant_a, vendor_a, product_a):
        po = purchase_order_service.create_purchase_order(
            tenant_a.id, _po_payload(vendor_a.id, ("TEE-M", 10, 100), total_amount_cents=0)
        )
        po, summary = purchase_order_service.receive_items(
            tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 5, "actual_unit_cost_cents": 50}]
        )
        assert summary["price_variance_cents"] == -500
        assert po.total_amount_cents == 0

    def test_receiving_more_than_ordered_adds_only_outstanding(self, db_session, tenant_a, po):
        po, summary = purchase_order_service.receive_items(tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 15}])

        assert summary["received"] == [{"sku": "TEE-M", "quantity": 10}]
        assert _stock(db_session, tenant_a.id, "TEE-M") == 10 + 10
        line = next(line for line in po.lines if line.sku == "TEE-M")
        assert line.received_quantity == 10
        assert po.status == PurchaseOrderStatus.PARTIALLY_RECEIVED

    def test_invalid_receipt_line_touches_nothing(self, db_session, tenant_a, po):
        with pytest.raises(ValidationError):
            purchase_order_service.receive_items(
                tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 2}, {"sku": "TEE-L", "quantity": -1}]
            )
        assert _stock(db_session, tenant_a.id, "TEE-M") == 10
        assert purchase_order_service.get_purchase_order(tenant_a.id, po.id).status == PurchaseOrderStatus.DRAFT

    def test_receipt_emits_po_updated(self, db_session, tenant_a, po):
        received = []

        def receiver(sender, payload=None, **kwargs):
            received.append(payload["po_number"])

        with po_updated.connected_to(receiver, sender=tenant_a.id):
            purchase_order_service.receive_items(tenant_a.id, po.id, [{"sku": "TEE-M", "quantity": 1}])

        assert received == [po.po_number]

    def test_list_by_vendor_and_status(self, db_session, tenant_a, vendor_a, po):
        assert [p.id for p in purchase_order_service.list_purchase_orders(tenant_a.id, vendor_id=vendor_a.id)] == [po.id]
        assert purchase_order_service.list_purchase_orders(tenant_a.id, status=PurchaseOrderStatus.SENT) == []
        with pytest.raises(ValidationError):
            purchase_order_service.list_purchase_orders(tenant_a.id, status="BOGUS")
