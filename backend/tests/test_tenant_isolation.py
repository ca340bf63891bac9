# Overview: Pytest coverage for tenant isolation behavior.

"""
Multi-Tenant Isolation Tests

SECURITY TESTS: Prove that one tenant can neither read nor mutate another
tenant's catalog, stock, orders, purchase orders or vendors, even when
both tenants use the same SKU.
"""

import pytest

from stockroom.errors import NotFoundError
from stockroom.services import (
    catalog_service,
    ledger_service,
    order_service,
    purchase_order_service,
    stock_service,
    vendor_service,
)
from stockroom.services.auth_service import create_user
from stockroom.services.tenant_service import TenantAccessError, get_current_tenant_id

from conftest import auth_headers, get_auth_token


def _order(sku="TEE-M", qty=1):
    return {
        "customer_name": "Jane Doe",
        "shipping_address": "1 Market Street",
        "items": [{"sku": sku, "quantity": qty}],
    }


class TestServiceIsolation:

    def test_shared_sku_stock_is_independent(self, db_session, tenant_a, tenant_b, product_a, product_b):
        stock_service.deduct(tenant_a.id, "TEE-M", 4)

        assert catalog_service.find_variant(tenant_a.id, "TEE-M").stock == 6
        assert catalog_service.find_variant(tenant_b.id, "TEE-M").stock == 7
        assert ledger_service.net_movement(tenant_b.id, "TEE-M") == 7

    def test_product_of_other_tenant_not_found(self, db_session, tenant_b, product_a):
        with pytest.raises(NotFoundError):
            catalog_service.get_product(tenant_b.id, product_a.id)
        with pytest.raises(NotFoundError):
            catalog_service.update_product(tenant_b.id, product_a.id, {"name": "Hijacked"})

    def test_sku_unknown_to_other_tenant(self, db_session, tenant_b, product_a):
        with pytest.raises(NotFoundError):
            stock_service.deduct(tenant_b.id, "TEE-L", 1)

    def test_list_products_scoped(self, db_session, tenant_a, tenant_b, product_a, product_b):
        assert [p.name for p in catalog_service.list_products(tenant_a.id)] == ["Basic Tee"]
        assert [p.name for p in catalog_service.list_products(tenant_b.id)] == ["Beta Mug"]

    def test_orders_scoped(self, db_session, tenant_a, tenant_b, product_a, product_b):
        order = order_service.place_order(tenant_a.id, _order())

        with pytest.raises(NotFoundError):
            order_service.get_order(tenant_b.id, order.id)
        with pytest.raises(NotFoundError):
            order_service.cancel_order(tenant_b.id, order.id)
        assert order_service.list_orders(tenant_b.id) == []

    def test_document_numbers_are_per_tenant(self, db_session, tenant_a, tenant_b, product_a, product_b):
        order_a = order_service.place_order(tenant_a.id, _order())
        order_b = order_service.place_order(tenant_b.id, _order())

        assert order_a.order_number == f"SO-{tenant_a.id:03d}-0001"
        assert order_b.order_number == f"SO-{tenant_b.id:03d}-0001"

    def test_foreign_vendor_rejected_on_po(self, db_session, tenant_b, vendor_a, product_b):
        with pytest.raises(NotFoundError):
            purchase_order_service.create_purchase_order(
                tenant_b.id,
                {"vendor_id": vendor_a.id, "items": [{"sku": "TEE-M", "quantity": 1, "unit_cost_cents": 10}]},
            )

    def test_vendor_names_unique_per_tenant_only(self, db_session, tenant_a, tenant_b, vendor_a):
        vendor = vendor_service.create_vendor(tenant_b.id, {"name": vendor_a.name})
        assert vendor.tenant_id == tenant_b.id
        assert [v.name for v in vendor_service.list_vendors(tenant_a.id)] == ["Northwind Wholesale"]

    def test_movements_scoped(self, db_session, tenant_a, tenant_b, product_a, product_b):
        assert {m.tenant_id for m in ledger_service.list_movements(tenant_a.id)} == {tenant_a.id}

    def test_tenant_context_required(self, app):
        with app.app_context(), app.test_request_context():
            with pytest.raises(TenantAccessError):
                get_current_tenant_id()


class TestRouteIsolation:

    def test_cannot_read_other_tenant_product(self, client, product_a, owner_b_headers):
        resp = client.get(f"/api/products/{product_a.id}", headers=owner_b_headers)
        assert resp.status_code == 404

    def test_cannot_cancel_other_tenant_order(self, client, tenant_a, product_a, owner_b_headers):
        order = order_service.place_order(tenant_a.id, _order())
        resp = client.post(f"/api/orders/{order.id}/cancel", headers=owner_b_headers)
        assert resp.status_code == 404
        assert catalog_service.find_variant(tenant_a.id, "TEE-M").stock == 9

    def test_tenant_id_query_param_is_ignored(self, client, tenant_a, product_a, owner_b_headers):
        resp = client.get("/api/products", headers=owner_b_headers, query_string={"tenant_id": tenant_a.id})
        assert resp.status_code == 200
        assert resp.json["count"] == 0

    def test_login_scoped_by_tenant(self, client, tenant_a, tenant_b, owner_a):
        # Same email registered in tenant B makes a tenant-less login ambiguous
        create_user(tenant_id=tenant_b.id, name="Twin", email=owner_a.email, password="Password123!")

        assert get_auth_token(client, owner_a.email) is None
        token = get_auth_token(client, owner_a.email, tenant_id=tenant_a.id)
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.json["tenant_id"] == tenant_a.id
