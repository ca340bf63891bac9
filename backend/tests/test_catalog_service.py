# Overview: Pytest coverage for product/variant catalog operations.

import pytest

from stockroom.errors import InsufficientStockError, NotFoundError
from stockroom.models import MovementDirection, MovementReason, ProductVariant, StockMovement
from stockroom.services import catalog_service, ledger_service
from stockroom.validation import ConflictError, ValidationError


def _movements(db_session, tenant_id, sku):
    return (
        db_session.query(StockMovement)
        .filter_by(tenant_id=tenant_id, sku=sku)
        .order_by(StockMovement.id.asc())
        .all()
    )


class TestCreateProduct:

    def test_opening_stock_is_booked_through_ledger(self, db_session, tenant_a, owner_a):
        product = catalog_service.create_product(
            tenant_a.id,
            {"name": "Canvas Tote", "variants": [{"sku": "TOTE-1", "stock": 12, "selling_price_cents": 2500}]},
            actor_user_id=owner_a.id,
        )

        variant = product.variants[0]
        assert variant.stock == 12
        assert variant.name == "TOTE-1"

        movements = _movements(db_session, tenant_a.id, "TOTE-1")
        assert len(movements) == 1
        assert movements[0].direction == MovementDirection.IN
        assert movements[0].reason == MovementReason.PURCHASE
        assert movements[0].quantity == 12
        assert movements[0].user_id == owner_a.id
        assert ledger_service.reconcile(tenant_a.id) == []

    def test_zero_opening_stock_writes_no_movement(self, db_session, tenant_a):
        catalog_service.create_product(tenant_a.id, {"name": "Sticker", "variants": [{"sku": "STK-1"}]})
        assert _movements(db_session, tenant_a.id, "STK-1") == []

    def test_default_reorder_level_comes_from_config(self, db_session, app, tenant_a):
        product = catalog_service.create_product(tenant_a.id, {"name": "Cap", "variants": [{"sku": "CAP-1"}]})
        assert product.variants[0].reorder_level == app.config["DEFAULT_REORDER_LEVEL"]

    def test_product_to_dict_sums_variant_stock(self, db_session, product_a):
        data = product_a.to_dict()
        assert data["total_stock"] == 15
        assert [v["sku"] for v in data["variants"]] == ["TEE-M", "TEE-L"]
        assert data["variants"][0]["attributes"] == {"size": "M"}

    def test_variants_required(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.create_product(tenant_a.id, {"name": "Empty", "variants": []})

    def test_name_required(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.create_product(tenant_a.id, {"variants": [{"sku": "X-1"}]})

    def test_unknown_field_rejected(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                tenant_a.id, {"name": "Hat", "tenant_id": 99, "variants": [{"sku": "HAT-1"}]}
            )

    def test_negative_price_rejected(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                tenant_a.id, {"name": "Hat", "variants": [{"sku": "HAT-1", "selling_price_cents": -1}]}
            )

    def test_decimal_stock_rejected(self, db_session, tenant_a):
        with pytest.raises(ValidationError):
            catalog_service.create_product(
                tenant_a.id, {"name": "Hat", "variants": [{"sku": "HAT-1", "stock": "1.5"}]}
            )

    def test_duplicate_sku_in_payload(self, db_session, tenant_a):
        with pytest.raises(ConflictError):
            catalog_service.create_product(
                tenant_a.id, {"name": "Hat", "variants": [{"sku": "HAT-1"}, {"sku": "HAT-1"}]}
            )

    def test_duplicate_sku_across_products(self, db_session, tenant_a, product_a):
        with pytest.raises(ConflictError):
            catalog_service.create_product(tenant_a.id, {"name": "Other Tee", "variants": [{"sku": "TEE-M"}]})

        # Nothing from the failed create survives
        assert len(catalog_service.list_products(tenant_a.id)) == 1
        assert ledger_service.reconcile(tenant_a.id) == []


class TestBulkCreate:

    def test_bulk_create(self, db_session, tenant_a):
        created = catalog_service.bulk_create_products(tenant_a.id, [
            {"name": "Pen", "variants": [{"sku": "PEN-1", "stock": 100}]},
            {"name": "Pencil", "variants": [{"sku": "PCL-1", "stock": 50}]},
        ])
        assert [p.name for p in created] == ["Pen", "Pencil"]
        assert ledger_service.reconcile(tenant_a.id) == []

    def test_bulk_is_all_or_nothing(self, db_session, tenant_a, product_a):
        with pytest.raises(ConflictError):
            catalog_service.bulk_create_products(tenant_a.id, [
                {"name": "Pen", "variants": [{"sku": "PEN-1", "stock": 100}]},
                {"name": "Clash", "variants": [{"sku": "TEE-L"}]},
            ])

        names = [p.name for p in catalog_service.list_products(tenant_a.id)]
        assert names == ["Basic Tee"]
        assert _movements(db_session, tenant_a.id, "PEN-1") == []

    def test_bulk_duplicate_across_batch(self, db_session, tenant_a):
        with pytest.raises(ConflictError):
            catalog_service.bulk_create_products(tenant_a.id, [
                {"name": "Pen", "variants": [{"sku": "PEN-1"}]},
                {"name": "Pen 2", "variants": [{"sku": "PEN-1"}]},
            ])

    def test_bulk_reports_index_of_invalid_product(self, db_session, tenant_a):
        with pytest.raises(ValidationError, match=r"products\[1\]"):
            catalog_service.bulk_create_products(tenant_a.id, [
                {"name": "Pen", "variants": [{"sku": "PEN-1"}]},
                {"name": "", "variants": [{"sku": "PEN-2"}]},
            ])


class TestUpdateProduct:

    def test_updates_descriptive_fields(self, db_session, tenant_a, product_a):
        updated = catalog_service.update_product(tenant_a.id, product_a.id, {"brand": "Acme Pro"})
        assert updated.brand == "Acme Pro"
        assert updated.version_id == 2

    def test_stock_change_becomes_stock_take_movement(self, db_session, tenant_a, owner_a, product_a):
        catalog_service.update_product(
            tenant_a.id,
            product_a.id,
            {"variants": [{"sku": "TEE-M", "stock": 7}]},
            actor_user_id=owner_a.id,
        )

        assert catalog_service.find_variant(tenant_a.id, "TEE-M").stock == 7
        last = _movements(db_session, tenant_a.id, "TEE-M")[-1]
        assert last.direction == MovementDirection.OUT
        assert last.reason == MovementReason.STOCK_TAKE
        assert last.quantity == 3
        assert ledger_service.reconcile(tenant_a.id) == []

    def test_stock_correction_locks_variant_row(self, db_session, monkeypatch, tenant_a, product_a):
        locked = []
        real_lock = catalog_service.lock_for_update

        def recording_lock(query):
            locked.append(query.column_descriptions[0]["entity"])
            return real_lock(query)

        monkeypatch.setattr(catalog_service, "lock_for_update", recording_lock)

        catalog_service.update_product(
            tenant_a.id, product_a.id, {"variants": [{"sku": "TEE-M", "stock": 12}]}
        )
        assert locked == [ProductVariant]
        assert catalog_service.find_variant(tenant_a.id, "TEE-M").stock == 12

        # Metadata-only patches never take the lock
        locked.clear()
        catalog_service.update_product(
            tenant_a.id, product_a.id, {"variants": [{"sku": "TEE-M", "reorder_level": 4}]}
        )
        assert locked == []

    def test_variant_metadata_patch_leaves_stock(self, db_session, tenant_a, product_a):
        catalog_service.update_product(
            tenant_a.id, product_a.id, {"variants": [{"sku": "TEE-L", "selling_price_cents": 1800}]}
        )
        variant = catalog_service.find_variant(tenant_a.id, "TEE-L")
        assert variant.selling_price_cents == 1800
        assert variant.stock == 5
        assert len(_movements(db_session, tenant_a.id, "TEE-L")) == 1

    def test_new_sku_adds_variant(self, db_session, tenant_a, product_a):
        product = catalog_service.update_product(
            tenant_a.id, product_a.id, {"variants": [{"sku": "TEE-XL", "stock": 4}]}
        )
        assert [v.sku for v in product.variants] == ["TEE-M", "TEE-L", "TEE-XL"]
        movements = _movements(db_session, tenant_a.id, "TEE-XL")
        assert [(m.direction, m.reason, m.quantity) for m in movements] == [
            (MovementDirection.IN, MovementReason.STOCK_TAKE, 4)
        ]

    def test_unknown_product(self, db_session, tenant_a):
        with pytest.raises(NotFoundError):
            catalog_service.update_product(tenant_a.id, 424242, {"name": "Ghost"})


class TestListAndFind:

    def test_search_matches_sku(self, db_session, tenant_a, product_a):
        catalog_service.create_product(tenant_a.id, {"name": "Hoodie", "variants": [{"sku": "HOOD-1"}]})
        assert [p.name for p in catalog_service.list_products(tenant_a.id, search="hood")] == ["Hoodie"]
        assert [p.name for p in catalog_service.list_products(tenant_a.id, search="TEE-L")] == ["Basic Tee"]

    def test_filter_by_category(self, db_session, tenant_a, product_a):
        catalog_service.create_product(
            tenant_a.id, {"name": "Mug", "category": "Kitchen", "variants": [{"sku": "MUG-1"}]}
        )
        assert [p.name for p in catalog_service.list_products(tenant_a.id, category="Apparel")] == ["Basic Tee"]

    def test_find_variant_unknown(self, db_session, tenant_a):
        with pytest.raises(NotFoundError):
            catalog_service.find_variant(tenant_a.id, "NOPE")


class TestAdjustStock:

    def test_conditional_update_refuses_negative(self, db_session, tenant_a, product_a):
        with pytest.raises(InsufficientStockError) as exc_info:
            catalog_service.adjust_stock(tenant_a.id, "TEE-L", -6)
        db_session.rollback()

        assert exc_info.value.available == 5
        assert exc_info.value.requested == 6
        assert db_session.query(ProductVariant).filter_by(sku="TEE-L").one().stock == 5

    def test_adjust_to_exactly_zero(self, db_session, tenant_a, product_a):
        variant = catalog_service.adjust_stock(tenant_a.id, "TEE-L", -5)
        assert variant.stock == 0
        db_session.rollback()

    def test_non_integer_delta(self, db_session, tenant_a, product_a):
        with pytest.raises(ValidationError):
            catalog_service.adjust_stock(tenant_a.id, "TEE-L", 1.5)
