"""initial stockroom schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the complete schema from scratch:
- tenants, users, session_tokens: isolation boundary and opaque sessions
- products, product_variants: catalog; variant stock guarded by CHECK (stock >= 0)
- stock_movements: append-only ledger (sum(IN) - sum(OUT) == stock per SKU)
- vendors, sales_orders(+lines), purchase_orders(+lines): documents
- document_sequences: per-tenant SO/PO numbering
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True):
    cols = [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]
    if updated:
        cols.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                      server_default=sa.text('CURRENT_TIMESTAMP'))
        )
    return cols


def upgrade():
    # ============================================================================
    # tenants: isolation boundary
    # ============================================================================
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('plan', sa.String(length=16), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_tenants'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_tenants_email', 'tenants', ['email'], unique=True)
    op.create_index('ix_tenants_is_active', 'tenants', ['is_active'])

    # ============================================================================
    # users / session_tokens
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(updated=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_users_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('tenant_id', 'email', name='uq_users_tenant_email'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_session_tokens_user_id_users'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_session_tokens_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_session_tokens'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_tenant_id', 'session_tokens', ['tenant_id'])
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_user_active', 'session_tokens', ['user_id', 'is_revoked'])

    # ============================================================================
    # products / product_variants: catalog
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('brand', sa.String(length=120), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_products_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_tenant_id', 'products', ['tenant_id'])
    op.create_index('ix_products_tenant_name', 'products', ['tenant_id', 'name'])
    op.create_index('ix_products_tenant_category', 'products', ['tenant_id', 'category'])

    op.create_table(
        'product_variants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('attributes', sa.JSON(), nullable=False),
        sa.Column('buying_price_cents', sa.Integer(), nullable=False),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('reorder_level', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_product_variants_product_id_products'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_product_variants_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_product_variants'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_product_variants_tenant_sku'),
        sa.CheckConstraint('stock >= 0', name='ck_product_variants_stock_non_negative'),
        sa.CheckConstraint('buying_price_cents >= 0', name='ck_product_variants_buying_price_non_negative'),
        sa.CheckConstraint('selling_price_cents >= 0', name='ck_product_variants_selling_price_non_negative'),
        sa.CheckConstraint('reorder_level >= 0', name='ck_product_variants_reorder_level_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_product_variants_product_id', 'product_variants', ['product_id'])
    op.create_index('ix_product_variants_tenant_id', 'product_variants', ['tenant_id'])
    op.create_index('ix_product_variants_tenant_stock', 'product_variants', ['tenant_id', 'stock'])

    # ============================================================================
    # stock_movements: append-only ledger
    # ============================================================================
    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('direction', sa.String(length=3), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_stock_movements_tenant_id_tenants'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_stock_movements_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_stock_movements'),
        sa.CheckConstraint('quantity > 0', name='ck_stock_movements_quantity_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_movements_tenant_id', 'stock_movements', ['tenant_id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_reason', 'stock_movements', ['reason'])
    op.create_index('ix_stock_movements_user_id', 'stock_movements', ['user_id'])
    op.create_index('ix_stock_movements_tenant_sku', 'stock_movements', ['tenant_id', 'sku'])
    op.create_index('ix_stock_movements_tenant_occurred', 'stock_movements', ['tenant_id', 'occurred_at'])
    op.create_index('ix_stock_movements_reference', 'stock_movements',
                    ['tenant_id', 'reference_type', 'reference_id'])

    # ============================================================================
    # vendors
    # ============================================================================
    op.create_table(
        'vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_vendors_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_vendors'),
        sa.UniqueConstraint('tenant_id', 'name', name='uq_vendors_tenant_name'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_vendors_tenant_id', 'vendors', ['tenant_id'])
    op.create_index('ix_vendors_is_active', 'vendors', ['is_active'])

    # ============================================================================
    # sales_orders / sales_order_lines
    # ============================================================================
    op.create_table(
        'sales_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('shipping_address', sa.Text(), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_sales_orders_tenant_id_tenants'),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], name='fk_sales_orders_vendor_id_vendors'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'],
                                name='fk_sales_orders_created_by_user_id_users'),
        sa.ForeignKeyConstraint(['cancelled_by_user_id'], ['users.id'],
                                name='fk_sales_orders_cancelled_by_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_sales_orders'),
        sa.UniqueConstraint('tenant_id', 'order_number', name='uq_sales_orders_tenant_number'),
        sa.CheckConstraint('total_amount_cents >= 0', name='ck_sales_orders_total_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_orders_tenant_id', 'sales_orders', ['tenant_id'])
    op.create_index('ix_sales_orders_vendor_id', 'sales_orders', ['vendor_id'])
    op.create_index('ix_sales_orders_status', 'sales_orders', ['status'])
    op.create_index('ix_sales_orders_tenant_status_created', 'sales_orders',
                    ['tenant_id', 'status', 'created_at'])

    op.create_table(
        'sales_order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['sales_orders.id'], name='fk_sales_order_lines_order_id_sales_orders'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_sales_order_lines_product_id_products'),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id'],
                                name='fk_sales_order_lines_variant_id_product_variants'),
        sa.PrimaryKeyConstraint('id', name='pk_sales_order_lines'),
        sa.CheckConstraint('quantity > 0', name='ck_sales_order_lines_quantity_positive'),
        sa.CheckConstraint('unit_price_cents >= 0', name='ck_sales_order_lines_unit_price_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_order_lines_order_id', 'sales_order_lines', ['order_id'])

    # ============================================================================
    # purchase_orders / purchase_order_lines
    # ============================================================================
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=64), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('expected_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_purchase_orders_tenant_id_tenants'),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], name='fk_purchase_orders_vendor_id_vendors'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'],
                                name='fk_purchase_orders_created_by_user_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_purchase_orders'),
        sa.UniqueConstraint('tenant_id', 'po_number', name='uq_purchase_orders_tenant_number'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_orders_tenant_id', 'purchase_orders', ['tenant_id'])
    op.create_index('ix_purchase_orders_vendor_id', 'purchase_orders', ['vendor_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_tenant_status', 'purchase_orders', ['tenant_id', 'status'])

    op.create_table(
        'purchase_order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('variant_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('received_quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'],
                                name='fk_purchase_order_lines_purchase_order_id_purchase_orders'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_purchase_order_lines_product_id_products'),
        sa.ForeignKeyConstraint(['variant_id'], ['product_variants.id'],
                                name='fk_purchase_order_lines_variant_id_product_variants'),
        sa.PrimaryKeyConstraint('id', name='pk_purchase_order_lines'),
        sa.UniqueConstraint('purchase_order_id', 'sku', name='uq_purchase_order_lines_po_sku'),
        sa.CheckConstraint('quantity > 0', name='ck_purchase_order_lines_quantity_positive'),
        sa.CheckConstraint('received_quantity >= 0', name='ck_purchase_order_lines_received_non_negative'),
        sa.CheckConstraint('unit_cost_cents >= 0', name='ck_purchase_order_lines_unit_cost_non_negative'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_purchase_order_lines_purchase_order_id', 'purchase_order_lines', ['purchase_order_id'])

    # ============================================================================
    # document_sequences: per-tenant numbering
    # ============================================================================
    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_document_sequences_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_document_sequences'),
        sa.UniqueConstraint('tenant_id', 'document_type', name='uq_doc_sequences_tenant_type'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_document_sequences_tenant_id', 'document_sequences', ['tenant_id'])
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])


def downgrade():
    op.drop_table('document_sequences')
    op.drop_table('purchase_order_lines')
    op.drop_table('purchase_orders')
    op.drop_table('sales_order_lines')
    op.drop_table('sales_orders')
    op.drop_table('vendors')
    op.drop_table('stock_movements')
    op.drop_table('product_variants')
    op.drop_table('products')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('tenants')
