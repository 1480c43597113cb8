"""Inventory units, batches, defects, orders and the income ledger

Revision ID: 20261019_units_ledger
Revises:
Create Date: 2026-10-19

This migration adds:
1. Stores (warehouse / outlet locations)
2. Batches (planned admissions) and per-barcode inventory units
3. Orders (orders and POS sales share one table, split by kind)
4. Defect records (separate from units; sold through order lines)
5. Ledger entries (derived income + authored expenses)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_units_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. STORES
    # ==========================================================================
    op.create_table('stores',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('store_type', sa.String(length=16), nullable=False, server_default='outlet'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_stores_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stores', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stores_code'), ['code'], unique=False)
        batch_op.create_index(batch_op.f('ix_stores_store_type'), ['store_type'], unique=False)

    # ==========================================================================
    # 2. BATCHES
    # ==========================================================================
    op.create_table('batches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('base_code', sa.String(length=64), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('cost_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('selling_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('admitted', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('admitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('base_code', name='uq_batches_base_code'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('batches', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_batches_product_id'), ['product_id'], unique=False)
        batch_op.create_index('ix_batches_product_admitted', ['product_id', 'admitted'], unique=False)

    # ==========================================================================
    # 3. ORDERS
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False, server_default='order'),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_orders_kind'), ['kind'], unique=False)
        batch_op.create_index('ix_orders_kind_created', ['kind', 'created_at'], unique=False)

    # ==========================================================================
    # 4. INVENTORY UNITS
    # ==========================================================================
    op.create_table('inventory_units',
        sa.Column('barcode', sa.String(length=96), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('batch_id', sa.Integer(), nullable=False),
        sa.Column('cost_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('selling_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='available'),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('location', sa.String(length=120), nullable=False),
        sa.Column('admitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint(
            "(status = 'sold' AND order_id IS NOT NULL) OR (status = 'available' AND order_id IS NULL)",
            name='ck_units_status_order',
        ),
        sa.ForeignKeyConstraint(['batch_id'], ['batches.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('barcode')
    )
    with op.batch_alter_table('inventory_units', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_units_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_units_batch_id'), ['batch_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_units_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_units_order_id'), ['order_id'], unique=False)
        batch_op.create_index('ix_units_product_status', ['product_id', 'status'], unique=False)

    # ==========================================================================
    # 5. DEFECT RECORDS
    # ==========================================================================
    op.create_table('defect_records',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('barcode', sa.String(length=96), nullable=True),
        sa.Column('reason', sa.String(length=64), nullable=True),
        sa.Column('store', sa.String(length=120), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('selling_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('defect_records', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_defect_records_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_defect_records_barcode'), ['barcode'], unique=False)
        batch_op.create_index(batch_op.f('ix_defect_records_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_defect_records_order_id'), ['order_id'], unique=False)
        batch_op.create_index('ix_defects_product_status', ['product_id', 'status'], unique=False)

    # ==========================================================================
    # 6. LEDGER ENTRIES
    # ==========================================================================
    op.create_table('ledger_entries',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('bucket', sa.String(length=16), nullable=False),
        sa.Column('source', sa.String(length=16), nullable=False, server_default='manual'),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('category', sa.String(length=120), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('ledger_entries', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ledger_entries_bucket'), ['bucket'], unique=False)
        batch_op.create_index('ix_ledger_bucket_date', ['bucket', 'date'], unique=False)
        batch_op.create_index('ix_ledger_source_reference', ['source', 'reference_id'], unique=False)


def downgrade():
    op.drop_table('ledger_entries')
    op.drop_table('defect_records')
    op.drop_table('inventory_units')
    op.drop_table('orders')
    op.drop_table('batches')
    op.drop_table('stores')
