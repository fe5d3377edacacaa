"""Seller inventory ledger and QA approval schema

Revision ID: 20261019_seller_inv_qa
Revises:
Create Date: 2026-10-19

This migration adds:
1. products (seller product record; stock counter + buyer-visible approval flag)
2. inventory_ledger_entries (append-only stock audit trail)
3. low_stock_alerts (deduplicated threshold notices)
4. qa_assessments (product approval pipeline)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_seller_inv_qa'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. PRODUCTS TABLE
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('approval_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_seller_id'), ['seller_id'], unique=False)
        batch_op.create_index('ix_products_seller_active', ['seller_id', 'is_active'], unique=False)
        batch_op.create_index('ix_products_approval', ['approval_status'], unique=False)

    # ==========================================================================
    # 2. INVENTORY LEDGER (append-only)
    # ==========================================================================
    op.create_table('inventory_ledger_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('change_type', sa.String(length=16), nullable=False),
        sa.Column('quantity_before', sa.Integer(), nullable=False),
        sa.Column('quantity_change', sa.Integer(), nullable=False),
        sa.Column('quantity_after', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('reference_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False, server_default='SYSTEM'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity_after = quantity_before + quantity_change', name='ck_ledger_quantity_chain'),
        sa.CheckConstraint('quantity_after >= 0', name='ck_ledger_after_non_negative'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_ledger_entries', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_ledger_entries_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_ledger_entries_change_type'), ['change_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_ledger_entries_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_ledger_product_id_order', ['product_id', 'id'], unique=False)
        batch_op.create_index('ix_ledger_reference', ['reference_id'], unique=False)

    # ==========================================================================
    # 3. LOW STOCK ALERTS
    # ==========================================================================
    op.create_table('low_stock_alerts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('current_stock', sa.Integer(), nullable=False),
        sa.Column('threshold', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('acknowledged', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('acknowledged_by', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('low_stock_alerts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_low_stock_alerts_product_id'), ['product_id'], unique=False)
        batch_op.create_index('ix_alerts_product_ack', ['product_id', 'acknowledged'], unique=False)

    # ==========================================================================
    # 4. QA ASSESSMENTS
    # ==========================================================================
    op.create_table('qa_assessments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.String(length=64), nullable=False),
        sa.Column('vendor', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='PENDING_DIGITAL_REVIEW'),
        sa.Column('logistics_method', sa.String(length=128), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('rejection_stage', sa.String(length=16), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revision_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('qa_assessments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_qa_assessments_product_id'), ['product_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_qa_assessments_status'), ['status'], unique=False)
        batch_op.create_index('ix_qa_product_status', ['product_id', 'status'], unique=False)
        batch_op.create_index('ix_qa_seller_status', ['seller_id', 'status'], unique=False)


def downgrade():
    # Drop tables in reverse order of creation (respect foreign keys)
    op.drop_table('qa_assessments')
    op.drop_table('low_stock_alerts')
    op.drop_table('inventory_ledger_entries')
    op.drop_table('products')
