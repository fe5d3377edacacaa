"""Seller tiers and QA actor column

Revision ID: 20261020_seller_tiers
Revises: 20261019_seller_inv_qa
Create Date: 2026-10-20

This migration adds:
1. seller_tiers (admin-granted standing; trusted tiers skip QA review)
2. qa_assessments.updated_by (actor of the latest submission or transition)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261020_seller_tiers'
down_revision = '20261019_seller_inv_qa'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('seller_tiers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.String(length=64), nullable=False),
        sa.Column('tier_level', sa.String(length=32), nullable=False, server_default='standard'),
        sa.Column('bypasses_assessment', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('updated_by', sa.String(length=64), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('seller_id', name='uq_seller_tiers_seller'),
        sqlite_autoincrement=True
    )

    with op.batch_alter_table('qa_assessments', schema=None) as batch_op:
        batch_op.add_column(sa.Column('updated_by', sa.String(length=64), nullable=True))


def downgrade():
    with op.batch_alter_table('qa_assessments', schema=None) as batch_op:
        batch_op.drop_column('updated_by')

    op.drop_table('seller_tiers')
