"""Create shipping_rules table.

Revision ID: 002
Revises: 001
Create Date: 2026-10-12

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create shipping_rules table."""
    op.create_table(
        'shipping_rules',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('pincode_from', sa.Integer(), nullable=False, index=True),
        sa.Column('pincode_to', sa.Integer(), nullable=False, index=True),
        sa.Column('charge', sa.Numeric(12, 2), nullable=False),
        sa.Column('min_order_value', sa.Numeric(12, 2), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('pincode_from <= pincode_to', name='ck_shipping_rules_range'),
        sa.CheckConstraint('charge >= 0', name='ck_shipping_rules_charge_non_negative'),
    )


def downgrade() -> None:
    """Drop shipping_rules table."""
    op.drop_table('shipping_rules')
