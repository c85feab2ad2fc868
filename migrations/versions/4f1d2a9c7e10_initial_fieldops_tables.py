"""initial engineers / bills / payments / engineer_summaries

Revision ID: 4f1d2a9c7e10
Revises:
Create Date: 2025-03-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1d2a9c7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'engineers',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('engineer_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('contact_number', sa.String(length=30), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=120), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_engineers_engineer_name', 'engineers', ['engineer_name'], unique=False)
    op.create_index('ix_engineers_email', 'engineers', ['email'], unique=False)

    op.create_table(
        'bills',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('bill_number', sa.String(length=50), nullable=True),
        sa.Column('engineer_name', sa.String(length=255), nullable=True),
        sa.Column('engineer_id', sa.String(length=36), nullable=True),
        sa.Column('service_type', sa.String(length=120), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('contact_number', sa.String(length=30), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('payment_method', sa.String(length=30), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=True),
        sa.Column('service_charge', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(12, 2), nullable=True),
        sa.Column('engineer_commission', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_bills_engineer_name', 'bills', ['engineer_name'], unique=False)
    op.create_index('ix_bills_engineer_id', 'bills', ['engineer_id'], unique=False)
    op.create_index('ix_bills_date', 'bills', ['date'], unique=False)

    op.create_table(
        'payments',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('engineer_id', sa.String(length=36), nullable=False),
        sa.Column('engineer_name', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payments_engineer_id', 'payments', ['engineer_id'], unique=False)
    op.create_index('ix_payments_engineer_name', 'payments', ['engineer_name'], unique=False)
    op.create_index('ix_payments_date', 'payments', ['date'], unique=False)

    op.create_table(
        'engineer_summaries',
        sa.Column('id', sa.String(length=40), primary_key=True),
        sa.Column('engineer_id', sa.String(length=255), nullable=False),
        sa.Column('engineer_name', sa.String(length=255), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('monthly_commission', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('monthly_paid', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('pending_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('engineer_id', 'month', 'year', name='uq_engineer_summary_period'),
    )
    op.create_index('ix_engineer_summaries_engineer_id', 'engineer_summaries', ['engineer_id'], unique=False)
    op.create_index('ix_engineer_summary_month_year', 'engineer_summaries', ['month', 'year'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_engineer_summary_month_year', table_name='engineer_summaries')
    op.drop_index('ix_engineer_summaries_engineer_id', table_name='engineer_summaries')
    op.drop_table('engineer_summaries')
    for ix in ('ix_payments_date', 'ix_payments_engineer_name', 'ix_payments_engineer_id'):
        op.drop_index(ix, table_name='payments')
    op.drop_table('payments')
    for ix in ('ix_bills_date', 'ix_bills_engineer_id', 'ix_bills_engineer_name'):
        op.drop_index(ix, table_name='bills')
    op.drop_table('bills')
    op.drop_index('ix_engineers_email', table_name='engineers')
    op.drop_index('ix_engineers_engineer_name', table_name='engineers')
    op.drop_table('engineers')
