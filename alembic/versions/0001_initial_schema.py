"""initial tracking schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create tracking documents, lines, source orders and the status catalogue."""
    op.create_table(
        'tracking_documents',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('display_number', sa.Integer(), nullable=False),
        sa.Column('counterparty_code', sa.String(length=50), nullable=False),
        sa.Column('counterparty_name', sa.String(length=200), nullable=False),
        sa.Column('external_reference', sa.String(length=100), nullable=False),
        sa.Column('document_date', sa.Date(), nullable=False),
        sa.Column('status', sa.SmallInteger(), nullable=False),
        sa.Column('source_order_id', sa.Integer(), nullable=True),
        sa.Column('source_order_number', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_order_id', name='uq_tracking_documents_source_order_id'),
    )
    op.create_index('ix_tracking_documents_counterparty', 'tracking_documents', ['counterparty_code'])
    op.create_index('ix_tracking_documents_display_number', 'tracking_documents', ['display_number'])

    op.create_table(
        'tracking_lines',
        sa.Column('line_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('document_id', sa.Integer(), nullable=False),
        sa.Column('line_order', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=254), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('entry_time', sa.String(length=5), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('status_timestamp', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['document_id'], ['tracking_documents.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('line_id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_tracking_lines_document_order', 'tracking_lines', ['document_id', 'line_order'])

    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('doc_number', sa.Integer(), nullable=False),
        sa.Column('counterparty_code', sa.String(length=50), nullable=False),
        sa.Column('counterparty_name', sa.String(length=200), nullable=False),
        sa.Column('external_reference', sa.String(length=100), nullable=False),
        sa.Column('doc_date', sa.Date(), nullable=False),
        sa.Column('doc_status', sa.String(length=1), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_purchase_orders_counterparty_status', 'purchase_orders', ['counterparty_code', 'doc_status']
    )

    op.create_table(
        'line_statuses',
        sa.Column('code', sa.String(length=30), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint('code'),
    )


def downgrade() -> None:
    """Drop the tracking schema."""
    op.drop_table('line_statuses')
    op.drop_index('ix_purchase_orders_counterparty_status', table_name='purchase_orders')
    op.drop_table('purchase_orders')
    op.drop_index('ix_tracking_lines_document_order', table_name='tracking_lines')
    op.drop_table('tracking_lines')
    op.drop_index('ix_tracking_documents_display_number', table_name='tracking_documents')
    op.drop_index('ix_tracking_documents_counterparty', table_name='tracking_documents')
    op.drop_table('tracking_documents')
