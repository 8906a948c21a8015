"""add outbox table

Revision ID: 002
Revises: 001
Create Date: 2025-01-01 12:00:00.000000

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
    op.create_table(
        'outbox',
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('kind', sa.SmallInteger(), nullable=False),
        sa.Column('raw_data', sa.LargeBinary(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='CREATED'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('idempotency_key')
    )
    op.create_index('idx_outbox_status_created', 'outbox', ['status', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_outbox_status_created', table_name='outbox')
    op.drop_table('outbox')
