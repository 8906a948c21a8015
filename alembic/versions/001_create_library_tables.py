"""create author, book and author_book tables

Revision ID: 001
Revises:
Create Date: 2025-01-01 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'author',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=512), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'book',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=512), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table(
        'author_book',
        sa.Column('author_id', sa.String(length=36), nullable=False),
        sa.Column('book_id', sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(['author_id'], ['author.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['book_id'], ['book.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('author_id', 'book_id')
    )
    op.create_index(op.f('ix_author_book_book_id'), 'author_book', ['book_id'])


def downgrade() -> None:
    op.drop_index(op.f('ix_author_book_book_id'), table_name='author_book')
    op.drop_table('author_book')
    op.drop_table('book')
    op.drop_table('author')
