"""Add per-file PIN hash to documents

Revision ID: 003
Revises: 002
Create Date: 2026-04-14

Documents can now carry their own PIN. Rows created before this revision keep
a NULL pin_hash and fall back to the owner's account PIN.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column('documents', sa.Column('pin_hash', sa.String(length=255), nullable=True))


def downgrade() -> None:
    op.drop_column('documents', 'pin_hash')
