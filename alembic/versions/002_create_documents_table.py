"""Create documents table

Revision ID: 002
Revises: 001
Create Date: 2026-03-02

Adds the documents table supporting:
- Single-owner documents (cascade on user delete)
- Envelope encryption (per-file AES key and IV, both wrapped with the master key)
- Optional PIN protection via the owner's account PIN
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the documents table."""
    op.create_table(
        'documents',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('owner_id', sa.Integer, sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),

        # File metadata
        sa.Column('filename', sa.String(255), nullable=False, unique=True),
        sa.Column('original_filename', sa.String(255), nullable=False),
        sa.Column('file_type', sa.String(10), nullable=False),
        sa.Column('content_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.BigInteger, nullable=False),
        sa.Column('category', sa.Enum(
            'Work', 'Education', 'ID', 'Certificate', 'Resume', 'Other',
            name='documentcategory'
        ), nullable=False, server_default='Other'),
        sa.Column('tags', sa.Text, nullable=True),

        # Envelope encryption (base64)
        sa.Column('wrapped_key', sa.Text, nullable=False),
        sa.Column('wrapped_iv', sa.Text, nullable=False),
        sa.Column('storage_key', sa.String(500), nullable=False, unique=True),

        sa.Column('requires_pin', sa.Boolean, nullable=False, server_default=sa.false()),

        # Timestamps
        sa.Column('uploaded_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_documents_id', 'documents', ['id'])
    op.create_index('ix_documents_owner_id', 'documents', ['owner_id'])
    op.create_index('ix_documents_category', 'documents', ['category'])
    op.create_index('ix_documents_uploaded_at', 'documents', ['uploaded_at'])
    op.create_index('ix_documents_owner_uploaded', 'documents', ['owner_id', 'uploaded_at'])
    op.create_index('ix_documents_owner_category', 'documents', ['owner_id', 'category'])


def downgrade() -> None:
    """Drop the documents table."""
    op.drop_table('documents')
    # Drop the enum type created by PostgreSQL
    op.execute("DROP TYPE IF EXISTS documentcategory")
