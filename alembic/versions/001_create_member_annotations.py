"""create member_annotations table

Revision ID: 001_member_annotations
Revises:
Create Date: 2026-10-18 10:00:00.000000

Annotation rows used when [annotations] backend = database. Columns mirror
the annotation sheet layout; RowOrder keeps the sheet's row order.

Server defaults:
- sa.func.now() → CURRENT_TIMESTAMP (SQLite) or GETDATE() (MSSQL)
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.engine.reflection import Inspector


# revision identifiers, used by Alembic.
revision = '001_member_annotations'
down_revision = None
branch_labels = None
depends_on = None


def table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    inspector = Inspector.from_engine(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    """Create member_annotations with its UniqueId and RowOrder indexes (idempotent)."""
    if table_exists('member_annotations'):
        print("→ member_annotations table already exists, skipping...")
        return

    print("✓ Creating member_annotations table...")
    op.create_table(
        'member_annotations',
        sa.Column('id', sa.Integer(), nullable=False, primary_key=True),

        # Sheet position and keys
        sa.Column('RowOrder', sa.Integer(), nullable=False),
        sa.Column('UniqueId', sa.String(255), nullable=False),
        sa.Column('MemberId', sa.String(100), nullable=True),
        sa.Column('Email', sa.String(255), nullable=True),

        # Annotation content
        sa.Column('Comments', sa.Text(), nullable=True),
        sa.Column('Notes', sa.Text(), nullable=True),
        sa.Column('Tags', sa.Text(), nullable=True),
        sa.Column('NoteDate', sa.String(40), nullable=True),
        sa.Column('LastUpdated', sa.String(40), nullable=True),
        sa.Column('PersistenceKey', sa.String(512), nullable=True),

        # Audit Trail
        sa.Column('CreatedDateTime', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('UpdatedDateTime', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('ix_member_annotations_UniqueId', 'member_annotations', ['UniqueId'])
    op.create_index('ix_member_annotations_RowOrder', 'member_annotations', ['RowOrder'])
    print("→ member_annotations table created")


def downgrade() -> None:
    if not table_exists('member_annotations'):
        return
    op.drop_index('ix_member_annotations_RowOrder', table_name='member_annotations')
    op.drop_index('ix_member_annotations_UniqueId', table_name='member_annotations')
    op.drop_table('member_annotations')
