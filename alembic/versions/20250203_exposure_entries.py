"""Exposure entries

Revision ID: 001_exposure_entries
Revises:
Create Date: 2025-02-03 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_exposure_entries'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'exposure_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=100), nullable=False),
        sa.Column('tracker', sa.String(length=20), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('source_counts', sa.JSON(), nullable=False),
        sa.Column('total_score', sa.Float(), nullable=False),
        sa.Column('risk_tier', sa.String(length=20), nullable=False),
        sa.Column('catalog_version', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("tracker IN ('microplastic', 'pfas')", name='ck_exposure_entries_tracker'),
        sa.CheckConstraint('total_score >= 0', name='ck_exposure_entries_total_score'),
    )
    op.create_index(op.f('ix_exposure_entries_user_id'), 'exposure_entries', ['user_id'], unique=False)
    op.create_index(op.f('ix_exposure_entries_week_start'), 'exposure_entries', ['week_start'], unique=False)
    op.create_index(op.f('ix_exposure_entries_created_at'), 'exposure_entries', ['created_at'], unique=False)
    op.create_index('ix_exposure_entries_user_tracker', 'exposure_entries', ['user_id', 'tracker'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_exposure_entries_user_tracker', table_name='exposure_entries')
    op.drop_index(op.f('ix_exposure_entries_created_at'), table_name='exposure_entries')
    op.drop_index(op.f('ix_exposure_entries_week_start'), table_name='exposure_entries')
    op.drop_index(op.f('ix_exposure_entries_user_id'), table_name='exposure_entries')
    op.drop_table('exposure_entries')
