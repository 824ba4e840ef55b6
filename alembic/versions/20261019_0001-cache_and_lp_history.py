"""Riot cache and LP history

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261019_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create cache and rank snapshot tables."""
    # Raw Riot payloads, one row per cache key
    op.create_table(
        'riot_cache',
        sa.Column('cache_key', sa.String(), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('cached_at', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('cache_key')
    )

    # Append-only solo/duo rank observations
    op.create_table(
        'lp_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subject_id', sa.String(), nullable=False),
        sa.Column('tier', sa.String(), nullable=False),
        sa.Column('division', sa.String(), nullable=False),
        sa.Column('lp', sa.Integer(), nullable=False),
        sa.Column('wins', sa.Integer(), nullable=False),
        sa.Column('losses', sa.Integer(), nullable=False),
        sa.Column('recorded_at', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_lp_history_subject_time', 'lp_history', ['subject_id', 'recorded_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_lp_history_subject_time', 'lp_history')
    op.drop_table('lp_history')
    op.drop_table('riot_cache')
