"""create leaderboard_entry

Revision ID: 5c2d9e1f7a10
Revises:
Create Date: 2026-10-12 18:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2d9e1f7a10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'leaderboard_entry',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('scope', sa.String(length=64), nullable=False),
        sa.Column('guesser_id', sa.String(length=64), nullable=False),
        sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_win_at', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('scope', 'guesser_id', name='uq_leaderboard_scope_guesser'),
    )
    with op.batch_alter_table('leaderboard_entry') as batch_op:
        batch_op.create_index(batch_op.f('ix_leaderboard_entry_scope'), ['scope'], unique=False)


def downgrade():
    with op.batch_alter_table('leaderboard_entry') as batch_op:
        batch_op.drop_index(batch_op.f('ix_leaderboard_entry_scope'))
    op.drop_table('leaderboard_entry')
