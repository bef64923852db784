"""add store_blob key/value table

Revision ID: b81e4a03c6d2
Revises: 5c2d9e1f7a10
Create Date: 2026-10-14 09:41:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b81e4a03c6d2'
down_revision = '5c2d9e1f7a10'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'store_blob' in set(insp.get_table_names()):
        return
    op.create_table(
        'store_blob',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('store_blob') as batch_op:
        batch_op.create_index(batch_op.f('ix_store_blob_key'), ['key'], unique=True)


def downgrade():
    with op.batch_alter_table('store_blob') as batch_op:
        batch_op.drop_index(batch_op.f('ix_store_blob_key'))
    op.drop_table('store_blob')
