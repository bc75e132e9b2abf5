"""create move_entry for room move logs

Revision ID: a3c9e1f07b24
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a3c9e1f07b24'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('move_entry',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('room', sa.String(length=8), nullable=False),
        sa.Column('seq', sa.Integer(), nullable=False),
        sa.Column('board', sa.Integer(), nullable=False),
        sa.Column('cell', sa.Integer(), nullable=False),
        sa.Column('symbol', sa.String(length=1), nullable=False),
        sa.Column('origin_id', sa.String(length=32), nullable=False),
        sa.Column('timestamp', sa.DateTime(), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('move_entry', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_move_entry_room'), ['room'], unique=False)


def downgrade():
    with op.batch_alter_table('move_entry', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_move_entry_room'))
    op.drop_table('move_entry')
