"""create session_code table

Revision ID: 5c2e9a71b0d4
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9a71b0d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'session_code' in insp.get_table_names():
        return
    op.create_table(
        'session_code',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('teacher_id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    with op.batch_alter_table('session_code') as batch_op:
        batch_op.create_index('ix_session_code_code', ['code'], unique=True)
        batch_op.create_index('ix_session_code_teacher_id', ['teacher_id'], unique=False)


def downgrade():
    with op.batch_alter_table('session_code') as batch_op:
        batch_op.drop_index('ix_session_code_teacher_id')
        batch_op.drop_index('ix_session_code_code')
    op.drop_table('session_code')
