"""create tokens table

Revision ID: a3f1c9e2b7d4
Revises:
Create Date: 2026-10-17 09:12:44.318204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a3f1c9e2b7d4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'tokens',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('value', sa.String(length=128), nullable=False),
        sa.Column('owner_identity', sa.String(length=64), nullable=False),
        sa.Column('scopes', sa.JSON(), nullable=False),
        sa.Column('state', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('consumed_by', sa.String(length=255), nullable=True),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("state IN ('UNUSED', 'USED')", name='ck_tokens_state'),
        sa.CheckConstraint(
            "(state = 'UNUSED' AND consumed_at IS NULL AND consumed_by IS NULL)"
            " OR (state = 'USED' AND consumed_at IS NOT NULL)",
            name='ck_tokens_consumed',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tokens_value'), 'tokens', ['value'], unique=True)
    op.create_index(op.f('ix_tokens_owner_identity'), 'tokens', ['owner_identity'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_tokens_owner_identity'), table_name='tokens')
    op.drop_index(op.f('ix_tokens_value'), table_name='tokens')
    op.drop_table('tokens')
