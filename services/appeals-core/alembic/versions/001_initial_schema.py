"""Initial schema

Revision ID: 001_initial
Revises: 
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Appeals
    op.create_table(
        'appeals',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('topic', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('init_date', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('update_date', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index(op.f('ix_appeals_status'), 'appeals', ['status'], unique=False)
    op.create_index(op.f('ix_appeals_init_date'), 'appeals', ['init_date'], unique=False)
    
    # Appeal responses (audit trail, owned by the appeal)
    op.create_table(
        'appeal_responses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('appeal_id', sa.Integer(), nullable=False),
        sa.Column('response_message', sa.Text(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['appeal_id'], ['appeals.id'], ondelete='CASCADE'),
    )
    op.create_index(op.f('ix_appeal_responses_appeal_id'), 'appeal_responses', ['appeal_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_appeal_responses_appeal_id'), table_name='appeal_responses')
    op.drop_table('appeal_responses')
    op.drop_index(op.f('ix_appeals_init_date'), table_name='appeals')
    op.drop_index(op.f('ix_appeals_status'), table_name='appeals')
    op.drop_table('appeals')
