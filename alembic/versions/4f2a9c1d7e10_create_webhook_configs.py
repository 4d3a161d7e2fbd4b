"""create webhook configs

Revision ID: 4f2a9c1d7e10
Revises:
Create Date: 2026-10-19 10:12:41.402117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4f2a9c1d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'webhook_configs',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.String(128), nullable=False),
        sa.Column('workspace_id', sa.String(128), nullable=False),
        sa.Column('webhook_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('selected_parameters', sa.JSON, nullable=False),
        sa.Column('required_parameters', sa.JSON, nullable=False),
        sa.Column('n8n_workflow_id', sa.String(128), nullable=False),
        sa.Column('n8n_webhook_url', sa.String(500), nullable=False),
        sa.Column('public_webhook_url', sa.String(500), nullable=False),
        sa.Column('total_calls', sa.Integer, nullable=False, server_default='0'),
        sa.Column('successful_calls', sa.Integer, nullable=False, server_default='0'),
        sa.Column('failed_calls', sa.Integer, nullable=False, server_default='0'),
        sa.Column('consecutive_failures', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_call_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_error_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_error', sa.String(1000), nullable=True),
        sa.Column('average_response_time', sa.Float, nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )

    op.create_index('ix_webhook_configs_webhook_id', 'webhook_configs', ['webhook_id'], unique=True)
    op.create_index('ix_webhook_configs_user_id', 'webhook_configs', ['user_id'])
    op.create_index('ix_webhook_configs_workspace_id', 'webhook_configs', ['workspace_id'])
    op.create_index('ix_webhook_configs_user_workspace', 'webhook_configs', ['user_id', 'workspace_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_webhook_configs_user_workspace', table_name='webhook_configs')
    op.drop_index('ix_webhook_configs_workspace_id', table_name='webhook_configs')
    op.drop_index('ix_webhook_configs_user_id', table_name='webhook_configs')
    op.drop_index('ix_webhook_configs_webhook_id', table_name='webhook_configs')
    op.drop_table('webhook_configs')
