"""Initial inbox schema: organizations, messaging configs, conversations, messages, leads

Revision ID: 0001_initial_inbox_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_inbox_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_organizations_id'), 'organizations', ['id'], unique=False)

    op.create_table(
        'organization_messaging_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('session_name', sa.String(length=255), nullable=False),
        sa.Column('api_url', sa.Text(), nullable=True),
        sa.Column('api_key', sa.String(length=765), nullable=True),
        sa.Column('whatsapp_connected', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_organization_messaging_configs_id'), 'organization_messaging_configs', ['id'], unique=False)
    op.create_index(op.f('ix_organization_messaging_configs_organization_id'), 'organization_messaging_configs', ['organization_id'], unique=True)
    op.create_index(op.f('ix_organization_messaging_configs_session_name'), 'organization_messaging_configs', ['session_name'], unique=True)

    op.create_table(
        'whatsapp_conversations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('canonical_phone', sa.String(length=50), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('last_message_at', sa.DateTime(), nullable=True),
        sa.Column('last_message_text', sa.Text(), nullable=True),
        sa.Column('messages_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_lead', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('lead_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_whatsapp_conversations_id'), 'whatsapp_conversations', ['id'], unique=False)
    op.create_index(op.f('ix_whatsapp_conversations_organization_id'), 'whatsapp_conversations', ['organization_id'], unique=False)
    op.create_index(op.f('ix_whatsapp_conversations_canonical_phone'), 'whatsapp_conversations', ['canonical_phone'], unique=False)
    op.create_index(op.f('ix_whatsapp_conversations_status'), 'whatsapp_conversations', ['status'], unique=False)
    op.create_index(op.f('ix_whatsapp_conversations_created_at'), 'whatsapp_conversations', ['created_at'], unique=False)
    # One active conversation per customer phone
    op.create_index(
        'uq_whatsapp_conversations_org_phone_active',
        'whatsapp_conversations',
        ['organization_id', 'canonical_phone'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        'whatsapp_messages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('conversation_id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=20), nullable=False),
        sa.Column('body', sa.Text(), nullable=False, server_default=''),
        sa.Column('message_type', sa.String(length=50), nullable=True),
        sa.Column('provider_message_id', sa.String(length=255), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.Column('raw_provider_payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['conversation_id'], ['whatsapp_conversations.id']),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_whatsapp_messages_id'), 'whatsapp_messages', ['id'], unique=False)
    op.create_index(op.f('ix_whatsapp_messages_conversation_id'), 'whatsapp_messages', ['conversation_id'], unique=False)
    op.create_index(op.f('ix_whatsapp_messages_organization_id'), 'whatsapp_messages', ['organization_id'], unique=False)
    op.create_index(op.f('ix_whatsapp_messages_provider_message_id'), 'whatsapp_messages', ['provider_message_id'], unique=False)
    op.create_index(op.f('ix_whatsapp_messages_sent_at'), 'whatsapp_messages', ['sent_at'], unique=False)

    op.create_table(
        'leads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('organization_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('estimated_value', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('source', sa.String(length=50), nullable=False, server_default='whatsapp'),
        sa.Column('assigned_to', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='new'),
        sa.Column('whatsapp_conversation_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('converted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['whatsapp_conversation_id'], ['whatsapp_conversations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'phone', name='uq_leads_organization_phone'),
    )
    op.create_index(op.f('ix_leads_id'), 'leads', ['id'], unique=False)
    op.create_index(op.f('ix_leads_organization_id'), 'leads', ['organization_id'], unique=False)
    op.create_index(op.f('ix_leads_phone'), 'leads', ['phone'], unique=False)
    op.create_index(op.f('ix_leads_status'), 'leads', ['status'], unique=False)
    op.create_index(op.f('ix_leads_whatsapp_conversation_id'), 'leads', ['whatsapp_conversation_id'], unique=False)
    op.create_index(op.f('ix_leads_created_at'), 'leads', ['created_at'], unique=False)


def downgrade() -> None:
    op.drop_table('leads')
    op.drop_table('whatsapp_messages')
    op.drop_index('uq_whatsapp_conversations_org_phone_active', table_name='whatsapp_conversations')
    op.drop_table('whatsapp_conversations')
    op.drop_table('organization_messaging_configs')
    op.drop_table('organizations')
