"""Create workspace binding tables

Revision ID: 003
Revises: 002
Create Date: 2026-10-19 12:00:00.000000

workspace_binding_code, conversation_session, user_workspace_preferences
and channel_identity.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'workspace_binding_code',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('code', sa.Text(), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('channel', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('used_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('used_by_channel', sa.Text(), nullable=True),
        sa.Column('used_by_identifier', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_workspace_binding_code_code', 'workspace_binding_code', ['code'])
    op.create_index('ix_workspace_binding_code_user_id', 'workspace_binding_code', ['user_id'])

    op.create_table(
        'conversation_session',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('channel', sa.Text(), nullable=False),
        sa.Column('channel_identifier', sa.Text(), nullable=True),
        sa.Column('channel_thread_id', sa.Text(), nullable=True),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('last_referenced_entity_type', sa.Text(), nullable=True),
        sa.Column('last_referenced_project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('last_referenced_document_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('last_referenced_asset_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('last_message_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='SET NULL'),
    )
    op.create_index(
        'ix_conversation_session_thread',
        'conversation_session',
        ['user_id', 'channel', 'channel_thread_id'],
    )

    op.create_table(
        'user_workspace_preferences',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('default_org_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('primary_org_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('whatsapp_default_org_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('email_default_org_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('web_last_active_org_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('user_id'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['default_org_id'], ['org.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['primary_org_id'], ['org.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['whatsapp_default_org_id'], ['org.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['email_default_org_id'], ['org.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['web_last_active_org_id'], ['org.id'], ondelete='SET NULL'),
    )

    op.create_table(
        'channel_identity',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('channel', sa.Text(), nullable=False),
        sa.Column('external_id', sa.Text(), nullable=False),
        sa.Column('verification_status', sa.Text(), server_default='pending', nullable=False),
        sa.Column('verified_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_used_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('channel', 'external_id', 'organization_id', name='uq_channel_identity'),
        sa.CheckConstraint(
            "verification_status IN ('pending', 'verified', 'revoked')",
            name='ck_channel_identity_verification_status'
        ),
    )
    op.create_index('ix_channel_identity_lookup', 'channel_identity', ['channel', 'external_id'])

    for table in ('conversation_session', 'user_workspace_preferences'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade():
    for table in ('user_workspace_preferences', 'conversation_session'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')

    op.drop_index('ix_channel_identity_lookup', table_name='channel_identity')
    op.drop_table('channel_identity')
    op.drop_table('user_workspace_preferences')
    op.drop_index('ix_conversation_session_thread', table_name='conversation_session')
    op.drop_table('conversation_session')
    op.drop_index('ix_workspace_binding_code_user_id', table_name='workspace_binding_code')
    op.drop_index('ix_workspace_binding_code_code', table_name='workspace_binding_code')
    op.drop_table('workspace_binding_code')
