"""Create tenant directory tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

org, user, membership, security_policy, audit_log and the ownership
columns of the protected resources.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]


def upgrade():
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # Reusable updated_at trigger function
    op.execute("""
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
          NEW.updated_at = NOW();
          RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)

    op.create_table(
        'org',
        _id(),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('slug', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), server_default='active', nullable=False),
        sa.Column('require_2fa', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("status IN ('active', 'suspended', 'archived')", name='ck_org_status'),
    )
    op.create_index('idx_org_slug', 'org', ['slug'], unique=True)

    op.create_table(
        'user',
        _id(),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), server_default='ACTIVE', nullable=False),
        sa.Column('totp_enabled', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('active_org_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('last_login_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['active_org_id'], ['org.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.CheckConstraint("status IN ('ACTIVE', 'DISABLED')", name='ck_user_status'),
    )

    op.create_table(
        'membership',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), server_default='active', nullable=False),
        sa.Column('invited_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('accepted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_membership_user_org'),
        sa.CheckConstraint("role IN ('admin', 'editor', 'reviewer', 'viewer')", name='ck_membership_role'),
        sa.CheckConstraint("status IN ('active', 'invited', 'removed')", name='ck_membership_status'),
    )
    op.create_index('ix_membership_user_id', 'membership', ['user_id'])

    op.create_table(
        'security_policy',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('allowed_channels', postgresql.JSONB(astext_type=sa.Text()),
                  server_default=sa.text("'[\"whatsapp\", \"telegram\", \"slack\", \"webchat\", \"email\"]'::jsonb"), nullable=False),
        sa.Column('allowed_hours', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('require_pairing', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('export_requires_approval', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('browser_automation_allowed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('shell_execution_allowed', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('file_upload_allowed', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('global_rate_limit_per_minute', sa.Integer(), server_default=sa.text('60'), nullable=True),
        sa.Column('global_rate_limit_per_day', sa.Integer(), server_default=sa.text('1000'), nullable=True),
        sa.Column('retain_conversations_for_days', sa.Integer(), server_default=sa.text('365'), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('organization_id', name='uq_security_policy_org'),
    )

    op.create_table(
        'audit_log',
        _id(),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=True),
        sa.Column('entity_id', sa.Text(), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('ip_address', sa.Text(), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['org_id'], ['org.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['actor_id'], ['user.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_audit_log_org_id', 'audit_log', ['org_id'])
    op.create_index('ix_audit_log_org_id_created_at', 'audit_log', ['org_id', 'created_at'])

    # Protected resources (ownership columns only)
    op.create_table(
        'project',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='RESTRICT'),
    )
    op.create_table(
        'document',
        _id(),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['project_id'], ['project.id'], ondelete='CASCADE'),
    )
    op.create_table(
        'asset',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['project_id'], ['project.id'], ondelete='SET NULL'),
    )
    for table in ('view_scope', 'data_room'):
        op.create_table(
            table,
            _id(),
            sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column('name', sa.Text(), nullable=False),
            sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
            sa.PrimaryKeyConstraint('id'),
            sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='RESTRICT'),
        )

    for table in ('org', 'user', 'membership', 'security_policy'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON "{table}"
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade():
    for table in ('security_policy', 'membership', 'user', 'org'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON "{table}"')

    for table in ('data_room', 'view_scope', 'asset', 'document', 'project'):
        op.drop_table(table)

    op.drop_index('ix_audit_log_org_id_created_at', table_name='audit_log')
    op.drop_index('ix_audit_log_org_id', table_name='audit_log')
    op.drop_table('audit_log')
    op.drop_table('security_policy')
    op.drop_index('ix_membership_user_id', table_name='membership')
    op.drop_table('membership')
    op.drop_table('user')
    op.drop_index('idx_org_slug', table_name='org')
    op.drop_table('org')

    # update_updated_at_column() is left in place; other schemas may share it
