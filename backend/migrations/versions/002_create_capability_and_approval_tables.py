"""Create capability, org_capability and approval_request tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19 11:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'capability',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('capability_id', sa.Text(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('risk_level', sa.Text(), server_default='low', nullable=False),
        sa.Column('requires_approval', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('requires_2fa', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('requires_admin', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('is_built_in', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('capability_id', name='uq_capability_capability_id'),
        sa.CheckConstraint(
            "category IN ('channel', 'query', 'document', 'operation', 'browser', 'skill', 'cron', 'payment')",
            name='ck_capability_category'
        ),
        sa.CheckConstraint("risk_level IN ('low', 'medium', 'high', 'critical')", name='ck_capability_risk_level'),
    )

    op.create_table(
        'org_capability',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('capability_id', sa.Text(), nullable=False),
        sa.Column('enabled', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('approval_policy', sa.Text(), server_default='inherit', nullable=False),
        sa.Column('daily_limit', sa.Integer(), nullable=True),
        sa.Column('monthly_limit', sa.Integer(), nullable=True),
        sa.Column('current_daily_usage', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('current_monthly_usage', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('enabled_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('enabled_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['capability_id'], ['capability.capability_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('organization_id', 'capability_id', name='uq_org_capability'),
        sa.CheckConstraint("approval_policy IN ('inherit', 'always', 'never')", name='ck_org_capability_approval_policy'),
    )
    op.create_index('ix_org_capability_org_id', 'org_capability', ['organization_id'])

    op.create_table(
        'approval_request',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('request_id', sa.Text(), nullable=False),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('requested_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('capability_id', sa.Text(), nullable=False),
        sa.Column('channel', sa.Text(), nullable=True),
        sa.Column('task_spec', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('summary', sa.Text(), server_default='', nullable=False),
        sa.Column('risk_assessment', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('status', sa.Text(), server_default='pending', nullable=False),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('audit_trail', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('expires_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['org.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['requested_by'], ['user.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('request_id', name='uq_approval_request_request_id'),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'expired')",
            name='ck_approval_request_status'
        ),
    )
    op.create_index('ix_approval_request_org_status', 'approval_request', ['organization_id', 'status'])
    op.create_index('ix_approval_request_org_created_at', 'approval_request', ['organization_id', 'created_at'])

    # Expiry sweep scans pending rows by deadline
    op.create_index(
        'ix_approval_request_pending_expires_at',
        'approval_request',
        ['expires_at'],
        postgresql_where=sa.text("status = 'pending'"),
    )

    for table in ('capability', 'org_capability', 'approval_request'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade():
    for table in ('approval_request', 'org_capability', 'capability'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')

    op.drop_index('ix_approval_request_pending_expires_at', table_name='approval_request')
    op.drop_index('ix_approval_request_org_created_at', table_name='approval_request')
    op.drop_index('ix_approval_request_org_status', table_name='approval_request')
    op.drop_table('approval_request')
    op.drop_index('ix_org_capability_org_id', table_name='org_capability')
    op.drop_table('org_capability')
    op.drop_table('capability')
