"""create_sitehub_schema

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '3f1c9a2b7d40'
down_revision = None
branch_labels = None
depends_on = None


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    ]


def upgrade():
    op.create_table(
        'organizations',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False, server_default='partner'),
        sa.Column('business_registration_number', sa.Text(), nullable=True, unique=True),
        sa.Column('representative_name', sa.Text(), nullable=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true')),
        *_timestamps(),
    )

    op.create_table(
        'profiles',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('organization_id', _uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False, unique=True),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), nullable=False, server_default='worker'),
        sa.Column('status', sa.Text(), nullable=False, server_default='active'),
        sa.Column('is_restricted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_profiles_organization_id', 'profiles', ['organization_id'])
    op.create_index('ix_profiles_role', 'profiles', ['role'])

    op.create_table(
        'sites',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('organization_id', _uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='active'),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('manager_name', sa.Text(), nullable=True),
        sa.Column('construction_manager_phone', sa.Text(), nullable=True),
        sa.Column('safety_manager_name', sa.Text(), nullable=True),
        sa.Column('safety_manager_phone', sa.Text(), nullable=True),
        sa.Column('accommodation_name', sa.Text(), nullable=True),
        sa.Column('accommodation_address', sa.Text(), nullable=True),
        sa.Column('work_process', sa.Text(), nullable=True),
        sa.Column('work_section', sa.Text(), nullable=True),
        sa.Column('component_name', sa.Text(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_sites_organization_id', 'sites', ['organization_id'])
    op.create_index('ix_sites_status', 'sites', ['status'])

    op.create_table(
        'site_assignments',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('site_id', _uuid(), sa.ForeignKey('sites.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', _uuid(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.Text(), nullable=False, server_default='worker'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('assigned_date', sa.Date(), nullable=True),
        sa.Column('unassigned_date', sa.Date(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_site_assignments_site_id', 'site_assignments', ['site_id'])
    op.create_index('ix_site_assignments_user_active', 'site_assignments', ['user_id', 'is_active'])

    op.create_table(
        'daily_reports',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('site_id', _uuid(), sa.ForeignKey('sites.id'), nullable=False),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('member_name', sa.Text(), nullable=True),
        sa.Column('process_type', sa.Text(), nullable=True),
        sa.Column('component_name', sa.Text(), nullable=True),
        sa.Column('work_process', sa.Text(), nullable=True),
        sa.Column('work_section', sa.Text(), nullable=True),
        sa.Column('total_workers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('npc1000_incoming', sa.Numeric(12, 2), nullable=True),
        sa.Column('npc1000_used', sa.Numeric(12, 2), nullable=True),
        sa.Column('npc1000_remaining', sa.Numeric(12, 2), nullable=True),
        sa.Column('issues', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='draft'),
        sa.Column('created_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('site_id', 'work_date', 'created_by', name='uq_daily_reports_site_date_author'),
    )
    op.create_index('ix_daily_reports_site_date', 'daily_reports', ['site_id', 'work_date'])
    op.create_index('ix_daily_reports_status', 'daily_reports', ['status'])

    op.create_table(
        'daily_report_workers',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('daily_report_id', _uuid(), sa.ForeignKey('daily_reports.id', ondelete='CASCADE'), nullable=False),
        sa.Column('worker_id', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('worker_name', sa.Text(), nullable=False),
        sa.Column('labor_hours', sa.Numeric(7, 3), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_daily_report_workers_report_id', 'daily_report_workers', ['daily_report_id'])
    op.create_index('ix_daily_report_workers_worker_id', 'daily_report_workers', ['worker_id'])

    op.create_table(
        'documents',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('file_name', sa.Text(), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('mime_type', sa.Text(), nullable=False),
        sa.Column('document_type', sa.Text(), nullable=False, server_default='personal'),
        sa.Column('folder_path', sa.Text(), nullable=True),
        sa.Column('owner_id', _uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('organization_id', _uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('site_id', _uuid(), sa.ForeignKey('sites.id'), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        *_timestamps(),
    )
    op.create_index('ix_documents_owner_id', 'documents', ['owner_id'])
    op.create_index('ix_documents_site_id', 'documents', ['site_id'])
    op.create_index('ix_documents_organization_id', 'documents', ['organization_id'])

    op.create_table(
        'document_files',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('document_id', _uuid(), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('content_type', sa.Text(), nullable=False),
        sa.Column('file_size_bytes', sa.Integer(), nullable=False),
        sa.Column('file_bytes', postgresql.BYTEA(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )

    op.create_table(
        'document_permissions',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('document_id', _uuid(), sa.ForeignKey('documents.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', _uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('permission_type', sa.Text(), nullable=False, server_default='view'),
        sa.Column('granted_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('document_id', 'user_id', name='uq_document_permissions_document_user'),
    )
    op.create_index('ix_document_permissions_user_id', 'document_permissions', ['user_id'])

    op.create_table(
        'materials',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('code', sa.Text(), nullable=True, unique=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('specification', sa.Text(), nullable=True),
        sa.Column('unit', sa.Text(), nullable=False, server_default='ea'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
    )

    op.create_table(
        'material_requests',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('request_number', sa.Text(), nullable=False, unique=True),
        sa.Column('site_id', _uuid(), sa.ForeignKey('sites.id'), nullable=False),
        sa.Column('requested_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('priority', sa.Text(), nullable=False, server_default='normal'),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('needed_by', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('approved_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_material_requests_site_id', 'material_requests', ['site_id'])
    op.create_index('ix_material_requests_status', 'material_requests', ['status'])

    op.create_table(
        'material_request_items',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('request_id', _uuid(), sa.ForeignKey('material_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('material_id', _uuid(), sa.ForeignKey('materials.id'), nullable=False),
        sa.Column('requested_quantity', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    )

    op.create_table(
        'salary_calculation_rules',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('rule_name', sa.Text(), nullable=False),
        sa.Column('rule_type', sa.Text(), nullable=False),
        sa.Column('base_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('multiplier', sa.Numeric(7, 3), nullable=True),
        sa.Column('conditions', postgresql.JSONB(), nullable=True),
        sa.Column('site_id', _uuid(), sa.ForeignKey('sites.id'), nullable=True),
        sa.Column('role', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
    )
    op.create_index('ix_salary_rules_type_site', 'salary_calculation_rules', ['rule_type', 'site_id'])

    op.create_table(
        'salary_records',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('worker_id', _uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('site_id', _uuid(), sa.ForeignKey('sites.id'), nullable=True),
        sa.Column('work_date', sa.Date(), nullable=False),
        sa.Column('employment_type', sa.Text(), nullable=True),
        sa.Column('labor_hours', sa.Numeric(7, 3), nullable=True),
        sa.Column('regular_hours', sa.Numeric(7, 3), nullable=False, server_default='0'),
        sa.Column('overtime_hours', sa.Numeric(7, 3), nullable=False, server_default='0'),
        sa.Column('base_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('overtime_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('bonus_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('deductions', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('income_tax', sa.Numeric(14, 2), nullable=True),
        sa.Column('resident_tax', sa.Numeric(14, 2), nullable=True),
        sa.Column('national_pension', sa.Numeric(14, 2), nullable=True),
        sa.Column('health_insurance', sa.Numeric(14, 2), nullable=True),
        sa.Column('employment_insurance', sa.Numeric(14, 2), nullable=True),
        sa.Column('tax_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('total_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('tax_details', postgresql.JSONB(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='calculated'),
        sa.Column('source', sa.Text(), nullable=False, server_default='report'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('approved_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_salary_records_worker_date', 'salary_records', ['worker_id', 'work_date'])
    op.create_index('ix_salary_records_site_date', 'salary_records', ['site_id', 'work_date'])
    op.create_index('ix_salary_records_status', 'salary_records', ['status'])

    op.create_table(
        'employment_tax_rates',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('employment_type', sa.Text(), nullable=False),
        sa.Column('tax_name', sa.Text(), nullable=False),
        sa.Column('rate', sa.Numeric(7, 3), nullable=False),
        sa.Column('calculation_method', sa.Text(), nullable=False, server_default='percentage'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('created_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('employment_type', 'tax_name', name='uq_employment_tax_rates_type_name'),
    )

    op.create_table(
        'worker_salary_settings',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('worker_id', _uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('employment_type', sa.Text(), nullable=False),
        sa.Column('daily_rate', sa.Numeric(14, 2), nullable=False),
        sa.Column('hourly_rate', sa.Numeric(14, 2), nullable=True),
        sa.Column('custom_tax_rates', postgresql.JSONB(), nullable=True),
        sa.Column('bank_account_info', postgresql.JSONB(), nullable=True),
        sa.Column('effective_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_worker_salary_settings_worker_active', 'worker_salary_settings', ['worker_id', 'is_active'])

    op.create_table(
        'salary_snapshots',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('worker_id', _uuid(), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('organization_id', _uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='issued'),
        sa.Column('payload', postgresql.JSONB(), nullable=False),
        sa.Column('issued_by', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('issued_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        *_timestamps(),
        sa.UniqueConstraint('worker_id', 'year', 'month', name='uq_salary_snapshots_worker_month'),
    )

    op.create_table(
        'notifications',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.Text(), nullable=False, server_default='info'),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_entity_type', sa.Text(), nullable=True),
        sa.Column('related_entity_id', _uuid(), nullable=True),
        sa.Column('action_url', sa.Text(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_notifications_user_created', 'notifications', ['user_id', 'created_at'])
    op.create_index('ix_notifications_user_unread', 'notifications', ['user_id', 'is_read'])

    op.create_table(
        'audit_events',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('actor_user_id', _uuid(), sa.ForeignKey('profiles.id'), nullable=True),
        sa.Column('organization_id', _uuid(), sa.ForeignKey('organizations.id'), nullable=True),
        sa.Column('event_type', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=False),
        sa.Column('entity_id', _uuid(), nullable=True),
        sa.Column('site_id', _uuid(), sa.ForeignKey('sites.id', ondelete='SET NULL'), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_audit_events_entity', 'audit_events', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_events_org_time', 'audit_events', ['organization_id', 'created_at'])


def downgrade():
    for table in (
        'audit_events',
        'notifications',
        'salary_snapshots',
        'worker_salary_settings',
        'employment_tax_rates',
        'salary_records',
        'salary_calculation_rules',
        'material_request_items',
        'material_requests',
        'materials',
        'document_permissions',
        'document_files',
        'documents',
        'daily_report_workers',
        'daily_reports',
        'site_assignments',
        'sites',
        'profiles',
        'organizations',
    ):
        op.drop_table(table)
