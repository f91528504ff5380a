"""ticket closure and reopen workflow tables

Revision ID: 0001_ticket_workflow
Revises: 
Create Date: 2026-10-17
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_ticket_workflow'
down_revision = None
branch_labels = None
depends_on = None

PENDING_ONLY = sa.text("request_status = 'pending'")


def upgrade():
    op.create_table('tickets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_number', sa.String(length=32), nullable=False, unique=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('service_type', sa.String(length=16), nullable=False),
        sa.Column('assigned_engineer_id', sa.Integer(), nullable=True),
        sa.Column('manager_id', sa.Integer(), nullable=True),
        sa.Column('reopen_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_reopen_count_override', sa.Integer(), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_tickets_ticket_number', 'tickets', ['ticket_number'])
    op.create_index('ix_tickets_status', 'tickets', ['status'])
    op.create_index('ix_tickets_assigned_engineer_id', 'tickets', ['assigned_engineer_id'])

    op.create_table('close_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('engineer_id', sa.Integer(), nullable=False),
        sa.Column('request_notes', sa.Text(), nullable=False),
        sa.Column('service_report_id', sa.Integer(), nullable=True),
        sa.Column('request_status', sa.String(length=16), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewer_id', sa.Integer(), nullable=True),
        sa.Column('review_notes', sa.Text(), nullable=True),
    )
    op.create_index('ix_close_requests_ticket_id', 'close_requests', ['ticket_id'])
    op.create_index('ix_close_requests_request_status', 'close_requests', ['request_status'])
    op.create_index('uq_close_requests_pending_ticket', 'close_requests', ['ticket_id'], unique=True,
                    sqlite_where=PENDING_ONLY, postgresql_where=PENDING_ONLY)

    op.create_table('ticket_reopens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('reopen_number', sa.Integer(), nullable=False),
        sa.Column('reopened_by', sa.Integer(), nullable=False),
        sa.Column('reopen_reason', sa.Text(), nullable=False),
        sa.Column('sla_reset_mode', sa.String(length=16), nullable=False),
        sa.Column('reopened_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('ticket_id', 'reopen_number', name='uq_ticket_reopen_number'),
    )
    op.create_index('ix_ticket_reopens_ticket_id', 'ticket_reopens', ['ticket_id'])

    op.create_table('reopen_configs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('version', sa.Integer(), nullable=False, unique=True),
        sa.Column('reopen_window_days', sa.Integer(), nullable=False),
        sa.Column('max_reopen_count', sa.Integer(), nullable=False),
        sa.Column('sla_reset_mode', sa.String(length=16), nullable=False),
        sa.Column('require_reopen_reason', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('notify_assignee', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('notify_manager', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_reopen_configs_version', 'reopen_configs', ['version'])

    op.create_table('repair_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('close_request_id', sa.Integer(), sa.ForeignKey('close_requests.id'), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=False),
        sa.Column('fault_type_id', sa.Integer(), nullable=True),
        sa.Column('fault_description', sa.Text(), nullable=False),
        sa.Column('resolution', sa.Text(), nullable=True),
        sa.Column('repair_status', sa.String(length=16), nullable=False),
        sa.Column('repair_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('parts_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('labor_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('labor_hours', sa.Float(), nullable=False, server_default='0'),
        sa.Column('parts_replaced', sa.String(length=255), nullable=True),
        sa.Column('warranty_claim', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.UniqueConstraint('close_request_id', 'asset_id', name='uq_repair_close_request_asset'),
    )
    op.create_index('ix_repair_records_ticket_id', 'repair_records', ['ticket_id'])
    op.create_index('ix_repair_records_asset_id', 'repair_records', ['asset_id'])

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('event', sa.String(length=64), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table('sla_reset_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('ticket_id', sa.Integer(), sa.ForeignKey('tickets.id'), nullable=False),
        sa.Column('mode', sa.String(length=16), nullable=False),
        sa.Column('requested_by', sa.Integer(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_sla_reset_requests_ticket_id', 'sla_reset_requests', ['ticket_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('perms_snapshot', sa.JSON(), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_actor_user_id', 'audit_logs', ['actor_user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    for table in ('audit_logs', 'sla_reset_requests', 'notifications', 'repair_records',
                  'reopen_configs', 'ticket_reopens', 'close_requests', 'tickets'):
        op.drop_table(table)
