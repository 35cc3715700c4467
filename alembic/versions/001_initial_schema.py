"""Initial schema: users, departments, leave types, balances, requests, trail, audit

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLE = sa.Enum('USER', 'MANAGER', 'HR', 'ADMIN', name='role')
REQUEST_STATUS = ('PENDING_MANAGER', 'PENDING_HR', 'APPROVED', 'REJECTED', 'CANCELLED')
LEAVE_SESSION = sa.Enum('FULL_DAY', 'MORNING', 'AFTERNOON', name='leavesession')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def _stage_columns():
    return [
        sa.Column('manager_action_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('manager_action_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('manager_comments', sa.Text(), nullable=True),
        sa.Column('hr_action_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('hr_action_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('hr_comments', sa.Text(), nullable=True),
        sa.Column('cancelled_by_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_comments', sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'departments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        *_timestamps(),
    )
    op.create_index(op.f('ix_departments_id'), 'departments', ['id'], unique=False)
    op.create_index(op.f('ix_departments_name'), 'departments', ['name'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('password_hash', sa.String(), nullable=True),
        sa.Column('role', ROLE, nullable=False),
        sa.Column('department_id', sa.Integer(), sa.ForeignKey('departments.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approver_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_employee_id'), 'users', ['employee_id'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_department_id'), 'users', ['department_id'], unique=False)
    op.create_index(op.f('ix_users_approver_id'), 'users', ['approver_id'], unique=False)

    op.create_table(
        'leave_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('default_allocated_days', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('tracks_balance', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('carries_forward', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index(op.f('ix_leave_types_id'), 'leave_types', ['id'], unique=False)
    op.create_index(op.f('ix_leave_types_name'), 'leave_types', ['name'], unique=True)

    op.create_table(
        'leave_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id'), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('allocated_days', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('used_days', sa.Numeric(6, 2), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'leave_type_id', 'year', name='uq_leave_balances_user_type_year'),
        sa.CheckConstraint('allocated_days >= 0', name='check_allocated_days_non_negative'),
        sa.CheckConstraint('used_days >= 0', name='check_used_days_non_negative'),
    )
    op.create_index(op.f('ix_leave_balances_id'), 'leave_balances', ['id'], unique=False)
    op.create_index(op.f('ix_leave_balances_user_id'), 'leave_balances', ['user_id'], unique=False)
    op.create_index(op.f('ix_leave_balances_leave_type_id'), 'leave_balances', ['leave_type_id'], unique=False)
    op.create_index(op.f('ix_leave_balances_year'), 'leave_balances', ['year'], unique=False)

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('leave_type_id', sa.Integer(), sa.ForeignKey('leave_types.id'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('session', LEAVE_SESSION, nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum(*REQUEST_STATUS, name='requeststatus'), nullable=False),
        sa.Column('days', sa.Numeric(6, 2), nullable=False),
        sa.Column('balance_override', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_stage_columns(),
        *_timestamps(),
        sa.CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
    )
    op.create_index(op.f('ix_leave_requests_id'), 'leave_requests', ['id'], unique=False)
    op.create_index(op.f('ix_leave_requests_user_id'), 'leave_requests', ['user_id'], unique=False)
    op.create_index(op.f('ix_leave_requests_leave_type_id'), 'leave_requests', ['leave_type_id'], unique=False)
    op.create_index('ix_leave_requests_user_status', 'leave_requests', ['user_id', 'status'], unique=False)
    op.create_index('ix_leave_requests_status_created', 'leave_requests', ['status', 'created_at'], unique=False)

    op.create_table(
        'overtime_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', postgresql.ENUM(*REQUEST_STATUS, name='requeststatus', create_type=False), nullable=False),
        *_stage_columns(),
        *_timestamps(),
        sa.CheckConstraint('start_time < end_time', name='check_start_time_lt_end_time'),
    )
    op.create_index(op.f('ix_overtime_requests_id'), 'overtime_requests', ['id'], unique=False)
    op.create_index(op.f('ix_overtime_requests_user_id'), 'overtime_requests', ['user_id'], unique=False)
    op.create_index('ix_overtime_requests_user_status', 'overtime_requests', ['user_id', 'status'], unique=False)

    op.create_table(
        'request_actions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('request_kind', sa.Enum('LEAVE', 'OVERTIME', name='requestkind'), nullable=False),
        sa.Column('request_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.Enum('CREATE', 'UPDATE', 'APPROVE', 'REJECT', 'CANCEL', name='approvalaction'), nullable=False),
        sa.Column('from_status', postgresql.ENUM(*REQUEST_STATUS, name='requeststatus', create_type=False), nullable=True),
        sa.Column('to_status', postgresql.ENUM(*REQUEST_STATUS, name='requeststatus', create_type=False), nullable=False),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('comments', sa.Text(), nullable=True),
        sa.Column('acted_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index(op.f('ix_request_actions_id'), 'request_actions', ['id'], unique=False)
    op.create_index(op.f('ix_request_actions_actor_id'), 'request_actions', ['actor_id'], unique=False)
    op.create_index('ix_request_actions_kind_request', 'request_actions', ['request_kind', 'request_id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)


def downgrade() -> None:
    op.drop_table('audit_logs')
    op.drop_table('request_actions')
    op.drop_table('overtime_requests')
    op.drop_table('leave_requests')
    op.drop_table('leave_balances')
    op.drop_table('leave_types')
    op.drop_table('users')
    op.drop_table('departments')
    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in ('approvalaction', 'requestkind', 'requeststatus', 'leavesession', 'role'):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
