"""Initial leave scope schema

Revision ID: 001_initial_leave_scope
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_leave_scope'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

LEAVE_TYPES = ('annual', 'sick', 'unpaid', 'maternity', 'paternity', 'personal', 'other')
LEAVE_STATUSES = ('pending', 'approved', 'rejected', 'cancelled')


def _timestamps():
    # SQL-standard CURRENT_TIMESTAMP works on SQLite and Postgres
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Skip if tables already exist (e.g. DB created by app create_all())
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if 'leave_requests' in inspector.get_table_names():
        return

    op.create_table(
        'properties',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_properties_id', 'properties', ['id'])
    op.create_index('ix_properties_name', 'properties', ['name'], unique=True)

    op.create_table(
        'departments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('property_id', 'name', name='uq_departments_property_name'),
    )
    op.create_index('ix_departments_id', 'departments', ['id'])
    op.create_index('ix_departments_property_id', 'departments', ['property_id'])
    op.create_index('ix_departments_name', 'departments', ['name'])

    op.create_table(
        'principals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('primary_role', sa.String(), nullable=False, server_default='staff'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_principals_id', 'principals', ['id'])
    op.create_index('ix_principals_email', 'principals', ['email'], unique=True)

    op.create_table(
        'role_grants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('principal_id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['principal_id'], ['principals.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('principal_id', 'role', name='uq_role_grants_principal_role'),
    )
    op.create_index('ix_role_grants_id', 'role_grants', ['id'])
    op.create_index('ix_role_grants_principal_id', 'role_grants', ['principal_id'])

    op.create_table(
        'principal_properties',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('principal_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['principal_id'], ['principals.id']),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('principal_id', 'property_id', name='uq_principal_property'),
    )
    op.create_index('ix_principal_properties_id', 'principal_properties', ['id'])
    op.create_index('ix_principal_properties_principal_id', 'principal_properties', ['principal_id'])
    op.create_index('ix_principal_properties_property_id', 'principal_properties', ['property_id'])

    op.create_table(
        'principal_departments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('principal_id', sa.Integer(), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['principal_id'], ['principals.id']),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('principal_id', 'department_id', name='uq_principal_department'),
    )
    op.create_index('ix_principal_departments_id', 'principal_departments', ['id'])
    op.create_index('ix_principal_departments_principal_id', 'principal_departments', ['principal_id'])
    op.create_index('ix_principal_departments_department_id', 'principal_departments', ['department_id'])

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requester_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=True),
        sa.Column('department_id', sa.Integer(), nullable=True),
        sa.Column('leave_type', sa.Enum(*LEAVE_TYPES, name='leavetype'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum(*LEAVE_STATUSES, name='leavestatus'), nullable=False, server_default='pending'),
        sa.Column('approved_by_id', sa.Integer(), nullable=True),
        sa.Column('rejected_by_id', sa.Integer(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_by_id', sa.Integer(), nullable=True),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('deleted_by_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['requester_id'], ['principals.id']),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id']),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id']),
        sa.ForeignKeyConstraint(['approved_by_id'], ['principals.id']),
        sa.ForeignKeyConstraint(['rejected_by_id'], ['principals.id']),
        sa.ForeignKeyConstraint(['cancelled_by_id'], ['principals.id']),
        sa.ForeignKeyConstraint(['deleted_by_id'], ['principals.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
    )
    op.create_index('ix_leave_requests_id', 'leave_requests', ['id'])
    op.create_index('ix_leave_requests_requester_id', 'leave_requests', ['requester_id'])
    op.create_index('ix_leave_requests_property_id', 'leave_requests', ['property_id'])
    op.create_index('ix_leave_requests_department_id', 'leave_requests', ['department_id'])
    op.create_index('ix_leave_requests_approved_by_id', 'leave_requests', ['approved_by_id'])
    op.create_index('ix_leave_requests_rejected_by_id', 'leave_requests', ['rejected_by_id'])
    op.create_index('ix_leave_requests_property_dates', 'leave_requests', ['property_id', 'start_date', 'end_date'])
    op.create_index('ix_leave_requests_requester_dates', 'leave_requests', ['requester_id', 'start_date', 'end_date'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('meta_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['actor_id'], ['principals.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])

    op.create_table(
        'notification_intents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recipient_id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(), nullable=False),
        sa.Column('leave_request_id', sa.Integer(), nullable=True),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['recipient_id'], ['principals.id']),
        sa.ForeignKeyConstraint(['leave_request_id'], ['leave_requests.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notification_intents_id', 'notification_intents', ['id'])
    op.create_index('ix_notification_intents_recipient_id', 'notification_intents', ['recipient_id'])
    op.create_index('ix_notification_intents_leave_request_id', 'notification_intents', ['leave_request_id'])


def downgrade() -> None:
    op.drop_table('notification_intents')
    op.drop_table('audit_logs')
    op.drop_table('leave_requests')
    op.drop_table('principal_departments')
    op.drop_table('principal_properties')
    op.drop_table('role_grants')
    op.drop_table('principals')
    op.drop_table('departments')
    op.drop_table('properties')
    sa.Enum(name='leavestatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='leavetype').drop(op.get_bind(), checkfirst=True)
