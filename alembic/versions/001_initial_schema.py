"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-01-02 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

document_box_status = postgresql.ENUM(
    'OPEN', 'OPEN_SOMEONE', 'OPEN_RESUME', 'CLOSED', 'CLOSED_EXPIRED',
    name='documentboxstatus', create_type=False
)
remind_type = postgresql.ENUM('EMAIL', 'SMS', 'PUSH', name='remindtype', create_type=False)
submitter_status = postgresql.ENUM('PENDING', 'SUBMITTED', 'REJECTED', name='submitterstatus', create_type=False)
reminder_time_unit = postgresql.ENUM('DAY', 'WEEK', name='remindertimeunit', create_type=False)
reminder_channel = postgresql.ENUM('EMAIL', 'SMS', 'PUSH', name='reminderchannel', create_type=False)
deadline_notification_category = postgresql.ENUM(
    'D-3', 'D-DAY-OPEN', 'D-DAY-CLOSED',
    name='deadlinenotificationcategory', create_type=False
)

ENUMS = [
    document_box_status,
    remind_type,
    submitter_status,
    reminder_time_unit,
    reminder_channel,
    deadline_notification_category,
]


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    # Enum types are shared between tables, so create them once up front
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('auth_user_id', sa.String(length=255), nullable=True),
        sa.Column('deadline_notifications_enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_auth_user_id', 'users', ['auth_user_id'], unique=True)

    op.create_table('document_boxes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('deadline', sa.DateTime(timezone=True), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', document_box_status, server_default='OPEN', nullable=False),
        sa.Column('has_submitter', sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_document_boxes_deadline', 'document_boxes', ['deadline'])
    op.create_index('ix_document_boxes_status', 'document_boxes', ['status'])

    op.create_table('document_box_remind_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_box_id', sa.Integer(), sa.ForeignKey('document_boxes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('remind_type', remind_type, nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_box_id', 'remind_type', name='uq_box_remind_type')
    )
    op.create_index('ix_document_box_remind_types_document_box_id', 'document_box_remind_types', ['document_box_id'])

    op.create_table('required_documents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_box_id', sa.Integer(), sa.ForeignKey('document_boxes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('order', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_required_documents_document_box_id', 'required_documents', ['document_box_id'])

    op.create_table('submitters',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_box_id', sa.Integer(), sa.ForeignKey('document_boxes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('status', submitter_status, server_default='PENDING', nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_submitters_document_box_id', 'submitters', ['document_box_id'])

    op.create_table('reminder_schedules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_box_id', sa.Integer(), sa.ForeignKey('document_boxes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('offset_value', sa.Integer(), nullable=False),
        sa.Column('offset_unit', reminder_time_unit, server_default='DAY', nullable=False),
        sa.Column('time_of_day', sa.String(length=5), server_default='09:00', nullable=False),
        sa.Column('channel', reminder_channel, server_default='EMAIL', nullable=False),
        sa.Column('order', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_enabled', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('greeting_html', sa.Text(), nullable=True),
        sa.Column('footer_html', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reminder_schedules_document_box_id', 'reminder_schedules', ['document_box_id'])

    op.create_table('reminder_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_box_id', sa.Integer(), sa.ForeignKey('document_boxes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('schedule_id', sa.Integer(), sa.ForeignKey('reminder_schedules.id', ondelete='SET NULL'), nullable=True),
        sa.Column('channel', reminder_channel, server_default='EMAIL', nullable=False),
        sa.Column('is_auto', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('trigger_key', sa.String(length=120), nullable=True),
        sa.Column('fire_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_box_id', 'trigger_key', name='uq_reminder_log_trigger')
    )
    op.create_index('ix_reminder_logs_document_box_id', 'reminder_logs', ['document_box_id'])

    op.create_table('reminder_recipients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reminder_log_id', sa.Integer(), sa.ForeignKey('reminder_logs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('submitter_id', sa.Integer(), sa.ForeignKey('submitters.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_reminder_recipients_reminder_log_id', 'reminder_recipients', ['reminder_log_id'])

    op.create_table('deadline_notification_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_box_id', sa.Integer(), sa.ForeignKey('document_boxes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', deadline_notification_category, nullable=False),
        sa.Column('notification_date', sa.Date(), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=False),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_box_id', 'category', 'notification_date', name='uq_deadline_notification_per_day')
    )
    op.create_index('ix_deadline_notification_logs_document_box_id', 'deadline_notification_logs', ['document_box_id'])


def downgrade() -> None:
    op.drop_table('deadline_notification_logs')
    op.drop_table('reminder_recipients')
    op.drop_table('reminder_logs')
    op.drop_table('reminder_schedules')
    op.drop_table('submitters')
    op.drop_table('required_documents')
    op.drop_table('document_box_remind_types')
    op.drop_table('document_boxes')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
