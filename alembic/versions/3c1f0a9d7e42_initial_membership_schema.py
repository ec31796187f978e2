"""Initial membership schema: users, approvals, events, attendees, payments

Revision ID: 3c1f0a9d7e42
Revises: 
Create Date: 2026-10-17 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3c1f0a9d7e42'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    'roleenum': ('member', 'admin'),
    'accountstatus': ('pending', 'needs_clarification', 'approved', 'rejected'),
    'membershiptier': ('free', 'basic', 'premium', 'vip'),
    'senderrole': ('admin', 'user'),
    'attendeestatus': ('going', 'not_going', 'pending', 'waitlisted'),
    'attendeetype': ('primary', 'family_member', 'guest'),
    'relationship': ('self', 'spouse', 'child', 'guest'),
    'agegroup': ('0-2', '3-5', '6-10', '11+', 'adult'),
    'paymentstatus': ('unpaid', 'pending', 'paid', 'refunded', 'failed'),
    'paymentmethod': ('card', 'bank_transfer', 'cash', 'other'),
    'refundstatus': ('none', 'partial', 'full', 'requested'),
}


def _enum(name):
    # Types are created once up front; columns only reference them
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _uuid():
    return postgresql.UUID(as_uuid=True)


def _timestamps(updated=True):
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()))
    return cols


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone_number', sa.String(32), nullable=True),
        sa.Column('role', _enum('roleenum'), nullable=False, server_default='member'),
        sa.Column('status', _enum('accountstatus'), nullable=False, server_default='pending'),
        sa.Column('membership_tier', _enum('membershiptier'), nullable=False, server_default='free'),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', _uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', _uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('rejection_reason', sa.Text, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_status', 'users', ['status'])

    op.create_table(
        'account_approvals',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('how_did_you_hear', sa.String(100), nullable=True),
        sa.Column('how_did_you_hear_other', sa.String(255), nullable=True),
        sa.Column('referred_by', sa.String(255), nullable=True),
        sa.Column('referral_notes', sa.Text, nullable=True),
        sa.Column('status', _enum('accountstatus'), nullable=False, server_default='pending'),
        sa.Column('awaiting_response_from', _enum('senderrole'), nullable=True),
        sa.Column('unread_admin', sa.Integer, nullable=False, server_default='0'),
        sa.Column('unread_user', sa.Integer, nullable=False, server_default='0'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', _uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('rejection_reason', sa.Text, nullable=True),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_approval_status', 'account_approvals', ['status'])
    op.create_index('idx_approval_submitted', 'account_approvals', ['submitted_at'])

    op.create_table(
        'approval_messages',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('approval_id', _uuid(), sa.ForeignKey('account_approvals.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', _uuid(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('sender_role', _enum('senderrole'), nullable=False),
        sa.Column('sender_name', sa.String(255), nullable=True),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('read', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    op.create_index('idx_approval_message_thread', 'approval_messages', ['approval_id', 'created_at'])

    op.create_table(
        'events',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('capacity', sa.Integer, nullable=True, server_default='0'),
        sa.Column('waitlist_enabled', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('waitlist_limit', sa.Integer, nullable=True),
        sa.Column('attending_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('recurrence_rule', sa.Text, nullable=True),
        sa.Column('recurrence_timezone', sa.String(64), nullable=True),
        sa.Column('recurrence_exdates', sa.JSON, nullable=True),
        sa.Column('is_free', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('requires_payment', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('adult_price', sa.Integer, nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('payment_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refund_allowed', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('refund_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refund_fee_percentage', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_by', _uuid(), sa.ForeignKey('users.id'), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_event_start', 'events', ['start_at'])
    op.create_index('idx_event_end', 'events', ['end_at'])
    op.create_index('idx_event_created_by', 'events', ['created_by'])
    op.create_index('idx_event_created_at', 'events', ['created_at'])
    op.execute("""
        CREATE INDEX idx_event_search ON events
        USING GIN (to_tsvector('english', COALESCE(title, '') || ' ' || COALESCE(description, '')))
    """)

    op.create_table(
        'event_age_group_prices',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('event_id', _uuid(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('age_group', _enum('agegroup'), nullable=False),
        sa.Column('price', sa.Integer, nullable=False, server_default='0'),
        sa.UniqueConstraint('event_id', 'age_group', name='uq_event_age_group_price'),
    )

    op.create_table(
        'family_members',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('age_group', _enum('agegroup'), nullable=False, server_default='adult'),
        sa.Column('is_default_member', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index('idx_family_member_user', 'family_members', ['user_id'])

    op.create_table(
        'attendees',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('event_id', _uuid(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', _uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attendee_type', _enum('attendeetype'), nullable=False, server_default='primary'),
        sa.Column('relationship', _enum('relationship'), nullable=False, server_default='self'),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('age_group', _enum('agegroup'), nullable=True),
        sa.Column('rsvp_status', _enum('attendeestatus'), nullable=False, server_default='going'),
        sa.Column('family_member_id', _uuid(), sa.ForeignKey('family_members.id', ondelete='SET NULL'), nullable=True),
        sa.Column('waitlist_position', sa.Integer, nullable=True),
        sa.Column('waitlist_joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('original_waitlist_joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('promoted_from_waitlist', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('promoted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('promotion_number', sa.Integer, nullable=True),
        sa.Column('payment_status', _enum('paymentstatus'), nullable=True),
        sa.Column('payment_transaction_id', _uuid(), nullable=True),
        sa.Column('price', sa.Integer, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('event_id', 'family_member_id', name='uq_event_family_member'),
    )
    op.create_index(
        'uq_event_user_primary', 'attendees', ['event_id', 'user_id'], unique=True,
        postgresql_where=sa.text("attendee_type = 'primary'"),
    )
    op.create_index('idx_attendee_event_status', 'attendees', ['event_id', 'rsvp_status'])
    op.create_index('idx_attendee_event_user', 'attendees', ['event_id', 'user_id'])

    op.create_table(
        'payment_transactions',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('event_id', _uuid(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', _uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('amount', sa.Integer, nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('status', _enum('paymentstatus'), nullable=False, server_default='pending'),
        sa.Column('method', _enum('paymentmethod'), nullable=False, server_default='card'),
        sa.Column('refund_status', _enum('refundstatus'), nullable=False, server_default='none'),
        sa.Column('refunded_amount', sa.Integer, nullable=False, server_default='0'),
        sa.Column('refund_reason', sa.Text, nullable=True),
        sa.Column('breakdown', sa.JSON, nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_payment_event', 'payment_transactions', ['event_id'])
    op.create_index('idx_payment_user', 'payment_transactions', ['user_id'])
    op.create_index('idx_payment_event_user', 'payment_transactions', ['event_id', 'user_id'])

    op.create_table(
        'notifications',
        sa.Column('id', _uuid(), primary_key=True),
        sa.Column('user_id', _uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text, nullable=True),
        sa.Column('data', sa.JSON, nullable=True),
        sa.Column('read', sa.Boolean, nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    op.create_index('idx_notification_user_read', 'notifications', ['user_id', 'read'])


def downgrade() -> None:
    for table in (
        'notifications', 'payment_transactions', 'attendees', 'family_members',
        'event_age_group_prices', 'events', 'approval_messages', 'account_approvals', 'users',
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
