"""Initial schema: profiles, organizations, events, ticket types and registrations

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ROLES = ('attendee', 'organizer', 'admin', 'super_admin', 'management', 'speaker', 'staff', 'volunteer', 'guest')
APPROVAL_STATUSES = ('pending_approval', 'approved', 'rejected')
EVENT_STATUSES = ('draft', 'published', 'registration_open', 'registration_closed', 'ongoing', 'completed', 'cancelled')
REGISTRATION_STATUSES = ('pending', 'confirmed', 'cancelled', 'checked_in')
SUBSCRIPTION_STATUSES = ('trialing', 'active', 'past_due', 'canceled', 'incomplete', 'incomplete_expired', 'unpaid')
SUBSCRIPTION_PLANS = ('free', 'starter', 'professional', 'enterprise')

ENUMS = {
    'role': ROLES,
    'approvalstatus': APPROVAL_STATUSES,
    'eventstatus': EVENT_STATUSES,
    'registrationstatus': REGISTRATION_STATUSES,
    'subscriptionstatus': SUBSCRIPTION_STATUSES,
    'subscriptionplan': SUBSCRIPTION_PLANS,
}


def enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        'organizations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('business_type', sa.String(100), nullable=True),
        sa.Column('logo_url', sa.String(500), nullable=True),
        sa.Column('subscription_status', enum('subscriptionstatus'), nullable=False, server_default='trialing'),
        sa.Column('subscription_plan', enum('subscriptionplan'), nullable=False, server_default='free'),
        sa.Column('trial_ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_organizations_slug', 'organizations', ['slug'], unique=True)

    op.create_table(
        'user_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('role', enum('role'), nullable=False, server_default='attendee'),
        sa.Column('approval_status', enum('approvalstatus'), nullable=False, server_default='approved'),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approval_notes', sa.Text, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('organizations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('is_organization_owner', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_user_profiles_email', 'user_profiles', ['email'], unique=True)
    op.create_index('idx_profile_role_approval', 'user_profiles', ['role', 'approval_status'])
    op.create_index('idx_profile_organization', 'user_profiles', ['organization_id'])

    op.create_table(
        'events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(300), nullable=False, unique=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('venue', sa.String(255), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('is_virtual', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('virtual_platform', sa.String(100), nullable=True),
        sa.Column('virtual_url', sa.String(500), nullable=True),
        sa.Column('capacity', sa.Integer, nullable=True),
        sa.Column('banner_url', sa.String(500), nullable=True),
        sa.Column('registration_start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('registration_end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', enum('eventstatus'), nullable=False, server_default='draft'),
        sa.Column('approval_status', enum('approvalstatus'), nullable=False, server_default='pending_approval'),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approval_notes', sa.Text, nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('user_profiles.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_event_visibility', 'events', ['approval_status', 'status'])
    op.create_index('idx_event_organizer', 'events', ['created_by'])
    op.create_index('idx_event_created_at', 'events', ['created_at'])
    op.create_index('idx_event_start_date', 'events', ['start_date'])

    op.create_table(
        'ticket_types',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('event_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('quantity_available', sa.Integer, nullable=True),
        sa.Column('quantity_sold', sa.Integer, nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('quantity_sold >= 0', name='ck_ticket_sold_non_negative'),
        sa.CheckConstraint(
            'quantity_available IS NULL OR quantity_sold <= quantity_available',
            name='ck_ticket_no_oversell',
        ),
    )
    op.create_index('idx_ticket_type_event', 'ticket_types', ['event_id'])

    op.create_table(
        'registrations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('event_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('user_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ticket_type_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('ticket_types.id', ondelete='CASCADE'), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('status', enum('registrationstatus'), nullable=False, server_default='pending'),
        sa.Column('confirmation_code', sa.String(32), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('quantity >= 1', name='ck_registration_quantity_positive'),
    )
    op.create_index('idx_registration_user', 'registrations', ['user_id'])
    op.create_index('idx_registration_event', 'registrations', ['event_id'])
    op.create_index('idx_registration_ticket_type', 'registrations', ['ticket_type_id'])


def downgrade() -> None:
    op.drop_table('registrations')
    op.drop_table('ticket_types')
    op.drop_table('events')
    op.drop_table('user_profiles')
    op.drop_table('organizations')

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        sa.Enum(name=name).drop(bind, checkfirst=True)
