"""Initial ticketing console schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Auth identities, role rows and session tokens
2. Role permission matrices and managed users
3. Flights, passengers and infants
4. Airlines, agencies and per-account settings
5. Activity log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. AUTH
    # ==========================================================================
    op.create_table('auth_users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('email_confirmed', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_sign_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('auth_users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_auth_users_email'), ['email'], unique=True)

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=64), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('agency_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['auth_users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_roles', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_roles_user_id'), ['user_id'], unique=True)
        batch_op.create_index(batch_op.f('ix_user_roles_created_by'), ['created_by'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['auth_users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)

    # ==========================================================================
    # 2. ACCESS
    # ==========================================================================
    op.create_table('role_permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=64), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('role_permissions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_role_permissions_role'), ['role'], unique=True)

    op.create_table('managed_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('managed_user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=64), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('agency_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['managed_user_id'], ['auth_users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('managed_users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_managed_users_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_managed_users_managed_user_id'), ['managed_user_id'], unique=False)

    # ==========================================================================
    # 3. FLIGHTS
    # ==========================================================================
    op.create_table('flights',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('uuid', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('airline', sa.String(length=255), nullable=False),
        sa.Column('flight_number', sa.String(length=64), nullable=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('route', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('flights', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_flights_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_flights_user_date', ['user_id', 'date'], unique=False)

    op.create_table('passengers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('flight_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('gender', sa.String(length=1), nullable=True),
        sa.Column('phone_number', sa.String(length=64), nullable=True),
        sa.Column('agency', sa.String(length=255), nullable=True),
        sa.Column('flight_number', sa.String(length=64), nullable=True),
        sa.Column('booking_reference', sa.String(length=64), nullable=True),
        sa.Column('ticket_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('tax', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('surcharge', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('total_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('date_of_issue', sa.Date(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('updated_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['flight_id'], ['flights.uuid'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('passengers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_passengers_flight_id'), ['flight_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_passengers_user_id'), ['user_id'], unique=False)

    op.create_table('infants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('passenger_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['passenger_id'], ['passengers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('infants', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_infants_passenger_id'), ['passenger_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_infants_user_id'), ['user_id'], unique=False)

    # ==========================================================================
    # 4. CATALOG
    # ==========================================================================
    op.create_table('airlines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('ticket_template', sa.Text(), nullable=True),
        sa.Column('manifest_template', sa.Text(), nullable=True),
        sa.Column('manifest_us', sa.Text(), nullable=True),
        sa.Column('manifest_airport', sa.Text(), nullable=True),
        sa.Column('default_booking_reference', sa.String(length=64), nullable=True),
        sa.Column('default_flight_number', sa.String(length=64), nullable=True),
        sa.Column('adult_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('child_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('infant_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('tax', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('surcharge', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_by', sa.String(length=36), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('airlines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_airlines_user_id'), ['user_id'], unique=False)

    op.create_table('agencies',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('manager_name', sa.String(length=255), nullable=True),
        sa.Column('manager_phone', sa.String(length=64), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_by', sa.String(length=36), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('agencies', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_agencies_user_id'), ['user_id'], unique=False)

    op.create_table('settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('adult_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('child_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('infant_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('tax', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('surcharge', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('agency_name', sa.String(length=255), nullable=True),
        sa.Column('agency_tagline', sa.String(length=255), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_by', sa.String(length=36), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('settings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_settings_user_id'), ['user_id'], unique=True)

    # ==========================================================================
    # 5. ACTIVITY LOG
    # ==========================================================================
    op.create_table('activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('action_type', sa.String(length=16), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('activity_logs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_activity_logs_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_activity_logs_created_at'), ['created_at'], unique=False)


def downgrade():
    op.drop_table('activity_logs')
    op.drop_table('settings')
    op.drop_table('agencies')
    op.drop_table('airlines')
    op.drop_table('infants')
    op.drop_table('passengers')
    op.drop_table('flights')
    op.drop_table('managed_users')
    op.drop_table('role_permissions')
    op.drop_table('session_tokens')
    op.drop_table('user_roles')
    op.drop_table('auth_users')
