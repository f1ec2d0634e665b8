"""Initial CRM schema: tenants, companies, roles, users, clients and leads

Revision ID: 0001_initial_crm_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
import sqlmodel

# revision identifiers
revision = '0001_initial_crm_schema'
down_revision = None
branch_labels = None
depends_on = None

# Enum types are bound to their own metadata so that create_table does not
# emit CREATE TYPE; rolename and contactsource are shared by several tables.
enum_metadata = sa.MetaData()

tenant_status = sa.Enum(
    'ACTIVE', 'SUSPENDED', 'CANCELLED', 'TRIAL_EXPIRED',
    name='tenantstatus', metadata=enum_metadata,
)
tenant_plan = sa.Enum(
    'TRIAL', 'STARTER', 'PROFESSIONAL', 'ENTERPRISE', 'CUSTOM',
    name='tenantplan', metadata=enum_metadata,
)
company_plan = sa.Enum('STARTER', 'PROFESSIONAL', 'ENTERPRISE', name='companyplan', metadata=enum_metadata)
role_name = sa.Enum(
    'SUPER_ADMIN', 'TENANT_ADMIN', 'COMPANY_ADMIN', 'MANAGER', 'SALES_REP', 'USER',
    name='rolename', metadata=enum_metadata,
)
contact_source = sa.Enum(
    'WEBSITE', 'REFERRAL', 'SOCIAL_MEDIA', 'EMAIL_CAMPAIGN', 'COLD_CALL', 'TRADE_SHOW', 'ADVERTISEMENT', 'OTHER',
    name='contactsource', metadata=enum_metadata,
)
client_status = sa.Enum('ACTIVE', 'INACTIVE', 'POTENTIAL', 'LOST', name='clientstatus', metadata=enum_metadata)
lead_status = sa.Enum(
    'NEW', 'CONTACTED', 'QUALIFIED', 'PROPOSAL', 'NEGOTIATION', 'CLOSED_WON', 'CLOSED_LOST',
    name='leadstatus', metadata=enum_metadata,
)
lead_priority = sa.Enum('LOW', 'MEDIUM', 'HIGH', 'URGENT', name='leadpriority', metadata=enum_metadata)

ENUMS = (
    tenant_status, tenant_plan, company_plan, role_name,
    contact_source, client_status, lead_status, lead_priority,
)


def string(length=None):
    return sqlmodel.sql.sqltypes.AutoString(length=length)


def contact_columns():
    """Columns shared by clients and leads"""
    return [
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id'), nullable=True),
        sa.Column('first_name', string(50), nullable=False),
        sa.Column('last_name', string(50), nullable=False),
        sa.Column('email', string(255), nullable=False),
        sa.Column('phone', string(50), nullable=True),
        sa.Column('company_name', string(100), nullable=True),
        sa.Column('job_title', string(100), nullable=True),
        sa.Column('industry', string(), nullable=True),
        sa.Column('address', sa.JSON(), nullable=False),
        sa.Column('source', contact_source, nullable=False),
        sa.Column('currency', string(3), nullable=False),
        sa.Column('assigned_to_id', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('notes', sa.JSON(), nullable=False),
        sa.Column('last_contact', sa.DateTime(), nullable=True),
        sa.Column('next_follow_up', sa.DateTime(), nullable=True),
        sa.Column('social_media', sa.JSON(), nullable=False),
        sa.Column('custom_fields', sa.JSON(), nullable=False),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def create_indexes(table, columns, unique=()):
    for column in columns:
        op.create_index(op.f(f'ix_{table}_{column}'), table, [column], unique=column in unique)


def drop_indexes(table, columns):
    for column in columns:
        op.drop_index(op.f(f'ix_{table}_{column}'), table_name=table)


TENANT_INDEXES = ['name', 'subdomain', 'email', 'status', 'plan']
COMPANY_INDEXES = ['tenant_id', 'name', 'email', 'is_active']
ROLE_INDEXES = ['name']
USER_INDEXES = ['tenant_id', 'company_id', 'email', 'role', 'is_active']
CONTACT_INDEXES = ['tenant_id', 'company_id', 'email', 'assigned_to_id', 'next_follow_up', 'created_at']
CLIENT_INDEXES = CONTACT_INDEXES + ['status']
LEAD_INDEXES = CONTACT_INDEXES + ['status', 'priority', 'expected_close_date', 'converted_to_client']


def upgrade():
    bind = op.get_bind()
    for enum in ENUMS:
        enum.create(bind, checkfirst=True)

    op.create_table(
        'tenants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', string(100), nullable=False),
        sa.Column('subdomain', string(30), nullable=False),
        sa.Column('email', string(255), nullable=False),
        sa.Column('phone', string(50), nullable=True),
        sa.Column('website', string(), nullable=True),
        sa.Column('industry', string(), nullable=True),
        sa.Column('address', sa.JSON(), nullable=True),
        sa.Column('status', tenant_status, nullable=False),
        sa.Column('plan', tenant_plan, nullable=False),
        sa.Column('max_users', sa.Integer(), nullable=False),
        sa.Column('current_users', sa.Integer(), nullable=False),
        sa.Column('max_storage', sa.Integer(), nullable=False),
        sa.Column('current_storage', sa.Integer(), nullable=False),
        sa.Column('features', sa.JSON(), nullable=True),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('trial_start', sa.DateTime(), nullable=False),
        sa.Column('trial_end', sa.DateTime(), nullable=False),
        sa.Column('subscription_start', sa.DateTime(), nullable=True),
        sa.Column('subscription_end', sa.DateTime(), nullable=True),
        sa.Column('admin_user_id', sa.Uuid(), nullable=True),
        sa.Column('last_activity_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    create_indexes('tenants', TENANT_INDEXES, unique=('subdomain', 'email'))

    op.create_table(
        'companies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('name', string(100), nullable=False),
        sa.Column('email', string(255), nullable=False),
        sa.Column('phone', string(50), nullable=True),
        sa.Column('website', string(), nullable=True),
        sa.Column('industry', string(), nullable=True),
        sa.Column('address', sa.JSON(), nullable=True),
        sa.Column('plan', company_plan, nullable=False),
        sa.Column('max_users', sa.Integer(), nullable=False),
        sa.Column('current_users', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('subscription_start', sa.DateTime(), nullable=False),
        sa.Column('subscription_end', sa.DateTime(), nullable=True),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    create_indexes('companies', COMPANY_INDEXES, unique=('email',))

    op.create_table(
        'roles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', role_name, nullable=False),
        sa.Column('display_name', string(100), nullable=False),
        sa.Column('description', string(500), nullable=True),
        sa.Column('permissions', sa.JSON(), nullable=True),
        sa.Column('is_system_role', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    create_indexes('roles', ROLE_INDEXES, unique=('name',))

    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Uuid(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('company_id', sa.Uuid(), sa.ForeignKey('companies.id'), nullable=True),
        sa.Column('email', string(255), nullable=False),
        sa.Column('password_hash', string(), nullable=False),
        sa.Column('first_name', string(50), nullable=False),
        sa.Column('last_name', string(50), nullable=False),
        sa.Column('phone', string(50), nullable=True),
        sa.Column('preferences', sa.JSON(), nullable=True),
        sa.Column('role', role_name, sa.ForeignKey('roles.name'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('login_attempts', sa.Integer(), nullable=False),
        sa.Column('lock_until', sa.DateTime(), nullable=True),
        sa.Column('created_by_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.Column('last_login_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    create_indexes('users', USER_INDEXES, unique=('email',))

    op.create_table(
        'clients',
        *contact_columns(),
        sa.Column('status', client_status, nullable=False),
        sa.Column('value', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    create_indexes('clients', CLIENT_INDEXES)

    op.create_table(
        'leads',
        *contact_columns(),
        sa.Column('status', lead_status, nullable=False),
        sa.Column('priority', lead_priority, nullable=False),
        sa.Column('estimated_value', sa.Float(), nullable=False),
        sa.Column('probability', sa.Integer(), nullable=False),
        sa.Column('expected_close_date', sa.DateTime(), nullable=True),
        sa.Column('activities', sa.JSON(), nullable=False),
        sa.Column('converted_to_client', sa.Boolean(), nullable=False),
        sa.Column('converted_at', sa.DateTime(), nullable=True),
        sa.Column('client_id', sa.Uuid(), sa.ForeignKey('clients.id'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    create_indexes('leads', LEAD_INDEXES)


def downgrade():
    drop_indexes('leads', LEAD_INDEXES)
    op.drop_table('leads')
    drop_indexes('clients', CLIENT_INDEXES)
    op.drop_table('clients')
    drop_indexes('users', USER_INDEXES)
    op.drop_table('users')
    drop_indexes('roles', ROLE_INDEXES)
    op.drop_table('roles')
    drop_indexes('companies', COMPANY_INDEXES)
    op.drop_table('companies')
    drop_indexes('tenants', TENANT_INDEXES)
    op.drop_table('tenants')

    bind = op.get_bind()
    for enum in reversed(ENUMS):
        enum.drop(bind, checkfirst=True)
