"""
RBAC (Role-Based Access Control) permission system

Roles and permissions are closed vocabularies. Role rows in the database are
seeded from ROLE_DEFINITIONS; runtime checks only go through the helpers in
this module.
"""

from enum import Enum
from typing import FrozenSet, Optional
import uuid

from pydantic import BaseModel, ConfigDict


class RoleName(str, Enum):
    """System role names"""
    SUPER_ADMIN = "super_admin"
    TENANT_ADMIN = "tenant_admin"
    COMPANY_ADMIN = "company_admin"
    MANAGER = "manager"
    SALES_REP = "sales_rep"
    USER = "user"


class Permission(str, Enum):
    """Permission definitions"""
    # User permissions
    CREATE_USERS = "create_users"
    READ_USERS = "read_users"
    UPDATE_USERS = "update_users"
    DELETE_USERS = "delete_users"

    # Company permissions
    CREATE_COMPANIES = "create_companies"
    READ_COMPANIES = "read_companies"
    UPDATE_COMPANIES = "update_companies"
    DELETE_COMPANIES = "delete_companies"

    # Client permissions
    CREATE_CLIENTS = "create_clients"
    READ_CLIENTS = "read_clients"
    UPDATE_CLIENTS = "update_clients"
    DELETE_CLIENTS = "delete_clients"

    # Lead permissions
    CREATE_LEADS = "create_leads"
    READ_LEADS = "read_leads"
    UPDATE_LEADS = "update_leads"
    DELETE_LEADS = "delete_leads"

    # Tenant permissions
    CREATE_TENANTS = "create_tenants"
    READ_TENANTS = "read_tenants"
    UPDATE_TENANTS = "update_tenants"
    DELETE_TENANTS = "delete_tenants"

    # Dashboard and administration
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_ANALYTICS = "view_analytics"
    READ_DASHBOARD = "read_dashboard"
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_ROLES = "manage_roles"
    SUPER_ADMIN_ACCESS = "super_admin_access"


def _crud(resource: str) -> list[Permission]:
    return [Permission(f"{action}_{resource}") for action in ("create", "read", "update", "delete")]


# Role definitions: display name, description and ordered permissions
ROLE_DEFINITIONS = {
    RoleName.SUPER_ADMIN: {
        "display_name": "Super Administrator",
        "description": "Platform owner with access to every tenant",
        "permissions": list(Permission),
    },
    RoleName.TENANT_ADMIN: {
        "display_name": "Tenant Administrator",
        "description": "Full access within one tenant",
        "permissions": [
            *_crud("users"),
            *_crud("companies"),
            *_crud("clients"),
            *_crud("leads"),
            Permission.VIEW_DASHBOARD,
            Permission.READ_DASHBOARD,
            Permission.VIEW_ANALYTICS,
            Permission.MANAGE_SETTINGS,
        ],
    },
    RoleName.COMPANY_ADMIN: {
        "display_name": "Company Administrator",
        "description": "Manages users and pipeline of one company",
        "permissions": [
            *_crud("users"),
            Permission.READ_COMPANIES,
            Permission.UPDATE_COMPANIES,
            *_crud("clients"),
            *_crud("leads"),
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_ANALYTICS,
            Permission.MANAGE_SETTINGS,
        ],
    },
    RoleName.MANAGER: {
        "display_name": "Manager",
        "description": "Supervises a sales team",
        "permissions": [
            Permission.READ_USERS,
            Permission.UPDATE_USERS,
            Permission.READ_COMPANIES,
            *_crud("clients"),
            *_crud("leads"),
            Permission.VIEW_DASHBOARD,
            Permission.VIEW_ANALYTICS,
        ],
    },
    RoleName.SALES_REP: {
        "display_name": "Sales Representative",
        "description": "Works clients and leads",
        "permissions": [
            Permission.READ_USERS,
            Permission.READ_COMPANIES,
            Permission.CREATE_CLIENTS,
            Permission.READ_CLIENTS,
            Permission.UPDATE_CLIENTS,
            Permission.CREATE_LEADS,
            Permission.READ_LEADS,
            Permission.UPDATE_LEADS,
            Permission.VIEW_DASHBOARD,
        ],
    },
    RoleName.USER: {
        "display_name": "User",
        "description": "Read-only access",
        "permissions": [
            Permission.READ_USERS,
            Permission.READ_COMPANIES,
            Permission.READ_CLIENTS,
            Permission.READ_LEADS,
            Permission.VIEW_DASHBOARD,
        ],
    },
}

# Higher rank may grant any role ranked at or below its own
ROLE_RANK = {
    RoleName.SUPER_ADMIN: 6,
    RoleName.TENANT_ADMIN: 5,
    RoleName.COMPANY_ADMIN: 4,
    RoleName.MANAGER: 3,
    RoleName.SALES_REP: 2,
    RoleName.USER: 1,
}

# Roles allowed to change role, company or active flag of other accounts
PRIVILEGED_ROLES = frozenset({RoleName.SUPER_ADMIN, RoleName.TENANT_ADMIN, RoleName.COMPANY_ADMIN})


class CurrentUser(BaseModel):
    """Acting user attached to the request by the authenticator"""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: RoleName
    permissions: FrozenSet[Permission]
    tenant_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    tenant_status: Optional[str] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == RoleName.SUPER_ADMIN

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


def get_permissions_for_role(role: RoleName) -> FrozenSet[Permission]:
    """Get the default permissions for a given role"""
    definition = ROLE_DEFINITIONS.get(RoleName(role))
    return frozenset(definition["permissions"]) if definition else frozenset()


def has_role(user: CurrentUser, *roles: RoleName) -> bool:
    return user.role in roles


def has_permission(user: CurrentUser, permission: Permission) -> bool:
    """Check if user holds the permission through their role"""
    return permission in user.permissions


def same_scope(
    user: CurrentUser,
    tenant_id: Optional[uuid.UUID],
    company_id: Optional[uuid.UUID] = None,
) -> bool:
    """
    Check whether a resource owned by (tenant_id, company_id) is visible to user.

    super_admin sees everything. Everyone else is confined to their own
    tenant; tenant_admin sees the whole tenant, other roles with a company
    only see that company's resources and company-less users see tenant-wide.
    """
    if user.is_super_admin:
        return True
    if user.tenant_id is None or tenant_id != user.tenant_id:
        return False
    if user.role == RoleName.TENANT_ADMIN:
        return True
    if user.company_id is not None:
        return company_id == user.company_id
    return True


def can_assign_role(user: CurrentUser, role: RoleName) -> bool:
    """Only super_admin grants super_admin; nobody grants above their own rank"""
    role = RoleName(role)
    if role == RoleName.SUPER_ADMIN:
        return user.is_super_admin
    return ROLE_RANK[role] <= ROLE_RANK[user.role]
