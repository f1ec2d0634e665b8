"""
Unit tests for RBAC permission system
"""

import uuid

import pytest

from crm.core.permissions import (
    ROLE_DEFINITIONS,
    ROLE_RANK,
    CurrentUser,
    Permission,
    RoleName,
    can_assign_role,
    get_permissions_for_role,
    has_permission,
    has_role,
    same_scope,
)

TENANT = uuid.uuid4()
OTHER_TENANT = uuid.uuid4()
COMPANY = uuid.uuid4()
OTHER_COMPANY = uuid.uuid4()


def make_user(role: RoleName, tenant_id=TENANT, company_id=None) -> CurrentUser:
    return CurrentUser(
        id=uuid.uuid4(),
        email=f"{role.value}@acme.io",
        first_name="Test",
        last_name="User",
        role=role,
        permissions=get_permissions_for_role(role),
        tenant_id=tenant_id,
        company_id=company_id,
        tenant_status="active",
    )


def test_every_role_is_defined_and_ranked():
    assert set(ROLE_DEFINITIONS) == set(RoleName)
    assert set(ROLE_RANK) == set(RoleName)


def test_super_admin_has_all_permissions():
    assert get_permissions_for_role(RoleName.SUPER_ADMIN) == frozenset(Permission)


def test_tenant_admin_permissions():
    permissions = get_permissions_for_role(RoleName.TENANT_ADMIN)

    assert Permission.CREATE_USERS in permissions
    assert Permission.DELETE_COMPANIES in permissions
    assert Permission.MANAGE_SETTINGS in permissions
    assert Permission.SUPER_ADMIN_ACCESS not in permissions
    assert Permission.CREATE_TENANTS not in permissions


def test_sales_rep_cannot_delete():
    user = make_user(RoleName.SALES_REP)

    assert has_permission(user, Permission.CREATE_LEADS)
    assert has_permission(user, Permission.UPDATE_CLIENTS)
    assert not has_permission(user, Permission.DELETE_LEADS)
    assert not has_permission(user, Permission.DELETE_CLIENTS)
    assert not has_permission(user, Permission.CREATE_USERS)


def test_plain_user_is_read_only():
    permissions = get_permissions_for_role(RoleName.USER)

    assert all(not p.value.startswith(("create_", "update_", "delete_")) for p in permissions)
    assert Permission.READ_LEADS in permissions


def test_has_role():
    user = make_user(RoleName.MANAGER)

    assert has_role(user, RoleName.MANAGER, RoleName.TENANT_ADMIN)
    assert not has_role(user, RoleName.TENANT_ADMIN)


@pytest.mark.parametrize("role", [role for role in RoleName if role != RoleName.SUPER_ADMIN])
def test_no_access_across_tenants(role):
    user = make_user(role, company_id=COMPANY)

    assert not same_scope(user, OTHER_TENANT, COMPANY)


def test_super_admin_sees_everything():
    user = make_user(RoleName.SUPER_ADMIN, tenant_id=None)

    assert same_scope(user, OTHER_TENANT, OTHER_COMPANY)
    assert same_scope(user, TENANT)


def test_tenant_admin_is_tenant_wide():
    user = make_user(RoleName.TENANT_ADMIN, company_id=COMPANY)

    assert same_scope(user, TENANT, OTHER_COMPANY)
    assert same_scope(user, TENANT, None)


def test_company_bound_user_is_confined_to_company():
    user = make_user(RoleName.MANAGER, company_id=COMPANY)

    assert same_scope(user, TENANT, COMPANY)
    assert not same_scope(user, TENANT, OTHER_COMPANY)
    assert not same_scope(user, TENANT, None)


def test_company_less_user_is_tenant_wide():
    user = make_user(RoleName.SALES_REP)

    assert same_scope(user, TENANT, COMPANY)
    assert same_scope(user, TENANT, None)


def test_role_assignment_never_escalates():
    manager = make_user(RoleName.MANAGER)
    tenant_admin = make_user(RoleName.TENANT_ADMIN)
    super_admin = make_user(RoleName.SUPER_ADMIN)

    assert can_assign_role(manager, RoleName.SALES_REP)
    assert can_assign_role(manager, RoleName.MANAGER)
    assert not can_assign_role(manager, RoleName.COMPANY_ADMIN)
    assert can_assign_role(tenant_admin, RoleName.TENANT_ADMIN)
    assert not can_assign_role(tenant_admin, RoleName.SUPER_ADMIN)
    assert can_assign_role(super_admin, RoleName.SUPER_ADMIN)


def test_privileged_roles():
    assert make_user(RoleName.COMPANY_ADMIN).is_privileged
    assert make_user(RoleName.TENANT_ADMIN).is_privileged
    assert not make_user(RoleName.MANAGER).is_privileged
