"""
Tests for user administration: seats, role assignment and lifecycle
"""

import pytest
from sqlmodel import select

from crm.core.permissions import RoleName
from crm.models.company import Company
from crm.models.tenant import Tenant
from crm.models.user import User


def new_user(email: str, **extra) -> dict:
    return {
        "first_name": "New",
        "last_name": "Member",
        "email": email,
        "password": "secret123",
        **extra,
    }


@pytest.mark.asyncio
async def test_tenant_admin_creates_user_and_takes_seat(client, factory, auth):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)

    response = await client.post(
        "/api/users", json=new_user("rep@acme.io", role="sales_rep"), headers=auth(admin)
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["role"] == "sales_rep"
    assert data["tenant_id"] == str(tenant.id)
    assert (await factory.get(Tenant, tenant.id)).current_users == 2


@pytest.mark.asyncio
async def test_tenant_quota_exceeded_leaves_counters_untouched(client, factory, auth, session):
    tenant = await factory.tenant(max_users=2)
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    await factory.user(tenant)

    response = await client.post("/api/users", json=new_user("extra@acme.io"), headers=auth(admin))

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "QUOTA_EXCEEDED"
    assert body["scope"] == "tenant"
    assert (await factory.get(Tenant, tenant.id)).current_users == 2
    result = await session.execute(select(User).where(User.email == "extra@acme.io"))
    assert result.scalars().first() is None


@pytest.mark.asyncio
async def test_company_quota_rolls_back_tenant_seat(client, factory, auth):
    tenant = await factory.tenant()
    company = await factory.company(tenant, max_users=1)
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    await factory.user(tenant, company=company)

    response = await client.post(
        "/api/users", json=new_user("extra@acme.io", company_id=str(company.id)), headers=auth(admin)
    )

    assert response.status_code == 409
    assert response.json()["scope"] == "company"
    assert (await factory.get(Tenant, tenant.id)).current_users == 2
    assert (await factory.get(Company, company.id)).current_users == 1


@pytest.mark.asyncio
async def test_inactive_user_takes_no_seat(client, factory, auth):
    tenant = await factory.tenant(max_users=1)
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)

    response = await client.post(
        "/api/users", json=new_user("dormant@acme.io", is_active=False), headers=auth(admin)
    )

    assert response.status_code == 201
    assert (await factory.get(Tenant, tenant.id)).current_users == 1


@pytest.mark.asyncio
async def test_duplicate_email_rejected(client, factory, auth):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    await factory.user(tenant, email="taken@acme.io")

    response = await client.post("/api/users", json=new_user("taken@acme.io"), headers=auth(admin))

    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_VALUE"


@pytest.mark.asyncio
async def test_manager_cannot_create_users(client, factory, auth):
    tenant = await factory.tenant()
    manager = await factory.user(tenant, role=RoleName.MANAGER)

    response = await client.post("/api/users", json=new_user("rep@acme.io"), headers=auth(manager))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_company_admin_cannot_grant_higher_role(client, factory, auth):
    tenant = await factory.tenant()
    company = await factory.company(tenant)
    company_admin = await factory.user(tenant, role=RoleName.COMPANY_ADMIN, company=company)

    response = await client.post(
        "/api/users", json=new_user("boss@acme.io", role="tenant_admin"), headers=auth(company_admin)
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_company_admin_creates_inside_own_company(client, factory, auth):
    tenant = await factory.tenant()
    company = await factory.company(tenant)
    company_admin = await factory.user(tenant, role=RoleName.COMPANY_ADMIN, company=company)

    response = await client.post("/api/users", json=new_user("rep@acme.io"), headers=auth(company_admin))

    assert response.status_code == 201
    assert response.json()["data"]["company_id"] == str(company.id)
    assert (await factory.get(Company, company.id)).current_users == 2


@pytest.mark.asyncio
async def test_company_admin_lists_only_company_users(client, factory, auth):
    tenant = await factory.tenant()
    sales = await factory.company(tenant, name="Sales")
    support = await factory.company(tenant, name="Support")
    company_admin = await factory.user(tenant, role=RoleName.COMPANY_ADMIN, company=sales)
    await factory.user(tenant, company=sales)
    outsider = await factory.user(tenant, company=support)

    response = await client.get("/api/users", headers=auth(company_admin))

    body = response.json()
    assert body["total"] == 2
    assert all(user["company_id"] == str(sales.id) for user in body["data"])

    denied = await client.get(f"/api/users/{outsider.id}", headers=auth(company_admin))
    assert denied.status_code == 403


@pytest.mark.asyncio
async def test_cannot_delete_self(client, factory, auth):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)

    response = await client.delete(f"/api/users/{admin.id}", headers=auth(admin))

    assert response.status_code == 400
    assert (await factory.get(User, admin.id)).is_active


@pytest.mark.asyncio
async def test_deactivate_and_reactivate_user(client, factory, auth):
    tenant = await factory.tenant()
    company = await factory.company(tenant)
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    rep = await factory.user(tenant, role=RoleName.SALES_REP, company=company)

    response = await client.delete(f"/api/users/{rep.id}", headers=auth(admin))
    assert response.status_code == 200
    assert not (await factory.get(User, rep.id)).is_active
    assert (await factory.get(Tenant, tenant.id)).current_users == 1
    assert (await factory.get(Company, company.id)).current_users == 0

    again = await client.delete(f"/api/users/{rep.id}", headers=auth(admin))
    assert again.status_code == 400

    response = await client.put(f"/api/users/{rep.id}/activate", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is True
    assert (await factory.get(Tenant, tenant.id)).current_users == 2
    assert (await factory.get(Company, company.id)).current_users == 1


@pytest.mark.asyncio
async def test_deactivated_user_token_rejected(client, factory, auth):
    tenant = await factory.tenant()
    rep = await factory.user(tenant, is_active=False)

    response = await client.get("/api/users", headers=auth(rep))

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_manager_cannot_change_roles(client, factory, auth):
    tenant = await factory.tenant()
    manager = await factory.user(tenant, role=RoleName.MANAGER)
    rep = await factory.user(tenant, role=RoleName.SALES_REP)

    response = await client.put(f"/api/users/{rep.id}", json={"role": "manager"}, headers=auth(manager))

    assert response.status_code == 403
    assert (await factory.get(User, rep.id)).role == RoleName.SALES_REP


@pytest.mark.asyncio
async def test_manager_can_edit_profile_fields(client, factory, auth):
    tenant = await factory.tenant()
    manager = await factory.user(tenant, role=RoleName.MANAGER)
    rep = await factory.user(tenant, role=RoleName.SALES_REP)

    response = await client.put(f"/api/users/{rep.id}", json={"phone": "+1 555 0100"}, headers=auth(manager))

    assert response.status_code == 200
    assert response.json()["data"]["phone"] == "+1 555 0100"


@pytest.mark.asyncio
async def test_user_cannot_change_own_role(client, factory, auth):
    tenant = await factory.tenant()
    company = await factory.company(tenant)
    company_admin = await factory.user(tenant, role=RoleName.COMPANY_ADMIN, company=company)

    response = await client.put(
        f"/api/users/{company_admin.id}", json={"role": "user"}, headers=auth(company_admin)
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cannot_modify_higher_ranked_user(client, factory, auth):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    manager = await factory.user(tenant, role=RoleName.MANAGER)

    response = await client.put(f"/api/users/{admin.id}", json={"first_name": "Mallory"}, headers=auth(manager))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_roles_listing_hides_super_admin(client, factory, auth):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)

    response = await client.get("/api/roles", headers=auth(admin))

    assert response.status_code == 200
    names = {role["name"] for role in response.json()["data"]}
    assert "super_admin" not in names
    assert "tenant_admin" in names


@pytest.mark.asyncio
async def test_company_less_user_lists_whole_tenant(client, factory, auth):
    tenant = await factory.tenant()
    other_tenant = await factory.tenant(subdomain="globex")
    sales = await factory.company(tenant, name="Sales")
    support = await factory.company(tenant, name="Support")
    rep = await factory.user(tenant, role=RoleName.SALES_REP)
    await factory.user(tenant, company=sales)
    await factory.user(tenant, company=support)
    await factory.user(other_tenant)

    response = await client.get("/api/users", headers=auth(rep))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert all(user["tenant_id"] == str(tenant.id) for user in body["data"])


@pytest.mark.asyncio
async def test_company_admin_company_filter_override(client, factory, auth):
    tenant = await factory.tenant()
    other_tenant = await factory.tenant(subdomain="globex")
    sales = await factory.company(tenant, name="Sales")
    support = await factory.company(tenant, name="Support")
    foreign = await factory.company(other_tenant, name="Foreign")
    company_admin = await factory.user(tenant, role=RoleName.COMPANY_ADMIN, company=sales)
    await factory.user(tenant, company=sales)
    support_user = await factory.user(tenant, company=support)

    response = await client.get(f"/api/users?company={support.id}", headers=auth(company_admin))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == str(support_user.id)

    rejected = await client.get(f"/api/users?company={foreign.id}", headers=auth(company_admin))
    assert rejected.status_code == 400
    assert rejected.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_reactivation_at_quota_rejected(client, factory, auth):
    tenant = await factory.tenant(max_users=2)
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    await factory.user(tenant)
    dormant = await factory.user(tenant, is_active=False)

    response = await client.put(f"/api/users/{dormant.id}/activate", headers=auth(admin))

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "QUOTA_EXCEEDED"
    assert body["scope"] == "tenant"
    assert (await factory.get(Tenant, tenant.id)).current_users == 2
    assert not (await factory.get(User, dormant.id)).is_active
