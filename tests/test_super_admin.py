"""
Tests for platform level tenant management and tenant self-service
"""

import pytest
import pytest_asyncio
from sqlmodel import select

from crm.core.permissions import RoleName
from crm.models.tenant import Tenant, TenantStatus
from crm.models.user import User

TENANT_PAYLOAD = {
    "name": "Initech",
    "subdomain": "initech",
    "email": "billing@initech.io",
    "plan": "starter",
    "max_users": 10,
    "admin_first_name": "Bill",
    "admin_last_name": "Lumbergh",
    "admin_email": "bill@initech.io",
    "admin_password": "secret123",
}


@pytest_asyncio.fixture
async def super_admin(factory):
    platform = await factory.tenant(subdomain="platform")
    return await factory.user(platform, role=RoleName.SUPER_ADMIN)


@pytest.mark.asyncio
async def test_requires_super_admin(client, factory, auth):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)

    response = await client.get("/api/super-admin/tenants", headers=auth(admin))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_tenant_with_admin(client, auth, super_admin):
    response = await client.post("/api/super-admin/tenants", json=TENANT_PAYLOAD, headers=auth(super_admin))

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["tenant"]["subdomain"] == "initech"
    assert data["tenant"]["current_users"] == 1
    assert data["tenant"]["admin_user_id"] == data["admin"]["id"]
    assert data["admin"]["role"] == "tenant_admin"

    login = await client.post("/api/auth/login", json={"email": "bill@initech.io", "password": "secret123"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_create_tenant_duplicate_subdomain(client, factory, auth, super_admin):
    await factory.tenant(subdomain="initech")

    response = await client.post("/api/super-admin/tenants", json=TENANT_PAYLOAD, headers=auth(super_admin))

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_list_tenants_filtered_by_status(client, factory, auth, super_admin):
    await factory.tenant(subdomain="acme")
    await factory.tenant(subdomain="globex", status=TenantStatus.SUSPENDED)

    response = await client.get(
        "/api/super-admin/tenants", params={"status": "suspended"}, headers=auth(super_admin)
    )

    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["subdomain"] == "globex"


@pytest.mark.asyncio
async def test_suspend_and_activate_tenant(client, factory, auth, super_admin):
    tenant = await factory.tenant()
    user = await factory.user(tenant)

    response = await client.put(
        f"/api/super-admin/tenants/{tenant.id}/suspend", json={"reason": "Unpaid invoice"}, headers=auth(super_admin)
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "suspended"

    # Existing tokens stop working
    assert (await client.get("/api/auth/me", headers=auth(user))).status_code == 401

    again = await client.put(f"/api/super-admin/tenants/{tenant.id}/suspend", headers=auth(super_admin))
    assert again.status_code == 400

    response = await client.put(f"/api/super-admin/tenants/{tenant.id}/activate", headers=auth(super_admin))
    assert response.json()["data"]["status"] == "active"
    assert (await client.get("/api/auth/me", headers=auth(user))).status_code == 200


@pytest.mark.asyncio
async def test_update_tenant_limits(client, factory, auth, super_admin):
    tenant = await factory.tenant()
    await factory.user(tenant)
    await factory.user(tenant)

    too_small = await client.put(
        f"/api/super-admin/tenants/{tenant.id}", json={"max_users": 1}, headers=auth(super_admin)
    )
    assert too_small.status_code == 400

    response = await client.put(
        f"/api/super-admin/tenants/{tenant.id}",
        json={"max_users": 25, "features": {"api_access": True}},
        headers=auth(super_admin),
    )
    data = response.json()["data"]
    assert data["max_users"] == 25
    assert data["features"]["api_access"] is True
    assert data["features"]["custom_fields"] is True


@pytest.mark.asyncio
async def test_delete_tenant_cascades(client, factory, auth, super_admin, session):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    await client.post(
        "/api/clients", json={"first_name": "Jane", "last_name": "Doe", "email": "jane@customer.io"},
        headers=auth(admin),
    )

    response = await client.delete(f"/api/super-admin/tenants/{tenant.id}", headers=auth(super_admin))

    assert response.status_code == 200
    assert await factory.get(Tenant, tenant.id) is None
    result = await session.execute(select(User).where(User.tenant_id == tenant.id))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_tenant_usage_and_limits(client, factory, auth):
    tenant = await factory.tenant(max_users=2)
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)
    rep = await factory.user(tenant, role=RoleName.SALES_REP)

    usage = await client.get("/api/tenant/usage", headers=auth(admin))
    assert usage.status_code == 200
    assert usage.json()["data"]["users"] == {"current": 2, "limit": 2, "percentage": 100}

    check = await client.post("/api/tenant/check-limit", json={"type": "users", "amount": 1}, headers=auth(rep))
    assert check.status_code == 200
    assert check.json()["data"]["allowed"] is False

    storage = await client.post("/api/tenant/check-limit", json={"type": "storage", "amount": 10}, headers=auth(rep))
    assert storage.json()["data"]["allowed"] is True

    assert (await client.get("/api/tenant/usage", headers=auth(rep))).status_code == 403


@pytest.mark.asyncio
async def test_tenant_settings_are_merged(client, factory, auth):
    tenant = await factory.tenant()
    admin = await factory.user(tenant, role=RoleName.TENANT_ADMIN)

    response = await client.put(
        "/api/tenant/settings", json={"settings": {"timezone": "Europe/Madrid"}}, headers=auth(admin)
    )

    assert response.status_code == 200
    settings = response.json()["data"]["settings"]
    assert settings["timezone"] == "Europe/Madrid"
    assert settings["currency"] == "USD"
