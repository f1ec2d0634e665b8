"""
Tests for the lead pipeline and lead to client conversion
"""

import uuid

import pytest
import pytest_asyncio

from crm.core.permissions import RoleName
from crm.models.client import Client
from crm.models.lead import Lead


def lead_payload(**extra) -> dict:
    return {
        "first_name": "Grace",
        "last_name": "Hopper",
        "email": "grace@navy.io",
        "company_name": "Navy",
        "estimated_value": 25000,
        "tags": ["enterprise"],
        **extra,
    }


@pytest_asyncio.fixture
async def acme(factory):
    return await factory.tenant(subdomain="acme")


@pytest_asyncio.fixture
async def admin(factory, acme):
    return await factory.user(acme, role=RoleName.TENANT_ADMIN)


async def create_lead(client, headers, **extra) -> dict:
    response = await client.post("/api/leads", json=lead_payload(**extra), headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


@pytest.mark.asyncio
async def test_probability_follows_initial_status(client, auth, admin):
    lead = await create_lead(client, auth(admin), status="qualified")

    assert lead["probability"] == 40
    assert lead["converted_to_client"] is False


@pytest.mark.asyncio
async def test_explicit_probability_wins_on_create(client, auth, admin):
    lead = await create_lead(client, auth(admin), status="qualified", probability=55)

    assert lead["probability"] == 55


@pytest.mark.asyncio
async def test_status_change_updates_probability(client, auth, admin):
    lead = await create_lead(client, auth(admin))

    response = await client.put(f"/api/leads/{lead['id']}", json={"status": "proposal"}, headers=auth(admin))
    assert response.json()["data"]["probability"] == 60

    response = await client.put(
        f"/api/leads/{lead['id']}", json={"status": "negotiation", "probability": 90}, headers=auth(admin)
    )
    data = response.json()["data"]
    assert data["status"] == "negotiation"
    assert data["probability"] == 90


@pytest.mark.asyncio
async def test_completed_activity_sets_last_contact(client, auth, admin):
    lead = await create_lead(client, auth(admin))

    response = await client.post(
        f"/api/leads/{lead['id']}/activities",
        json={"type": "call", "subject": "Discovery call", "status": "completed"},
        headers=auth(admin),
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert len(data["activities"]) == 1
    assert data["activities"][0]["created_by"] == str(admin.id)
    assert data["last_contact"] is not None


@pytest.mark.asyncio
async def test_scheduled_activity_leaves_last_contact(client, auth, admin):
    lead = await create_lead(client, auth(admin))

    response = await client.post(
        f"/api/leads/{lead['id']}/activities",
        json={"type": "meeting", "subject": "Demo", "scheduled_date": "2030-01-01T10:00:00"},
        headers=auth(admin),
    )

    assert response.json()["data"]["last_contact"] is None


@pytest.mark.asyncio
async def test_convert_lead_to_client(client, factory, auth, acme, admin):
    rep = await factory.user(acme, role=RoleName.SALES_REP)
    lead = await create_lead(client, auth(admin), assigned_to_id=str(rep.id))
    await client.post(f"/api/leads/{lead['id']}/notes", json={"content": "Wants a pilot"}, headers=auth(admin))

    response = await client.post(f"/api/leads/{lead['id']}/convert", headers=auth(admin))

    assert response.status_code == 200
    data = response.json()["data"]
    converted, new_client = data["lead"], data["client"]
    assert converted["converted_to_client"] is True
    assert converted["status"] == "closed_won"
    assert converted["probability"] == 100
    assert converted["client_id"] == new_client["id"]
    assert new_client["status"] == "active"
    assert new_client["value"] == 25000
    assert new_client["email"] == "grace@navy.io"
    assert new_client["tenant_id"] == str(acme.id)
    assert new_client["assigned_to_id"] == str(rep.id)
    assert new_client["tags"] == ["enterprise"]
    assert len(new_client["notes"]) == 1

    stored = await factory.get(Client, uuid.UUID(new_client["id"]))
    assert stored is not None


@pytest.mark.asyncio
async def test_convert_twice_is_rejected(client, factory, auth, admin):
    lead = await create_lead(client, auth(admin))
    first = await client.post(f"/api/leads/{lead['id']}/convert", headers=auth(admin))
    assert first.status_code == 200

    second = await client.post(f"/api/leads/{lead['id']}/convert", headers=auth(admin))

    assert second.status_code == 400
    assert second.json()["code"] == "LEAD_ALREADY_CONVERTED"
    listing = await client.get("/api/clients", headers=auth(admin))
    assert listing.json()["total"] == 1


@pytest.mark.asyncio
async def test_convert_requires_client_permission(client, factory, auth, acme, admin):
    viewer = await factory.user(acme, role=RoleName.USER)
    lead = await create_lead(client, auth(admin))

    response = await client.post(f"/api/leads/{lead['id']}/convert", headers=auth(viewer))

    assert response.status_code == 403
    assert not (await factory.get(Lead, uuid.UUID(lead["id"]))).converted_to_client


@pytest.mark.asyncio
async def test_cross_tenant_assignee_rejected(client, factory, auth, admin):
    globex = await factory.tenant(subdomain="globex")
    stranger = await factory.user(globex, role=RoleName.SALES_REP)

    response = await client.post(
        "/api/leads", json=lead_payload(assigned_to_id=str(stranger.id)), headers=auth(admin)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_overdue_filter(client, auth, admin):
    overdue = await create_lead(client, auth(admin), email="late@navy.io", expected_close_date="2020-01-01T00:00:00")
    await create_lead(
        client, auth(admin), email="lost@navy.io", status="closed_lost", expected_close_date="2020-01-01T00:00:00"
    )
    await create_lead(client, auth(admin), email="future@navy.io", expected_close_date="2099-01-01T00:00:00")

    response = await client.get("/api/leads", params={"overdue": "true"}, headers=auth(admin))

    body = response.json()
    assert body["total"] == 1
    assert body["data"][0]["id"] == overdue["id"]


@pytest.mark.asyncio
async def test_filter_by_tags_and_status(client, auth, admin):
    await create_lead(client, auth(admin), email="a@navy.io", tags=["vip", "hot"])
    await create_lead(client, auth(admin), email="b@navy.io", tags=["cold"], status="contacted")

    by_tag = await client.get("/api/leads", params={"tags": "vip"}, headers=auth(admin))
    by_status = await client.get("/api/leads", params={"status": "contacted"}, headers=auth(admin))

    assert [lead["email"] for lead in by_tag.json()["data"]] == ["a@navy.io"]
    assert [lead["email"] for lead in by_status.json()["data"]] == ["b@navy.io"]


@pytest.mark.asyncio
async def test_pagination(client, auth, admin):
    for i in range(3):
        await create_lead(client, auth(admin), email=f"lead{i}@navy.io")

    response = await client.get("/api/leads", params={"page": 1, "limit": 2}, headers=auth(admin))

    body = response.json()
    assert body["total"] == 3
    assert body["count"] == 2
    assert body["pagination"]["next"]["page"] == 2


@pytest.mark.asyncio
async def test_sales_rep_cannot_delete_lead(client, factory, auth, acme, admin):
    rep = await factory.user(acme, role=RoleName.SALES_REP)
    lead = await create_lead(client, auth(admin))

    response = await client.delete(f"/api/leads/{lead['id']}", headers=auth(rep))

    assert response.status_code == 403
