"""
Clients API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Optional
import uuid

from crm.core.database import get_session
from crm.core.dependencies import require_permission, require_tenant
from crm.core.permissions import CurrentUser, Permission
from crm.models.client import ClientStatus
from crm.models.tenant import Tenant
from crm.schemas.client import ClientCreate, ClientResponse, ClientUpdate, NoteCreate
from crm.schemas.common import PageParams, build_page, page_params, to_data
from crm.services.contacts import ClientService, ContactFilters

router = APIRouter()


@router.get("")
async def list_clients(
    params: PageParams = Depends(page_params),
    search: Optional[str] = None,
    client_status: Optional[ClientStatus] = Query(default=None, alias="status"),
    assigned_to: Optional[uuid.UUID] = None,
    tags: Optional[str] = Query(default=None, description="Comma separated tags"),
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    overdue: bool = False,
    company_id: Optional[uuid.UUID] = Query(default=None, alias="company"),
    current_user: CurrentUser = Depends(require_permission(Permission.READ_CLIENTS)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    filters = ContactFilters(
        search=search,
        status=client_status,
        assigned_to=assigned_to,
        tags=tags,
        created_from=created_from,
        created_to=created_to,
        overdue=overdue,
        company_id=company_id,
    )
    clients, total = await ClientService(session).list(current_user, tenant, params, filters)
    return build_page([to_data(ClientResponse, c) for c in clients], total, params)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    current_user: CurrentUser = Depends(require_permission(Permission.CREATE_CLIENTS)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    client = await ClientService(session).create(current_user, tenant, data)
    return {"success": True, "message": "Client created successfully", "data": to_data(ClientResponse, client)}


@router.get("/{client_id}")
async def get_client(
    client_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.READ_CLIENTS)),
    session: AsyncSession = Depends(get_session),
):
    client = await ClientService(session).get(current_user, client_id)
    return {"success": True, "data": to_data(ClientResponse, client)}


@router.put("/{client_id}")
async def update_client(
    client_id: uuid.UUID,
    data: ClientUpdate,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_CLIENTS)),
    session: AsyncSession = Depends(get_session),
):
    client = await ClientService(session).update(current_user, client_id, data)
    return {"success": True, "message": "Client updated successfully", "data": to_data(ClientResponse, client)}


@router.delete("/{client_id}")
async def delete_client(
    client_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.DELETE_CLIENTS)),
    session: AsyncSession = Depends(get_session),
):
    await ClientService(session).delete(current_user, client_id)
    return {"success": True, "message": "Client deleted successfully"}


@router.post("/{client_id}/notes", status_code=status.HTTP_201_CREATED)
async def add_client_note(
    client_id: uuid.UUID,
    data: NoteCreate,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_CLIENTS)),
    session: AsyncSession = Depends(get_session),
):
    client = await ClientService(session).add_note(current_user, client_id, data.content, data.is_private)
    return {"success": True, "message": "Note added successfully", "data": to_data(ClientResponse, client)}
