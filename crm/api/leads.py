"""
Leads API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime
from typing import Optional
import uuid

from crm.core.database import get_session
from crm.core.dependencies import require_permission, require_tenant
from crm.core.permissions import CurrentUser, Permission
from crm.models.lead import LeadPriority, LeadStatus
from crm.models.tenant import Tenant
from crm.schemas.client import ClientResponse, NoteCreate
from crm.schemas.common import PageParams, build_page, page_params, to_data
from crm.schemas.lead import ActivityCreate, LeadCreate, LeadResponse, LeadUpdate
from crm.services.leads import LeadFilters, LeadService

router = APIRouter()


@router.get("")
async def list_leads(
    params: PageParams = Depends(page_params),
    search: Optional[str] = None,
    lead_status: Optional[LeadStatus] = Query(default=None, alias="status"),
    priority: Optional[LeadPriority] = None,
    assigned_to: Optional[uuid.UUID] = None,
    tags: Optional[str] = Query(default=None, description="Comma separated tags"),
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    closing_from: Optional[datetime] = None,
    closing_to: Optional[datetime] = None,
    overdue: bool = False,
    company_id: Optional[uuid.UUID] = Query(default=None, alias="company"),
    current_user: CurrentUser = Depends(require_permission(Permission.READ_LEADS)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    filters = LeadFilters(
        search=search,
        status=lead_status,
        priority=priority,
        assigned_to=assigned_to,
        tags=tags,
        created_from=created_from,
        created_to=created_to,
        closing_from=closing_from,
        closing_to=closing_to,
        overdue=overdue,
        company_id=company_id,
    )
    leads, total = await LeadService(session).list(current_user, tenant, params, filters)
    return build_page([to_data(LeadResponse, lead) for lead in leads], total, params)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lead(
    data: LeadCreate,
    current_user: CurrentUser = Depends(require_permission(Permission.CREATE_LEADS)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    lead = await LeadService(session).create(current_user, tenant, data)
    return {"success": True, "message": "Lead created successfully", "data": to_data(LeadResponse, lead)}


@router.get("/{lead_id}")
async def get_lead(
    lead_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.READ_LEADS)),
    session: AsyncSession = Depends(get_session),
):
    lead = await LeadService(session).get(current_user, lead_id)
    return {"success": True, "data": to_data(LeadResponse, lead)}


@router.put("/{lead_id}")
async def update_lead(
    lead_id: uuid.UUID,
    data: LeadUpdate,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_LEADS)),
    session: AsyncSession = Depends(get_session),
):
    lead = await LeadService(session).update(current_user, lead_id, data)
    return {"success": True, "message": "Lead updated successfully", "data": to_data(LeadResponse, lead)}


@router.delete("/{lead_id}")
async def delete_lead(
    lead_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.DELETE_LEADS)),
    session: AsyncSession = Depends(get_session),
):
    await LeadService(session).delete(current_user, lead_id)
    return {"success": True, "message": "Lead deleted successfully"}


@router.post("/{lead_id}/notes", status_code=status.HTTP_201_CREATED)
async def add_lead_note(
    lead_id: uuid.UUID,
    data: NoteCreate,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_LEADS)),
    session: AsyncSession = Depends(get_session),
):
    lead = await LeadService(session).add_note(current_user, lead_id, data.content, data.is_private)
    return {"success": True, "message": "Note added successfully", "data": to_data(LeadResponse, lead)}


@router.post("/{lead_id}/activities", status_code=status.HTTP_201_CREATED)
async def add_lead_activity(
    lead_id: uuid.UUID,
    data: ActivityCreate,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_LEADS)),
    session: AsyncSession = Depends(get_session),
):
    lead = await LeadService(session).add_activity(current_user, lead_id, data)
    return {"success": True, "message": "Activity added successfully", "data": to_data(LeadResponse, lead)}


@router.post("/{lead_id}/convert")
async def convert_lead(
    lead_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.CREATE_CLIENTS)),
    session: AsyncSession = Depends(get_session),
):
    """Convert a lead into a client (one time only)"""
    lead, client = await LeadService(session).convert(current_user, lead_id)
    return {
        "success": True,
        "message": "Lead converted to client successfully",
        "data": {"lead": to_data(LeadResponse, lead), "client": to_data(ClientResponse, client)},
    }
