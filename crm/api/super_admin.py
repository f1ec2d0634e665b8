"""
Super admin endpoints for managing tenants across the platform
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from crm.core.database import get_session
from crm.core.dependencies import require_super_admin
from crm.core.permissions import CurrentUser
from crm.models.tenant import TenantPlan, TenantStatus
from crm.schemas.common import PageParams, build_page, page_params, to_data
from crm.schemas.tenant import TenantCreate, TenantResponse, TenantSuspend, TenantUpdate
from crm.schemas.user import UserResponse
from crm.services.tenants import TenantService

router = APIRouter(dependencies=[Depends(require_super_admin)])


@router.get("/tenants")
async def list_tenants(
    params: PageParams = Depends(page_params),
    search: Optional[str] = None,
    tenant_status: Optional[TenantStatus] = Query(default=None, alias="status"),
    plan: Optional[TenantPlan] = None,
    session: AsyncSession = Depends(get_session),
):
    tenants, total = await TenantService(session).list(params, search=search, status=tenant_status, plan=plan)
    return build_page([to_data(TenantResponse, t) for t in tenants], total, params)


@router.post("/tenants", status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    current_user: CurrentUser = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
):
    """Create a tenant and its administrator"""
    tenant, admin = await TenantService(session).create(current_user, data)
    return {
        "success": True,
        "message": "Tenant created successfully",
        "data": {"tenant": to_data(TenantResponse, tenant), "admin": to_data(UserResponse, admin)},
    }


@router.get("/tenants/{tenant_id}")
async def get_tenant(
    tenant_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    tenant = await TenantService(session).get(tenant_id)
    return {"success": True, "data": to_data(TenantResponse, tenant)}


@router.put("/tenants/{tenant_id}")
async def update_tenant(
    tenant_id: uuid.UUID,
    data: TenantUpdate,
    session: AsyncSession = Depends(get_session),
):
    tenant = await TenantService(session).update(tenant_id, data)
    return {"success": True, "message": "Tenant updated successfully", "data": to_data(TenantResponse, tenant)}


@router.delete("/tenants/{tenant_id}")
async def delete_tenant(
    tenant_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    await TenantService(session).delete(tenant_id)
    return {"success": True, "message": "Tenant and all related data deleted successfully"}


@router.put("/tenants/{tenant_id}/suspend")
async def suspend_tenant(
    tenant_id: uuid.UUID,
    data: Optional[TenantSuspend] = None,
    session: AsyncSession = Depends(get_session),
):
    tenant = await TenantService(session).set_status(
        tenant_id, TenantStatus.SUSPENDED, reason=data.reason if data else None
    )
    return {"success": True, "message": "Tenant suspended successfully", "data": to_data(TenantResponse, tenant)}


@router.put("/tenants/{tenant_id}/activate")
async def activate_tenant(
    tenant_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    tenant = await TenantService(session).set_status(tenant_id, TenantStatus.ACTIVE)
    return {"success": True, "message": "Tenant activated successfully", "data": to_data(TenantResponse, tenant)}
