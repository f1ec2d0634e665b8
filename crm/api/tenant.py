"""
Tenant self-service endpoints for the caller's own tenant
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from crm.core.database import get_session
from crm.core.dependencies import get_current_user, require_roles, require_tenant
from crm.core.exceptions import TenantNotIdentifiedError
from crm.core.permissions import CurrentUser, RoleName
from crm.models.tenant import Tenant
from crm.schemas.common import to_data
from crm.schemas.tenant import LimitCheck, TenantResponse, TenantSettingsUpdate
from crm.services.tenants import TenantService

router = APIRouter()


def _tenant_or_400(tenant: Optional[Tenant]) -> Tenant:
    # super_admin without a tenant hint reaches here with None
    if tenant is None:
        raise TenantNotIdentifiedError("Tenant not identified. Use a tenant subdomain or the tenant header.")
    return tenant


@router.get("/info")
async def get_tenant_info(
    current_user: CurrentUser = Depends(get_current_user),
    tenant: Optional[Tenant] = Depends(require_tenant),
):
    tenant = _tenant_or_400(tenant)
    return {"success": True, "data": to_data(TenantResponse, tenant)}


@router.post("/check-limit")
async def check_limit(
    data: LimitCheck,
    current_user: CurrentUser = Depends(get_current_user),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    """Whether the tenant can take `amount` more users or MB of storage"""
    result = await TenantService(session).check_limit(_tenant_or_400(tenant), data)
    return {"success": True, "data": result}


@router.put("/settings")
async def update_settings(
    data: TenantSettingsUpdate,
    current_user: CurrentUser = Depends(require_roles(RoleName.TENANT_ADMIN, RoleName.SUPER_ADMIN)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    tenant = await TenantService(session).update_settings(_tenant_or_400(tenant), data)
    return {"success": True, "message": "Tenant settings updated successfully", "data": to_data(TenantResponse, tenant)}


@router.get("/usage")
async def get_usage(
    current_user: CurrentUser = Depends(require_roles(RoleName.TENANT_ADMIN, RoleName.SUPER_ADMIN)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    usage = await TenantService(session).usage(_tenant_or_400(tenant))
    return {"success": True, "data": usage}
