"""
Companies API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from crm.core.database import get_session
from crm.core.dependencies import require_permission, require_roles, require_tenant
from crm.core.permissions import CurrentUser, Permission, RoleName
from crm.models.company import CompanyPlan
from crm.models.tenant import Tenant
from crm.schemas.common import PageParams, build_page, page_params, to_data
from crm.schemas.company import CompanyCreate, CompanyPlanUpdate, CompanyResponse, CompanyUpdate
from crm.services.companies import CompanyService

router = APIRouter()


@router.get("")
async def list_companies(
    params: PageParams = Depends(page_params),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    plan: Optional[CompanyPlan] = None,
    current_user: CurrentUser = Depends(require_permission(Permission.READ_COMPANIES)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    companies, total = await CompanyService(session).list(
        current_user, tenant, params, search=search, is_active=is_active, plan=plan
    )
    return build_page([to_data(CompanyResponse, c) for c in companies], total, params)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_company(
    data: CompanyCreate,
    current_user: CurrentUser = Depends(require_permission(Permission.CREATE_COMPANIES)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    company = await CompanyService(session).create(current_user, tenant, data)
    return {"success": True, "message": "Company created successfully", "data": to_data(CompanyResponse, company)}


@router.get("/{company_id}")
async def get_company(
    company_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.READ_COMPANIES)),
    session: AsyncSession = Depends(get_session),
):
    company = await CompanyService(session).get(current_user, company_id)
    return {"success": True, "data": to_data(CompanyResponse, company)}


@router.put("/{company_id}")
async def update_company(
    company_id: uuid.UUID,
    data: CompanyUpdate,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_COMPANIES)),
    session: AsyncSession = Depends(get_session),
):
    company = await CompanyService(session).update(current_user, company_id, data)
    return {"success": True, "message": "Company updated successfully", "data": to_data(CompanyResponse, company)}


@router.put("/{company_id}/plan")
async def update_company_plan(
    company_id: uuid.UUID,
    data: CompanyPlanUpdate,
    current_user: CurrentUser = Depends(require_roles(RoleName.SUPER_ADMIN)),
    session: AsyncSession = Depends(get_session),
):
    company = await CompanyService(session).update_plan(current_user, company_id, data)
    return {"success": True, "message": "Company plan updated successfully", "data": to_data(CompanyResponse, company)}


@router.delete("/{company_id}")
async def delete_company(
    company_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_roles(RoleName.SUPER_ADMIN)),
    session: AsyncSession = Depends(get_session),
):
    await CompanyService(session).delete(current_user, company_id)
    return {"success": True, "message": "Company deleted successfully"}
