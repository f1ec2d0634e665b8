"""
Users API endpoints
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import uuid

from crm.core.database import get_session
from crm.core.dependencies import require_permission, require_tenant
from crm.core.permissions import CurrentUser, Permission, RoleName
from crm.models.tenant import Tenant
from crm.schemas.common import PageParams, build_page, page_params, to_data
from crm.schemas.user import UserCreate, UserResponse, UserUpdate
from crm.services.users import UserService

router = APIRouter()


@router.get("")
async def list_users(
    params: PageParams = Depends(page_params),
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    role: Optional[RoleName] = None,
    tenant_id: Optional[uuid.UUID] = Query(default=None, alias="tenant"),
    company_id: Optional[uuid.UUID] = Query(default=None, alias="company"),
    current_user: CurrentUser = Depends(require_permission(Permission.READ_USERS)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    """List users visible to the caller"""
    users, total = await UserService(session).list_users(
        current_user, tenant, params,
        search=search, is_active=is_active, role=role, tenant_id=tenant_id, company_id=company_id,
    )
    return build_page([to_data(UserResponse, u) for u in users], total, params)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    current_user: CurrentUser = Depends(require_permission(Permission.CREATE_USERS)),
    tenant: Optional[Tenant] = Depends(require_tenant),
    session: AsyncSession = Depends(get_session),
):
    user = await UserService(session).create_user(current_user, tenant, data)
    return {"success": True, "message": "User created successfully", "data": to_data(UserResponse, user)}


@router.get("/{user_id}")
async def get_user(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.READ_USERS)),
    session: AsyncSession = Depends(get_session),
):
    user = await UserService(session).get_user(current_user, user_id)
    return {"success": True, "data": to_data(UserResponse, user)}


@router.put("/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_USERS)),
    session: AsyncSession = Depends(get_session),
):
    user = await UserService(session).update_user(current_user, user_id, data)
    return {"success": True, "message": "User updated successfully", "data": to_data(UserResponse, user)}


@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.DELETE_USERS)),
    session: AsyncSession = Depends(get_session),
):
    """Deactivate a user (soft delete)"""
    await UserService(session).deactivate_user(current_user, user_id)
    return {"success": True, "message": "User deactivated successfully"}


@router.put("/{user_id}/activate")
async def activate_user(
    user_id: uuid.UUID,
    current_user: CurrentUser = Depends(require_permission(Permission.UPDATE_USERS)),
    session: AsyncSession = Depends(get_session),
):
    user = await UserService(session).activate_user(current_user, user_id)
    return {"success": True, "message": "User activated successfully", "data": to_data(UserResponse, user)}
