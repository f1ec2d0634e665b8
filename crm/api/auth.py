"""
Auth API endpoints - registration, login and profile
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import structlog

from crm.core.config import get_settings
from crm.core.database import get_session
from crm.core.dependencies import get_current_user, identify_tenant
from crm.core.tenant_middleware import get_tenant_hint
from crm.core.permissions import CurrentUser
from crm.models.company import Company
from crm.models.tenant import Tenant
from crm.models.user import User
from crm.schemas.common import to_data
from crm.schemas.company import CompanyResponse
from crm.schemas.tenant import TenantResponse
from crm.schemas.token import TokenResponse
from crm.schemas.user import LoginRequest, PasswordChange, ProfileUpdate, RegisterRequest, UserResponse
from crm.services.auth import AuthService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    session: AsyncSession = Depends(get_session),
):
    """Sign up a new tenant with its administrator"""
    user, tenant, token = await AuthService(session, get_settings()).register(data)
    return TokenResponse(
        access_token=token,
        user=to_data(UserResponse, user),
        tenant=to_data(TenantResponse, tenant),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    data: LoginRequest,
    tenant: Optional[Tenant] = Depends(identify_tenant),
    session: AsyncSession = Depends(get_session),
):
    """Exchange email and password for an access token"""
    tenant_required = not get_tenant_hint(request).dev_host
    user, user_tenant, token = await AuthService(session, get_settings()).login(
        data, tenant, tenant_required=tenant_required
    )
    return TokenResponse(
        access_token=token,
        user=to_data(UserResponse, user),
        tenant=to_data(TenantResponse, user_tenant) if user_tenant else None,
    )


@router.get("/me")
async def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    """Current user with role permissions, tenant and company"""
    user = await session.get(User, current_user.id)
    tenant = await session.get(Tenant, user.tenant_id)
    company = await session.get(Company, user.company_id) if user.company_id else None
    return {
        "success": True,
        "data": {
            **to_data(UserResponse, user),
            "permissions": sorted(p.value for p in current_user.permissions),
            "tenant": to_data(TenantResponse, tenant) if tenant else None,
            "company": to_data(CompanyResponse, company) if company else None,
        },
    }


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    user = await AuthService(session, get_settings()).update_profile(current_user, data)
    return {"success": True, "data": to_data(UserResponse, user)}


@router.put("/change-password")
async def change_password(
    data: PasswordChange,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    token = await AuthService(session, get_settings()).change_password(current_user, data)
    return {"success": True, "message": "Password updated successfully", "access_token": token}


@router.post("/logout")
async def logout(current_user: CurrentUser = Depends(get_current_user)):
    """Tokens are stateless; the client discards its token"""
    logger.info("logout", user_id=str(current_user.id))
    return {"success": True, "message": "Logged out successfully"}
