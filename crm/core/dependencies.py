"""
Authentication, tenant and authorization dependencies for FastAPI
"""

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from typing import Optional
import structlog

from crm.core.auth import verify_token
from crm.core.database import get_database, get_session
from crm.core.exceptions import AuthenticationError, AuthorizationError, TenantNotIdentifiedError
from crm.core.permissions import CurrentUser, Permission, RoleName, has_permission, has_role
from crm.core.tenant_middleware import TenantResolver, get_tenant_hint, touch_tenant_activity
from crm.models.role import Role
from crm.models.tenant import Tenant, TenantStatus
from crm.models.user import User

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)

_KNOWN_PERMISSIONS = {p.value for p in Permission}


async def load_current_user(session: AsyncSession, user: User) -> CurrentUser:
    """Build the acting-user context: role permissions plus tenant/company ids"""
    result = await session.execute(select(Role).where(Role.name == user.role))
    role = result.scalars().first()
    if role is None:
        raise AuthenticationError("User role is not configured")

    tenant = await session.get(Tenant, user.tenant_id)
    return CurrentUser(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        permissions=frozenset(Permission(p) for p in role.permissions if p in _KNOWN_PERMISSIONS),
        tenant_id=user.tenant_id,
        company_id=user.company_id,
        tenant_status=tenant.status.value if tenant else None,
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> CurrentUser:
    """Verify the bearer token and load the acting user"""
    if credentials is None:
        raise AuthenticationError("Not authorized to access this route")

    user_id = verify_token(credentials.credentials)
    if user_id is None:
        raise AuthenticationError("Not authorized to access this route")

    user = await session.get(User, user_id)
    if user is None:
        raise AuthenticationError("No user found with this token")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    current_user = await load_current_user(session, user)
    if current_user.role != RoleName.SUPER_ADMIN and current_user.tenant_status != TenantStatus.ACTIVE.value:
        raise AuthenticationError(
            f"Tenant account is {current_user.tenant_status}",
            code="TENANT_INACTIVE",
            tenant_status=current_user.tenant_status,
        )

    request.state.user = current_user
    logger.debug("user_authenticated", user_id=str(user_id), role=current_user.role.value)
    return current_user


async def identify_tenant(
    request: Request,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
) -> Optional[Tenant]:
    """Resolve the tenant for public routes (login, registration); may be None"""
    tenant = await TenantResolver(session).resolve(get_tenant_hint(request))
    if tenant is not None:
        request.state.tenant = tenant
        background_tasks.add_task(touch_tenant_activity, get_database(request), tenant.id)
    return tenant


async def require_tenant(
    request: Request,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Optional[Tenant]:
    """
    Resolve the tenant for protected routes.

    Returns None only for super_admin acting globally or on super-admin
    routes. A regular user whose resolved tenant is not their own is denied.
    """
    hint = get_tenant_hint(request)
    tenant = await TenantResolver(session).resolve(hint, current_user)

    if tenant is None:
        if hint.super_admin_route or current_user.is_super_admin:
            return None
        logger.warning("tenant_not_identified", host=hint.host, user_id=str(current_user.id))
        raise TenantNotIdentifiedError(
            "Tenant not identified. Please ensure you are accessing the correct subdomain.",
            host=hint.host,
            subdomain=hint.subdomain,
        )

    if not current_user.is_super_admin and tenant.id != current_user.tenant_id:
        logger.warning(
            "cross_tenant_access_denied",
            user_id=str(current_user.id),
            user_tenant_id=str(current_user.tenant_id),
            tenant_id=str(tenant.id),
        )
        raise AuthorizationError("Access denied. You can only access your tenant data")

    request.state.tenant = tenant
    background_tasks.add_task(touch_tenant_activity, get_database(request), tenant.id)
    return tenant


def require_roles(*roles: RoleName):
    """Dependency factory to check role membership"""
    async def check_roles(
        current_user: CurrentUser = Depends(get_current_user),
        tenant: Optional[Tenant] = Depends(require_tenant),
    ) -> CurrentUser:
        if not has_role(current_user, *roles):
            logger.warning("role_denied", user_id=str(current_user.id), role=current_user.role.value,
                           required=[r.value for r in roles])
            raise AuthorizationError(
                f"User role '{current_user.role.value}' is not authorized to access this route"
            )
        return current_user
    return check_roles


def require_permission(permission: Permission):
    """Dependency factory to check permissions"""
    async def check_permission(
        current_user: CurrentUser = Depends(get_current_user),
        tenant: Optional[Tenant] = Depends(require_tenant),
    ) -> CurrentUser:
        if not has_permission(current_user, permission):
            logger.warning("permission_denied", user_id=str(current_user.id), permission=permission.value)
            raise AuthorizationError(f"You don't have permission to {permission.value}")
        return current_user
    return check_permission


async def require_super_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_super_admin:
        logger.warning("super_admin_denied", user_id=str(current_user.id), role=current_user.role.value)
        raise AuthorizationError("Super admin access required")
    return current_user
