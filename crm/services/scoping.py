"""
Tenant and company scoping for queries and single records
"""

from typing import Optional, Tuple
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from crm.core.exceptions import AuthorizationError, NotFoundError, ValidationFailed
from crm.core.permissions import CurrentUser, RoleName, same_scope
from crm.models.company import Company
from crm.models.tenant import Tenant

logger = structlog.get_logger(__name__)


def apply_scope(
    statement,
    model,
    user: CurrentUser,
    tenant: Optional[Tenant] = None,
    company_id: Optional[uuid.UUID] = None,
    allow_company_override: bool = False,
):
    """
    Restrict a listing query to what the user may see.

    company_id is an explicit filter requested by the caller. It narrows the
    result for tenant-wide users and replaces the user's own company only when
    allow_company_override is set (the caller has validated the company).
    """
    if user.is_super_admin:
        if tenant is not None:
            statement = statement.where(model.tenant_id == tenant.id)
        if company_id is not None:
            statement = statement.where(model.company_id == company_id)
        return statement

    statement = statement.where(model.tenant_id == user.tenant_id)

    if user.role == RoleName.TENANT_ADMIN or user.company_id is None or allow_company_override:
        if company_id is not None:
            statement = statement.where(model.company_id == company_id)
        return statement

    if company_id is not None and company_id != user.company_id:
        raise AuthorizationError("Access denied. You can only access your company data")
    return statement.where(model.company_id == user.company_id)


def ensure_in_scope(user: CurrentUser, record, label: str = "resource") -> None:
    if not same_scope(user, record.tenant_id, getattr(record, "company_id", None)):
        logger.warning(
            "scope_denied",
            user_id=str(user.id),
            resource=label,
            resource_id=str(record.id),
        )
        raise AuthorizationError("Access denied")


async def get_scoped(session: AsyncSession, model, record_id: uuid.UUID, user: CurrentUser, label: str):
    """Fetch by id: 404 when missing, 403 when outside the user's scope"""
    record = await session.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label.capitalize()} not found")
    ensure_in_scope(user, record, label)
    return record


async def get_company_in_tenant(
    session: AsyncSession,
    company_id: uuid.UUID,
    tenant_id: Optional[uuid.UUID],
) -> Company:
    company = await session.get(Company, company_id)
    if company is None or (tenant_id is not None and company.tenant_id != tenant_id):
        raise ValidationFailed(
            "Specified company not found",
            errors=[{"field": "company_id", "message": "Company not found in tenant", "value": str(company_id)}],
        )
    return company


async def resolve_owner(
    session: AsyncSession,
    user: CurrentUser,
    tenant: Optional[Tenant],
    company_id: Optional[uuid.UUID] = None,
    tenant_id: Optional[uuid.UUID] = None,
) -> Tuple[uuid.UUID, Optional[uuid.UUID]]:
    """
    Decide (tenant_id, company_id) for a record the user is creating.

    super_admin may target any tenant (explicit tenant_id, the company's
    tenant or the resolved tenant). Everyone else writes into their own
    tenant; users bound to a company write into that company.
    """
    if user.is_super_admin:
        if company_id is not None:
            company = await get_company_in_tenant(session, company_id, tenant_id)
            return company.tenant_id, company.id
        owner_tenant_id = tenant_id or (tenant.id if tenant is not None else None)
        if owner_tenant_id is None:
            raise ValidationFailed(
                "Tenant must be specified",
                errors=[{"field": "tenant_id", "message": "Field required", "value": None}],
            )
        if await session.get(Tenant, owner_tenant_id) is None:
            raise ValidationFailed(
                "Specified tenant not found",
                errors=[{"field": "tenant_id", "message": "Tenant not found", "value": str(owner_tenant_id)}],
            )
        return owner_tenant_id, None

    if tenant_id is not None and tenant_id != user.tenant_id:
        raise AuthorizationError("Access denied. You can only access your tenant data")

    if user.role != RoleName.TENANT_ADMIN and user.company_id is not None:
        if company_id is not None and company_id != user.company_id:
            raise AuthorizationError("Access denied. You can only access your company data")
        return user.tenant_id, user.company_id

    if company_id is not None:
        company = await get_company_in_tenant(session, company_id, user.tenant_id)
        return user.tenant_id, company.id
    return user.tenant_id, None
