"""
Company administration inside a tenant
"""

from datetime import datetime
from typing import List, Optional, Tuple
import uuid

from sqlalchemy import func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
import structlog

from crm.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationFailed
from crm.core.permissions import CurrentUser, RoleName, same_scope
from crm.models.client import Client
from crm.models.company import Company, CompanyPlan
from crm.models.lead import Lead
from crm.models.tenant import Tenant
from crm.models.user import User
from crm.schemas.common import PageParams
from crm.schemas.company import CompanyCreate, CompanyPlanUpdate, CompanyUpdate

logger = structlog.get_logger(__name__)


class CompanyService:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def ensure_email_available(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> None:
        result = await self.session.execute(select(Company).where(Company.email == email.lower()))
        existing = result.scalars().first()
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("Company with this email already exists", code="DUPLICATE_VALUE")

    async def get(self, actor: CurrentUser, company_id: uuid.UUID) -> Company:
        company = await self.session.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company not found")
        if not same_scope(actor, company.tenant_id, company.id):
            logger.warning("scope_denied", user_id=str(actor.id), resource="company", resource_id=str(company_id))
            raise AuthorizationError("Access denied. You can only access your company data")
        return company

    async def list(
        self,
        actor: CurrentUser,
        tenant: Optional[Tenant],
        params: PageParams,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        plan: Optional[CompanyPlan] = None,
    ) -> Tuple[List[Company], int]:
        statement = select(Company)
        if actor.is_super_admin:
            if tenant is not None:
                statement = statement.where(Company.tenant_id == tenant.id)
        else:
            statement = statement.where(Company.tenant_id == actor.tenant_id)
            if actor.role != RoleName.TENANT_ADMIN and actor.company_id is not None:
                statement = statement.where(Company.id == actor.company_id)

        if search:
            pattern = f"%{search.lower()}%"
            statement = statement.where(or_(
                func.lower(Company.name).like(pattern),
                func.lower(Company.email).like(pattern),
                func.lower(Company.industry).like(pattern),
            ))
        if is_active is not None:
            statement = statement.where(Company.is_active == is_active)
        if plan is not None:
            statement = statement.where(Company.plan == plan)

        total = (await self.session.execute(
            select(func.count()).select_from(statement.subquery())
        )).scalar_one()
        result = await self.session.execute(
            statement.order_by(Company.created_at.desc()).offset(params.offset).limit(params.limit)
        )
        return list(result.scalars().all()), total

    async def create(self, actor: CurrentUser, tenant: Optional[Tenant], data: CompanyCreate) -> Company:
        if actor.is_super_admin:
            tenant_id = data.tenant_id or (tenant.id if tenant is not None else None)
            if tenant_id is None or await self.session.get(Tenant, tenant_id) is None:
                raise ValidationFailed(
                    "Tenant must be specified",
                    errors=[{"field": "tenant_id", "message": "Tenant not found", "value": str(tenant_id) if tenant_id else None}],
                )
        else:
            if data.tenant_id is not None and data.tenant_id != actor.tenant_id:
                raise AuthorizationError("Access denied. You can only access your tenant data")
            tenant_id = actor.tenant_id

        await self.ensure_email_available(data.email)
        values = data.model_dump(exclude={"tenant_id"})
        values["email"] = values["email"].lower()
        values["address"] = values.get("address") or {}
        company = Company(**values, tenant_id=tenant_id, created_by_id=actor.id)
        self.session.add(company)
        await self.session.commit()
        await self.session.refresh(company)
        logger.info("company_created", company_id=str(company.id), tenant_id=str(tenant_id), created_by=str(actor.id))
        return company

    async def update(self, actor: CurrentUser, company_id: uuid.UUID, data: CompanyUpdate) -> Company:
        company = await self.get(actor, company_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("email") and changes["email"].lower() != company.email:
            await self.ensure_email_available(changes["email"], exclude_id=company.id)
            changes["email"] = changes["email"].lower()
        if "address" in changes:
            changes["address"] = changes["address"] or {}

        for key, value in changes.items():
            setattr(company, key, value)
        company.updated_at = datetime.utcnow()
        self.session.add(company)
        await self.session.commit()
        await self.session.refresh(company)
        logger.info("company_updated", company_id=str(company.id), updated_by=str(actor.id))
        return company

    async def update_plan(self, actor: CurrentUser, company_id: uuid.UUID, data: CompanyPlanUpdate) -> Company:
        company = await self.get(actor, company_id)
        if data.max_users is not None and data.max_users < company.current_users:
            raise ValidationFailed(
                "max_users cannot be lower than the current number of users",
                errors=[{"field": "max_users", "message": f"Company has {company.current_users} active users",
                         "value": data.max_users}],
            )
        company.plan = data.plan
        if data.max_users is not None:
            company.max_users = data.max_users
        if data.subscription_end is not None:
            company.subscription_end = data.subscription_end
        company.updated_at = datetime.utcnow()
        self.session.add(company)
        await self.session.commit()
        await self.session.refresh(company)
        logger.info("company_plan_updated", company_id=str(company.id), plan=company.plan.value)
        return company

    async def delete(self, actor: CurrentUser, company_id: uuid.UUID) -> None:
        company = await self.get(actor, company_id)

        active_users = (await self.session.execute(
            select(func.count()).select_from(User).where(User.company_id == company.id, User.is_active == True)  # noqa: E712
        )).scalar_one()
        if active_users:
            raise ConflictError("Cannot delete company with active users. Deactivate users first.")

        # Remaining records stay in the tenant without a company
        for model in (User, Client, Lead):
            await self.session.execute(
                update(model).where(model.company_id == company.id).values(company_id=None)
                .execution_options(synchronize_session=False)
            )
        await self.session.delete(company)
        await self.session.commit()
        logger.info("company_deleted", company_id=str(company_id), deleted_by=str(actor.id))
