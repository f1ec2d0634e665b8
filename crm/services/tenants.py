"""
Tenant provisioning, lifecycle, settings and usage
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import uuid

from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
import structlog

from crm.core.auth import hash_password
from crm.core.exceptions import ConflictError, NotFoundError, StateError, ValidationFailed
from crm.core.permissions import CurrentUser, RoleName
from crm.models.client import Client
from crm.models.company import Company
from crm.models.lead import Lead
from crm.models.tenant import Tenant, TenantPlan, TenantStatus
from crm.models.user import User
from crm.schemas.common import PageParams
from crm.schemas.tenant import LimitCheck, TenantCreate, TenantSettingsUpdate, TenantUpdate
from crm.services import quotas
from crm.services.users import UserService

logger = structlog.get_logger(__name__)


class TenantService:
    """Tenant operations; everything but settings/usage is super_admin only"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, tenant_id: uuid.UUID) -> Tenant:
        tenant = await self.session.get(Tenant, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant not found")
        return tenant

    async def list(
        self,
        params: PageParams,
        search: Optional[str] = None,
        status: Optional[TenantStatus] = None,
        plan: Optional[TenantPlan] = None,
    ) -> Tuple[List[Tenant], int]:
        statement = select(Tenant)
        if search:
            pattern = f"%{search.lower()}%"
            statement = statement.where(or_(
                func.lower(Tenant.name).like(pattern),
                func.lower(Tenant.subdomain).like(pattern),
                func.lower(Tenant.email).like(pattern),
            ))
        if status is not None:
            statement = statement.where(Tenant.status == status)
        if plan is not None:
            statement = statement.where(Tenant.plan == plan)

        total = (await self.session.execute(
            select(func.count()).select_from(statement.subquery())
        )).scalar_one()
        result = await self.session.execute(
            statement.order_by(Tenant.created_at.desc()).offset(params.offset).limit(params.limit)
        )
        return list(result.scalars().all()), total

    async def create(self, actor: CurrentUser, data: TenantCreate) -> Tuple[Tenant, User]:
        """Provision a tenant together with its tenant_admin"""
        result = await self.session.execute(
            select(Tenant).where(or_(Tenant.subdomain == data.subdomain, Tenant.email == data.email.lower()))
        )
        if result.scalars().first() is not None:
            raise ConflictError("Tenant with this subdomain or email already exists", code="DUPLICATE_VALUE")
        await UserService(self.session).ensure_email_available(data.admin_email)

        values = data.model_dump(exclude={"admin_first_name", "admin_last_name", "admin_email", "admin_password"})
        values["email"] = values["email"].lower()
        values["address"] = values.get("address") or {}
        tenant = Tenant(**values)
        self.session.add(tenant)
        await self.session.flush()

        admin = User(
            tenant_id=tenant.id,
            email=data.admin_email.lower(),
            password_hash=hash_password(data.admin_password),
            first_name=data.admin_first_name,
            last_name=data.admin_last_name,
            role=RoleName.TENANT_ADMIN,
            created_by_id=actor.id,
        )
        self.session.add(admin)
        await self.session.flush()
        await quotas.reserve_user_seat(self.session, tenant.id)

        tenant.admin_user_id = admin.id
        await self.session.commit()
        await self.session.refresh(tenant)
        await self.session.refresh(admin)
        logger.info("tenant_created", tenant_id=str(tenant.id), subdomain=tenant.subdomain, created_by=str(actor.id))
        return tenant, admin

    async def update(self, tenant_id: uuid.UUID, data: TenantUpdate) -> Tenant:
        tenant = await self.get(tenant_id)
        changes = data.model_dump(exclude_unset=True)

        if "max_users" in changes and changes["max_users"] is not None and changes["max_users"] < tenant.current_users:
            raise ValidationFailed(
                "max_users cannot be lower than the current number of users",
                errors=[{"field": "max_users", "message": f"Tenant has {tenant.current_users} active users",
                         "value": changes["max_users"]}],
            )
        if changes.get("email") and changes["email"].lower() != tenant.email:
            result = await self.session.execute(select(Tenant).where(Tenant.email == changes["email"].lower()))
            if result.scalars().first() is not None:
                raise ConflictError("Tenant with this email already exists", code="DUPLICATE_VALUE")
            changes["email"] = changes["email"].lower()
        if "features" in changes and changes["features"] is not None:
            changes["features"] = {**(tenant.features or {}), **changes["features"]}
        if "address" in changes:
            changes["address"] = changes["address"] or {}

        for key, value in changes.items():
            setattr(tenant, key, value)
        tenant.updated_at = datetime.utcnow()
        self.session.add(tenant)
        await self.session.commit()
        await self.session.refresh(tenant)
        logger.info("tenant_updated", tenant_id=str(tenant.id), fields=sorted(changes))
        return tenant

    async def set_status(self, tenant_id: uuid.UUID, status: TenantStatus, reason: Optional[str] = None) -> Tenant:
        tenant = await self.get(tenant_id)
        if tenant.status == status:
            raise StateError(f"Tenant is already {status.value}")
        tenant.status = status
        tenant.updated_at = datetime.utcnow()
        self.session.add(tenant)
        await self.session.commit()
        await self.session.refresh(tenant)
        logger.info("tenant_status_changed", tenant_id=str(tenant.id), status=status.value, reason=reason)
        return tenant

    async def delete(self, tenant_id: uuid.UUID) -> None:
        """Remove the tenant and everything it owns"""
        tenant = await self.get(tenant_id)
        for model in (Lead, Client, User, Company):
            await self.session.execute(
                delete(model).where(model.tenant_id == tenant.id).execution_options(synchronize_session=False)
            )
        await self.session.delete(tenant)
        await self.session.commit()
        logger.info("tenant_deleted", tenant_id=str(tenant_id))

    async def update_settings(self, tenant: Tenant, data: TenantSettingsUpdate) -> Tenant:
        changes = data.model_dump(exclude_unset=True)
        if "settings" in changes and changes["settings"] is not None:
            changes["settings"] = {**(tenant.settings or {}), **changes["settings"]}
        if "address" in changes:
            changes["address"] = changes["address"] or {}
        for key, value in changes.items():
            setattr(tenant, key, value)
        tenant.updated_at = datetime.utcnow()
        self.session.add(tenant)
        await self.session.commit()
        await self.session.refresh(tenant)
        return tenant

    async def usage(self, tenant: Tenant) -> Dict[str, Any]:
        await self.session.refresh(tenant)
        counts = {}
        for key, model in (("companies", Company), ("clients", Client), ("leads", Lead)):
            counts[key] = (await self.session.execute(
                select(func.count()).select_from(model).where(model.tenant_id == tenant.id)
            )).scalar_one()
        return {
            "users": {
                "current": tenant.current_users,
                "limit": tenant.max_users,
                "percentage": tenant.user_usage_percentage,
            },
            "storage": {
                "current": tenant.current_storage,
                "limit": tenant.max_storage,
                "percentage": tenant.storage_usage_percentage,
            },
            "records": counts,
            "plan": tenant.plan.value,
            "trial_days_remaining": tenant.trial_days_remaining,
        }

    async def check_limit(self, tenant: Tenant, data: LimitCheck) -> Dict[str, Any]:
        await self.session.refresh(tenant)
        if data.type == "users":
            allowed = tenant.current_users + data.amount <= tenant.max_users
            current, limit = tenant.current_users, tenant.max_users
        else:
            allowed = tenant.can_add_storage(data.amount)
            current, limit = tenant.current_storage, tenant.max_storage
        return {"type": data.type, "allowed": allowed, "current": current, "limit": limit, "requested": data.amount}
