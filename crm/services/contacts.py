"""
Scoped CRUD shared by clients and leads
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import uuid

from sqlalchemy import String, cast, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
import structlog

from crm.core.exceptions import AuthorizationError
from crm.core.permissions import CurrentUser, RoleName
from crm.models.client import Client
from crm.models.lead import Lead
from crm.models.tenant import Tenant
from crm.schemas.common import PageParams
from crm.services.assignments import validate_assignee
from crm.services.scoping import apply_scope, get_company_in_tenant, get_scoped, resolve_owner

logger = structlog.get_logger(__name__)


class ContactFilters:
    """Listing filters common to clients and leads"""

    def __init__(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        assigned_to: Optional[uuid.UUID] = None,
        tags: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        overdue: bool = False,
        company_id: Optional[uuid.UUID] = None,
    ):
        self.search = search
        self.status = status
        self.assigned_to = assigned_to
        self.tags = [t.strip() for t in tags.split(",") if t.strip()] if tags else []
        self.created_from = created_from
        self.created_to = created_to
        self.overdue = overdue
        self.company_id = company_id


class ContactService:
    """CRUD for a contact-like model, always inside the actor's scope"""

    model = Client
    label = "client"

    def __init__(self, session: AsyncSession):
        self.session = session

    def filter_statement(self, statement, filters: ContactFilters):
        model = self.model
        if filters.search:
            pattern = f"%{filters.search.lower()}%"
            statement = statement.where(or_(
                func.lower(model.first_name).like(pattern),
                func.lower(model.last_name).like(pattern),
                func.lower(model.email).like(pattern),
                func.lower(model.company_name).like(pattern),
            ))
        if filters.status:
            statement = statement.where(model.status == filters.status)
        if filters.assigned_to:
            statement = statement.where(model.assigned_to_id == filters.assigned_to)
        if filters.tags:
            # JSON arrays serialize as ["a", "b"] on both SQLite and PostgreSQL
            tags_text = cast(model.tags, String)
            statement = statement.where(or_(*[tags_text.like(f'%"{tag}"%') for tag in filters.tags]))
        if filters.created_from:
            statement = statement.where(model.created_at >= filters.created_from)
        if filters.created_to:
            statement = statement.where(model.created_at <= filters.created_to)
        if filters.overdue:
            statement = statement.where(*self.overdue_conditions())
        return statement

    def overdue_conditions(self):
        return [self.model.next_follow_up < datetime.utcnow()]

    async def list(
        self,
        actor: CurrentUser,
        tenant: Optional[Tenant],
        params: PageParams,
        filters: ContactFilters,
    ) -> Tuple[List[Any], int]:
        statement = apply_scope(select(self.model), self.model, actor, tenant, filters.company_id)
        statement = self.filter_statement(statement, filters)

        total = (await self.session.execute(
            select(func.count()).select_from(statement.subquery())
        )).scalar_one()
        result = await self.session.execute(
            statement.order_by(self.model.created_at.desc()).offset(params.offset).limit(params.limit)
        )
        return list(result.scalars().all()), total

    async def get(self, actor: CurrentUser, record_id: uuid.UUID):
        return await get_scoped(self.session, self.model, record_id, actor, self.label)

    async def create(self, actor: CurrentUser, tenant: Optional[Tenant], data) -> Any:
        tenant_id, company_id = await resolve_owner(self.session, actor, tenant, data.company_id, data.tenant_id)
        await validate_assignee(self.session, data.assigned_to_id, tenant_id)

        values = data.model_dump(exclude={"tenant_id", "company_id", "probability"})
        values["address"] = values.get("address") or {}
        values["email"] = values["email"].lower()
        record = self.model(
            **values,
            tenant_id=tenant_id,
            company_id=company_id,
            created_by_id=actor.id,
        )
        self.prepare_new(record, data)

        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        logger.info(f"{self.label}_created", record_id=str(record.id), tenant_id=str(tenant_id), created_by=str(actor.id))
        return record

    def prepare_new(self, record, data) -> None:
        """Hook for model specific defaults"""

    def apply_changes(self, record, changes: Dict[str, Any]) -> None:
        for key, value in changes.items():
            setattr(record, key, value)

    async def move_to_company(self, actor: CurrentUser, record, company_id: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
        """Company-bound users cannot move records out of their company"""
        company_bound = (
            not actor.is_super_admin
            and actor.role != RoleName.TENANT_ADMIN
            and actor.company_id is not None
        )
        if company_bound and company_id != actor.company_id:
            raise AuthorizationError("Access denied. You can only access your company data")
        if company_id is not None:
            await get_company_in_tenant(self.session, company_id, record.tenant_id)
        return company_id

    async def update(self, actor: CurrentUser, record_id: uuid.UUID, data) -> Any:
        record = await self.get(actor, record_id)
        changes = data.model_dump(exclude_unset=True)

        if "company_id" in changes and changes["company_id"] != record.company_id:
            changes["company_id"] = await self.move_to_company(actor, record, changes["company_id"])
        if "assigned_to_id" in changes:
            await validate_assignee(self.session, changes["assigned_to_id"], record.tenant_id)
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
        if "address" in changes:
            changes["address"] = changes["address"] or {}

        self.apply_changes(record, changes)
        record.updated_at = datetime.utcnow()
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        logger.info(f"{self.label}_updated", record_id=str(record.id), updated_by=str(actor.id))
        return record

    async def delete(self, actor: CurrentUser, record_id: uuid.UUID) -> None:
        record = await self.get(actor, record_id)
        await self.session.delete(record)
        await self.session.commit()
        logger.info(f"{self.label}_deleted", record_id=str(record_id), deleted_by=str(actor.id))

    async def add_note(self, actor: CurrentUser, record_id: uuid.UUID, content: str, is_private: bool = False):
        record = await self.get(actor, record_id)
        record.add_note(content, actor.id, is_private)
        record.updated_at = datetime.utcnow()
        self.session.add(record)
        await self.session.commit()
        await self.session.refresh(record)
        return record


class ClientService(ContactService):
    model = Client
    label = "client"

    async def delete(self, actor: CurrentUser, record_id: uuid.UUID) -> None:
        record = await self.get(actor, record_id)
        # Leads converted into this client keep their history but lose the link
        await self.session.execute(
            update(Lead).where(Lead.client_id == record.id).values(client_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(record)
        await self.session.commit()
        logger.info("client_deleted", record_id=str(record_id), deleted_by=str(actor.id))
