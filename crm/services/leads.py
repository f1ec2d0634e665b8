"""
Lead pipeline: probability tracking, activities and conversion to client
"""

from datetime import datetime
import copy
from typing import Any, Dict, Optional, Tuple
import uuid

from sqlalchemy import update
import structlog

from crm.core.exceptions import StateError
from crm.core.permissions import CurrentUser
from crm.models.client import Client, ClientStatus
from crm.models.lead import Lead, LeadStatus, STATUS_PROBABILITY
from crm.models.user import User
from crm.schemas.lead import ActivityCreate
from crm.services.assignments import can_be_assigned
from crm.services.contacts import ContactFilters, ContactService

logger = structlog.get_logger(__name__)

# Columns copied verbatim from a lead onto the client it becomes
CONVERTED_FIELDS = (
    "tenant_id",
    "company_id",
    "first_name",
    "last_name",
    "email",
    "phone",
    "company_name",
    "job_title",
    "industry",
    "address",
    "source",
    "currency",
    "tags",
    "notes",
    "last_contact",
    "next_follow_up",
    "social_media",
    "custom_fields",
)


class LeadFilters(ContactFilters):

    def __init__(
        self,
        priority: Optional[str] = None,
        closing_from: Optional[datetime] = None,
        closing_to: Optional[datetime] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.priority = priority
        self.closing_from = closing_from
        self.closing_to = closing_to


class LeadService(ContactService):
    model = Lead
    label = "lead"

    def filter_statement(self, statement, filters: ContactFilters):
        statement = super().filter_statement(statement, filters)

        if isinstance(filters, LeadFilters):
            if filters.priority:
                statement = statement.where(Lead.priority == filters.priority)
            if filters.closing_from:
                statement = statement.where(Lead.expected_close_date >= filters.closing_from)
            if filters.closing_to:
                statement = statement.where(Lead.expected_close_date <= filters.closing_to)
        return statement

    def overdue_conditions(self):
        # Past the expected close date and still open
        return [
            Lead.expected_close_date < datetime.utcnow(),
            Lead.status.notin_([LeadStatus.CLOSED_WON, LeadStatus.CLOSED_LOST]),
        ]

    def prepare_new(self, lead: Lead, data) -> None:
        if data.probability is None:
            lead.probability = STATUS_PROBABILITY[lead.status]
        else:
            lead.probability = data.probability

    def apply_changes(self, lead: Lead, changes: Dict[str, Any]) -> None:
        status = changes.pop("status", None)
        probability = changes.pop("probability", None)
        super().apply_changes(lead, changes)
        if status is not None:
            lead.set_status(status)
        if probability is not None:
            lead.probability = probability

    async def add_activity(self, actor: CurrentUser, lead_id: uuid.UUID, data: ActivityCreate) -> Lead:
        lead = await self.get(actor, lead_id)
        lead.add_activity(
            data.type,
            data.subject,
            actor.id,
            description=data.description,
            scheduled_date=data.scheduled_date,
            completed_date=data.completed_date,
            status=data.status,
        )
        lead.updated_at = datetime.utcnow()
        self.session.add(lead)
        await self.session.commit()
        await self.session.refresh(lead)
        return lead

    async def convert(self, actor: CurrentUser, lead_id: uuid.UUID) -> Tuple[Lead, Client]:
        """
        Turn a lead into a client, exactly once.

        The client and the lead's conversion markers are committed together.
        An assignee who may not work in the lead's tenant is not carried over.
        """
        lead = await self.get(actor, lead_id)
        can_convert, reason = lead.can_convert()
        if not can_convert:
            logger.info("lead_conversion_rejected", lead_id=str(lead.id), reason=reason)
            raise StateError(reason, code="LEAD_ALREADY_CONVERTED")

        values = {field: copy.deepcopy(getattr(lead, field)) for field in CONVERTED_FIELDS}
        client = Client(
            **values,
            status=ClientStatus.ACTIVE,
            value=lead.estimated_value,
            created_by_id=actor.id,
        )

        if lead.assigned_to_id is not None:
            assignee = await self.session.get(User, lead.assigned_to_id)
            if assignee is not None and can_be_assigned(assignee, lead.tenant_id):
                client.assigned_to_id = assignee.id
            else:
                logger.info("lead_assignee_dropped", lead_id=str(lead.id), assignee_id=str(lead.assigned_to_id))

        self.session.add(client)
        await self.session.flush()

        # Only one conversion can flip the flag
        claimed = await self.session.execute(
            update(Lead)
            .where(Lead.id == lead.id, Lead.converted_to_client == False)  # noqa: E712
            .values(converted_to_client=True)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            await self.session.rollback()
            raise StateError("Lead has already been converted to a client", code="LEAD_ALREADY_CONVERTED")

        lead.mark_converted(client.id)
        lead.updated_at = datetime.utcnow()
        self.session.add(lead)
        await self.session.commit()
        await self.session.refresh(lead)
        await self.session.refresh(client)

        logger.info("lead_converted", lead_id=str(lead.id), client_id=str(client.id), converted_by=str(actor.id))
        return lead, client
