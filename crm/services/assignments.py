"""
Assignee checks for clients and leads
"""

from typing import Optional
import uuid

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from crm.core.exceptions import ValidationFailed
from crm.core.permissions import RoleName
from crm.models.user import User

logger = structlog.get_logger(__name__)


def can_be_assigned(assignee: User, tenant_id: uuid.UUID) -> bool:
    """super_admin may be assigned anywhere; everyone else only inside their tenant"""
    return assignee.role == RoleName.SUPER_ADMIN or assignee.tenant_id == tenant_id


async def validate_assignee(
    session: AsyncSession,
    assignee_id: Optional[uuid.UUID],
    tenant_id: uuid.UUID,
) -> Optional[User]:
    """Must be called by every operation that writes assigned_to_id"""
    if assignee_id is None:
        return None

    assignee = await session.get(User, assignee_id)
    if assignee is None:
        raise ValidationFailed(
            "Assigned user not found",
            errors=[{"field": "assigned_to_id", "message": "User not found", "value": str(assignee_id)}],
        )
    if not can_be_assigned(assignee, tenant_id):
        logger.warning("cross_tenant_assignment_rejected", assignee_id=str(assignee_id), tenant_id=str(tenant_id))
        raise ValidationFailed(
            "Assigned user must belong to the same tenant",
            errors=[{"field": "assigned_to_id", "message": "User belongs to another tenant", "value": str(assignee_id)}],
        )
    return assignee
