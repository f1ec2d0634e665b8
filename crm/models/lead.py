"""
Lead model with pipeline state and one-time conversion
"""

from sqlmodel import Field
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum
import uuid

from sqlalchemy import JSON

from crm.models.contact import ContactBase


class LeadStatus(str, Enum):
    """Pipeline stage of a lead"""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ActivityType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    DEMO = "demo"
    PROPOSAL = "proposal"
    FOLLOW_UP = "follow_up"
    OTHER = "other"


class ActivityStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


STATUS_PROBABILITY = {
    LeadStatus.NEW: 10,
    LeadStatus.CONTACTED: 20,
    LeadStatus.QUALIFIED: 40,
    LeadStatus.PROPOSAL: 60,
    LeadStatus.NEGOTIATION: 80,
    LeadStatus.CLOSED_WON: 100,
    LeadStatus.CLOSED_LOST: 0,
}


class Lead(ContactBase, table=True):
    """Prospective client tracked through the sales pipeline"""

    __tablename__ = "leads"

    status: LeadStatus = Field(default=LeadStatus.NEW, index=True)
    priority: LeadPriority = Field(default=LeadPriority.MEDIUM, index=True)
    estimated_value: float = Field(default=0, ge=0)
    probability: int = Field(default=10, ge=0, le=100)
    expected_close_date: Optional[datetime] = Field(default=None, index=True)
    # Each activity: type, subject, description, scheduled_date, completed_date, status, created_by
    activities: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)

    converted_to_client: bool = Field(default=False, index=True)
    converted_at: Optional[datetime] = None
    client_id: Optional[uuid.UUID] = Field(default=None, foreign_key="clients.id", nullable=True)

    # State machine methods
    def set_status(self, status: LeadStatus) -> None:
        """Move to a pipeline stage; probability follows the stage"""
        status = LeadStatus(status)
        if status != self.status:
            self.probability = STATUS_PROBABILITY[status]
        self.status = status

    def add_activity(
        self,
        activity_type: ActivityType,
        subject: str,
        created_by: uuid.UUID,
        description: Optional[str] = None,
        scheduled_date: Optional[datetime] = None,
        completed_date: Optional[datetime] = None,
        status: ActivityStatus = ActivityStatus.SCHEDULED,
    ) -> Dict[str, Any]:
        status = ActivityStatus(status)
        if status == ActivityStatus.COMPLETED and completed_date is None:
            completed_date = datetime.utcnow()

        activity = {
            "id": str(uuid.uuid4()),
            "type": ActivityType(activity_type).value,
            "subject": subject,
            "description": description,
            "scheduled_date": scheduled_date.isoformat() if scheduled_date else None,
            "completed_date": completed_date.isoformat() if completed_date else None,
            "status": status.value,
            "created_by": str(created_by),
            "created_at": datetime.utcnow().isoformat(),
        }
        self.activities = [*(self.activities or []), activity]

        if status == ActivityStatus.COMPLETED:
            self.last_contact = completed_date
        return activity

    def can_convert(self) -> tuple[bool, str]:
        """Check if lead can be converted to a client"""
        if self.converted_to_client:
            return False, "Lead has already been converted to a client"
        return True, "Can convert"

    def mark_converted(self, client_id: uuid.UUID) -> None:
        self.converted_to_client = True
        self.converted_at = datetime.utcnow()
        self.client_id = client_id
        self.set_status(LeadStatus.CLOSED_WON)
