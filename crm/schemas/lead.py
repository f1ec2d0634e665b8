"""
Pydantic schemas for leads
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
import uuid

from crm.models.lead import ActivityStatus, ActivityType, LeadPriority, LeadStatus
from crm.schemas.client import ContactCreate, ContactResponse, ContactUpdate


class LeadCreate(ContactCreate):
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.MEDIUM
    estimated_value: float = Field(default=0, ge=0)
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    expected_close_date: Optional[datetime] = None


class LeadUpdate(ContactUpdate):
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None
    estimated_value: Optional[float] = Field(default=None, ge=0)
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    expected_close_date: Optional[datetime] = None


class ActivityCreate(BaseModel):
    type: ActivityType
    subject: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    status: ActivityStatus = ActivityStatus.SCHEDULED


class LeadResponse(ContactResponse):
    status: LeadStatus
    priority: LeadPriority
    estimated_value: float
    probability: int
    expected_close_date: Optional[datetime] = None
    activities: List[Dict[str, Any]] = []
    converted_to_client: bool
    converted_at: Optional[datetime] = None
    client_id: Optional[uuid.UUID] = None
