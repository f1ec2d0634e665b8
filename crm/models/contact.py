"""
Fields shared by clients and leads
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import JSON
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum
import uuid


class ContactSource(str, Enum):
    WEBSITE = "website"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social_media"
    EMAIL_CAMPAIGN = "email_campaign"
    COLD_CALL = "cold_call"
    TRADE_SHOW = "trade_show"
    ADVERTISEMENT = "advertisement"
    OTHER = "other"


class ContactBase(SQLModel):
    """Columns common to Client and Lead tables"""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Tenant ID for multi-tenant isolation")
    company_id: Optional[uuid.UUID] = Field(default=None, foreign_key="companies.id", index=True, nullable=True)

    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    email: str = Field(index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=100)
    job_title: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = None
    address: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)

    source: ContactSource = Field(default=ContactSource.OTHER)
    currency: str = Field(default="USD", max_length=3)
    assigned_to_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True, nullable=True)

    tags: List[str] = Field(default_factory=list, sa_type=JSON)
    # Each note: content, created_by, created_at, is_private
    notes: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = Field(default=None, index=True)
    social_media: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    # Each field: name, value, type
    custom_fields: List[Dict[str, Any]] = Field(default_factory=list, sa_type=JSON)

    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: Optional[datetime] = None

    def add_note(self, content: str, created_by: uuid.UUID, is_private: bool = False) -> Dict[str, Any]:
        note = {
            "id": str(uuid.uuid4()),
            "content": content,
            "created_by": str(created_by),
            "created_at": datetime.utcnow().isoformat(),
            "is_private": is_private,
        }
        # Reassign so the JSON column is flagged dirty
        self.notes = [*(self.notes or []), note]
        return note
