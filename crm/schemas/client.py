"""
Pydantic schemas for clients, plus the contact fields shared with leads
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr
from typing import Any, Dict, List, Optional
from datetime import datetime
import uuid

from crm.models.client import ClientStatus
from crm.models.contact import ContactSource
from crm.schemas.common import Address


class CustomField(BaseModel):
    name: str
    value: Any = None
    type: str = Field(default="text", pattern="^(text|number|date|boolean|select)$")


class ContactCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    company_id: Optional[uuid.UUID] = None
    company_name: Optional[str] = Field(default=None, max_length=100)
    job_title: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = None
    address: Optional[Address] = None
    source: ContactSource = ContactSource.OTHER
    currency: str = Field(default="USD", min_length=3, max_length=3)
    assigned_to_id: Optional[uuid.UUID] = None
    tags: List[str] = Field(default_factory=list)
    next_follow_up: Optional[datetime] = None
    social_media: Dict[str, Optional[str]] = Field(default_factory=dict)
    custom_fields: List[CustomField] = Field(default_factory=list)
    tenant_id: Optional[uuid.UUID] = Field(default=None, description="Only honoured for super_admin")


class ContactUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    company_id: Optional[uuid.UUID] = None
    company_name: Optional[str] = Field(default=None, max_length=100)
    job_title: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = None
    address: Optional[Address] = None
    source: Optional[ContactSource] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    assigned_to_id: Optional[uuid.UUID] = None
    tags: Optional[List[str]] = None
    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None
    social_media: Optional[Dict[str, Optional[str]]] = None
    custom_fields: Optional[List[CustomField]] = None


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    is_private: bool = False


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    company_id: Optional[uuid.UUID] = None
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    company_name: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    source: ContactSource
    currency: str
    assigned_to_id: Optional[uuid.UUID] = None
    tags: List[str] = []
    notes: List[Dict[str, Any]] = []
    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None
    social_media: Dict[str, Any] = {}
    custom_fields: List[Dict[str, Any]] = []
    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ClientCreate(ContactCreate):
    status: ClientStatus = ClientStatus.POTENTIAL
    value: float = Field(default=0, ge=0)


class ClientUpdate(ContactUpdate):
    status: Optional[ClientStatus] = None
    value: Optional[float] = Field(default=None, ge=0)


class ClientResponse(ContactResponse):
    status: ClientStatus
    value: float
