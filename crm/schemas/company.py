"""
Pydantic schemas for companies
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr
from typing import Any, Dict, Optional
from datetime import datetime
import uuid

from crm.models.company import CompanyPlan
from crm.schemas.common import Address


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Address] = None
    plan: CompanyPlan = CompanyPlan.STARTER
    max_users: int = Field(default=5, ge=1)
    tenant_id: Optional[uuid.UUID] = Field(default=None, description="Only honoured for super_admin")


class CompanyUpdate(BaseModel):
    """tenant_id is deliberately absent: a company never changes tenant"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Address] = None
    is_active: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None


class CompanyPlanUpdate(BaseModel):
    plan: CompanyPlan
    max_users: Optional[int] = Field(default=None, ge=1)
    subscription_end: Optional[datetime] = None


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    plan: CompanyPlan
    max_users: int
    current_users: int
    is_active: bool
    subscription_start: datetime
    subscription_end: Optional[datetime] = None
    settings: Optional[Dict[str, Any]] = None
    created_at: datetime
