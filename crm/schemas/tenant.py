"""
Pydantic schemas for tenants
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Any, Dict, Literal, Optional
from datetime import datetime
import uuid

from crm.models.tenant import TenantPlan, TenantStatus
from crm.schemas.common import Address
from crm.schemas.user import normalize_subdomain


class TenantCreate(BaseModel):
    """Tenant provisioned by a super admin, with its first admin user"""
    name: str = Field(..., min_length=1, max_length=100)
    subdomain: str = Field(..., min_length=2, max_length=30)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Address] = None
    plan: TenantPlan = TenantPlan.TRIAL
    max_users: int = Field(default=5, ge=1)
    max_storage: int = Field(default=1000, ge=100)

    admin_first_name: str = Field(..., min_length=2, max_length=50)
    admin_last_name: str = Field(..., min_length=2, max_length=50)
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=6, max_length=100)

    @field_validator("subdomain")
    @classmethod
    def check_subdomain(cls, value: str) -> str:
        return normalize_subdomain(value)


class TenantUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Address] = None
    status: Optional[TenantStatus] = None
    plan: Optional[TenantPlan] = None
    max_users: Optional[int] = Field(default=None, ge=1)
    max_storage: Optional[int] = Field(default=None, ge=100)
    features: Optional[Dict[str, bool]] = None
    trial_end: Optional[datetime] = None
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None


class TenantSettingsUpdate(BaseModel):
    """Settings a tenant admin may change for their own tenant"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Address] = None
    settings: Optional[Dict[str, Any]] = None


class LimitCheck(BaseModel):
    type: Literal["users", "storage"]
    amount: int = Field(default=1, ge=0)


class TenantSuspend(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    subdomain: str
    email: str
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    status: TenantStatus
    plan: TenantPlan
    max_users: int
    current_users: int
    max_storage: int
    current_storage: int
    features: Dict[str, bool]
    settings: Dict[str, Any]
    trial_start: datetime
    trial_end: datetime
    is_trial_active: bool
    trial_days_remaining: int
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    admin_user_id: Optional[uuid.UUID] = None
    last_activity_at: datetime
    created_at: datetime
