"""
Tenant model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from enum import Enum
import uuid

from crm.core.config import get_settings

DEFAULT_FEATURES = {
    "custom_branding": False,
    "api_access": False,
    "advanced_reporting": False,
    "integrations": False,
    "custom_fields": True,
    "email_templates": True,
}

DEFAULT_SETTINGS = {
    "timezone": "UTC",
    "currency": "USD",
    "date_format": "MM/DD/YYYY",
    "language": "en",
}


class TenantStatus(str, Enum):
    """Lifecycle status of a tenant account"""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    TRIAL_EXPIRED = "trial_expired"


class TenantPlan(str, Enum):
    TRIAL = "trial"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"
    CUSTOM = "custom"


class Tenant(SQLModel, table=True):
    """Tenant model for multi-tenant architecture"""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True, max_length=100)
    subdomain: str = Field(unique=True, index=True, max_length=30, description="Unique tenant identifier for subdomain routing")
    email: str = Field(unique=True, index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Dict[str, Any]] = Field(default_factory=dict, sa_column=Column(JSON))

    # Subscription
    status: TenantStatus = Field(default=TenantStatus.ACTIVE, index=True)
    plan: TenantPlan = Field(default=TenantPlan.TRIAL, index=True)

    # Quotas
    max_users: int = Field(default=5, ge=1)
    current_users: int = Field(default=0, ge=0)
    max_storage: int = Field(default=1000, ge=100, description="Storage quota in MB")
    current_storage: int = Field(default=0, ge=0)

    features: Dict[str, bool] = Field(default_factory=lambda: dict(DEFAULT_FEATURES), sa_column=Column(JSON))
    settings: Dict[str, Any] = Field(default_factory=lambda: dict(DEFAULT_SETTINGS), sa_column=Column(JSON))

    # Trial and billing window
    trial_start: datetime = Field(default_factory=datetime.utcnow)
    trial_end: datetime = Field(default_factory=lambda: datetime.utcnow() + timedelta(days=get_settings().TRIAL_DAYS))
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None

    admin_user_id: Optional[uuid.UUID] = Field(default=None, description="Tenant administrator created at registration")
    last_activity_at: datetime = Field(default_factory=datetime.utcnow)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def is_trial_active(self) -> bool:
        return self.plan == TenantPlan.TRIAL and self.trial_end > datetime.utcnow()

    @property
    def is_trial_expired(self) -> bool:
        return self.plan == TenantPlan.TRIAL and self.trial_end <= datetime.utcnow()

    @property
    def trial_days_remaining(self) -> int:
        if self.plan != TenantPlan.TRIAL:
            return 0
        remaining = self.trial_end - datetime.utcnow()
        if remaining.total_seconds() <= 0:
            return 0
        # Partial days count as a full day
        return remaining.days + (1 if remaining.seconds or remaining.microseconds else 0)

    @property
    def user_usage_percentage(self) -> int:
        return round(self.current_users / self.max_users * 100) if self.max_users else 0

    @property
    def storage_usage_percentage(self) -> int:
        return round(self.current_storage / self.max_storage * 100) if self.max_storage else 0

    def can_add_user(self) -> bool:
        return self.current_users < self.max_users

    def can_add_storage(self, additional_mb: int = 0) -> bool:
        return self.current_storage + additional_mb <= self.max_storage

    def has_feature(self, name: str) -> bool:
        return bool((self.features or {}).get(name, False))
