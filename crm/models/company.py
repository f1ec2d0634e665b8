"""
Company model - optional subdivision of a tenant
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum
import uuid


class CompanyPlan(str, Enum):
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class Company(SQLModel, table=True):
    """Company within a tenant; users, clients and leads may belong to one"""

    __tablename__ = "companies"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Tenant ID for multi-tenant isolation")

    name: str = Field(index=True, max_length=100)
    email: str = Field(unique=True, index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[Dict[str, Any]] = Field(default_factory=dict, sa_column=Column(JSON))

    plan: CompanyPlan = Field(default=CompanyPlan.STARTER)
    max_users: int = Field(default=5, ge=1)
    current_users: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True, index=True)

    subscription_start: datetime = Field(default_factory=datetime.utcnow)
    subscription_end: Optional[datetime] = None
    settings: Dict[str, Any] = Field(
        default_factory=lambda: {"timezone": "UTC", "currency": "USD", "date_format": "MM/DD/YYYY"},
        sa_column=Column(JSON),
    )

    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
