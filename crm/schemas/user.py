"""
Pydantic schemas for users
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Any, Dict, Optional
from datetime import datetime
import re
import uuid

from crm.core.permissions import RoleName

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")


def normalize_subdomain(value: str) -> str:
    value = value.strip().lower()
    if not SUBDOMAIN_PATTERN.match(value):
        raise ValueError("Subdomain can only contain lowercase letters, numbers and hyphens")
    return value


class RegisterRequest(BaseModel):
    """Self-service signup: new tenant, optional company, tenant admin"""
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    tenant_name: str = Field(..., min_length=1, max_length=100)
    subdomain: str = Field(..., min_length=2, max_length=30)
    company_name: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = None

    @field_validator("subdomain")
    @classmethod
    def check_subdomain(cls, value: str) -> str:
        return normalize_subdomain(value)


class LoginRequest(BaseModel):
    """User login schema"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)


class UserCreate(BaseModel):
    """Admin-created user"""
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    role: RoleName = RoleName.USER
    company_id: Optional[uuid.UUID] = None
    tenant_id: Optional[uuid.UUID] = Field(default=None, description="Only honoured for super_admin")
    is_active: bool = True


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    role: Optional[RoleName] = None
    company_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None
    preferences: Optional[Dict[str, Any]] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50)
    preferences: Optional[Dict[str, Any]] = None


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=100)


class UserResponse(BaseModel):
    """User response model"""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: RoleName
    tenant_id: uuid.UUID
    company_id: Optional[uuid.UUID] = None
    is_active: bool
    email_verified: bool
    preferences: Optional[Dict[str, Any]] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None
