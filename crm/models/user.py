"""
User model with roles, tenant scoping and login lockout
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import uuid

from crm.core.permissions import RoleName


class User(SQLModel, table=True):
    """User model with tenant isolation"""

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Tenant ID for multi-tenant isolation")
    company_id: Optional[uuid.UUID] = Field(default=None, foreign_key="companies.id", index=True, nullable=True)

    # Authentication
    email: str = Field(unique=True, index=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)

    # Profile
    first_name: str = Field(nullable=False, max_length=50)
    last_name: str = Field(nullable=False, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50, nullable=True)
    preferences: Dict[str, Any] = Field(
        default_factory=lambda: {"theme": "light", "language": "en", "notifications": {"email": True, "push": True}},
        sa_column=Column(JSON),
    )

    # RBAC
    role: RoleName = Field(default=RoleName.USER, foreign_key="roles.name", index=True, nullable=False)

    # Status
    is_active: bool = Field(default=True, index=True)
    email_verified: bool = Field(default=False)

    # Lockout
    login_attempts: int = Field(default=0)
    lock_until: Optional[datetime] = None

    created_by_id: Optional[uuid.UUID] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    # Lockout state machine
    @property
    def is_locked(self) -> bool:
        """Locked while lock_until lies in the future"""
        return self.lock_until is not None and self.lock_until > datetime.utcnow()

    def register_failed_login(self, max_attempts: int, lock_minutes: int) -> bool:
        """
        Record a failed password check.

        An expired lock restarts the count at 1. Reaching max_attempts sets
        lock_until. Returns True when this attempt locked the account.
        """
        now = datetime.utcnow()
        if self.lock_until is not None and self.lock_until <= now:
            self.login_attempts = 1
            self.lock_until = None
            return False

        self.login_attempts = (self.login_attempts or 0) + 1
        if self.login_attempts >= max_attempts and not self.is_locked:
            self.lock_until = now + timedelta(minutes=lock_minutes)
            return True
        return False

    def reset_login_attempts(self) -> None:
        self.login_attempts = 0
        self.lock_until = None
