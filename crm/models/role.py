"""
Role model - reference data seeded at startup
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import List, Optional
import uuid

from crm.core.permissions import RoleName


class Role(SQLModel, table=True):
    """Named role carrying an ordered permission list"""

    __tablename__ = "roles"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: RoleName = Field(unique=True, index=True)
    display_name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    permissions: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_system_role: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
