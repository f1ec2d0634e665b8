"""
Client model
"""

from sqlmodel import Field
from enum import Enum

from crm.models.contact import ContactBase


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    POTENTIAL = "potential"
    LOST = "lost"


class Client(ContactBase, table=True):
    """Customer record owned by a tenant"""

    __tablename__ = "clients"

    status: ClientStatus = Field(default=ClientStatus.POTENTIAL, index=True)
    value: float = Field(default=0, ge=0)
