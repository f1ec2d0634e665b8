"""
Database models
"""

from crm.models.tenant import Tenant, TenantStatus, TenantPlan
from crm.models.company import Company, CompanyPlan
from crm.models.role import Role
from crm.models.user import User
from crm.models.contact import ContactSource
from crm.models.client import Client, ClientStatus
from crm.models.lead import (
    Lead,
    LeadStatus,
    LeadPriority,
    ActivityType,
    ActivityStatus,
    STATUS_PROBABILITY,
)

__all__ = [
    "Tenant",
    "TenantStatus",
    "TenantPlan",
    "Company",
    "CompanyPlan",
    "Role",
    "User",
    "ContactSource",
    "Client",
    "ClientStatus",
    "Lead",
    "LeadStatus",
    "LeadPriority",
    "ActivityType",
    "ActivityStatus",
    "STATUS_PROBABILITY",
]
