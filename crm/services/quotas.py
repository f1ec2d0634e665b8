"""
User seat accounting for tenants and companies

Counters only move through conditional UPDATE statements so that two
concurrent requests can never push current_users past max_users. The caller
owns the transaction: a failure leaves the session to be rolled back, which
also undoes any increment made earlier in the same request.
"""

from typing import Optional
import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from crm.core.exceptions import QuotaExceededError
from crm.models.company import Company
from crm.models.tenant import Tenant

logger = structlog.get_logger(__name__)


async def _increment(session: AsyncSession, model, record_id: uuid.UUID) -> bool:
    result = await session.execute(
        update(model)
        .where(model.id == record_id, model.current_users < model.max_users)
        .values(current_users=model.current_users + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _decrement(session: AsyncSession, model, record_id: uuid.UUID) -> bool:
    result = await session.execute(
        update(model)
        .where(model.id == record_id, model.current_users > 0)
        .values(current_users=model.current_users - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def reserve_company_seat(session: AsyncSession, company_id: uuid.UUID) -> None:
    if not await _increment(session, Company, company_id):
        logger.warning("company_user_limit_reached", company_id=str(company_id))
        raise QuotaExceededError(
            "Company user limit reached. Please upgrade the company plan.",
            scope="company",
        )


async def release_company_seat(session: AsyncSession, company_id: uuid.UUID) -> None:
    if not await _decrement(session, Company, company_id):
        logger.warning("company_user_counter_already_zero", company_id=str(company_id))


async def reserve_user_seat(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = None,
) -> None:
    """
    Take one user seat from the tenant and, if given, the company.

    Raises:
        QuotaExceededError: tenant or company is already at max_users
    """
    if not await _increment(session, Tenant, tenant_id):
        logger.warning("tenant_user_limit_reached", tenant_id=str(tenant_id))
        raise QuotaExceededError(
            "User limit reached for your current plan. Please upgrade to add more users.",
            scope="tenant",
        )
    if company_id is not None:
        await reserve_company_seat(session, company_id)


async def release_user_seat(
    session: AsyncSession,
    tenant_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = None,
) -> None:
    """Give back one user seat; counters never go below zero"""
    if not await _decrement(session, Tenant, tenant_id):
        logger.warning("tenant_user_counter_already_zero", tenant_id=str(tenant_id))
    if company_id is not None:
        await release_company_seat(session, company_id)
