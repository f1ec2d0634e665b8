"""
System role seeding and lookup
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
import structlog

from crm.core.permissions import ROLE_DEFINITIONS, CurrentUser, RoleName
from crm.models.role import Role

logger = structlog.get_logger(__name__)


async def ensure_system_roles(session: AsyncSession) -> List[Role]:
    """
    Create missing system roles and resync the permissions of existing ones.

    Safe to run on every startup.
    """
    result = await session.execute(select(Role))
    existing = {role.name: role for role in result.scalars().all()}

    roles = []
    created = 0
    for name, definition in ROLE_DEFINITIONS.items():
        permissions = [p.value for p in definition["permissions"]]
        role = existing.get(name)
        if role is None:
            role = Role(
                name=name,
                display_name=definition["display_name"],
                description=definition["description"],
                permissions=permissions,
                is_system_role=True,
            )
            created += 1
        elif role.permissions != permissions:
            role.permissions = permissions
            role.updated_at = datetime.utcnow()
        session.add(role)
        roles.append(role)

    await session.commit()
    logger.info("system_roles_ready", created=created, total=len(roles))
    return roles


async def get_role(session: AsyncSession, name: RoleName) -> Optional[Role]:
    result = await session.execute(select(Role).where(Role.name == RoleName(name)))
    return result.scalars().first()


async def list_roles(session: AsyncSession, user: CurrentUser) -> List[Role]:
    """All roles; super_admin is only listed for super admins"""
    statement = select(Role).order_by(Role.name)
    if not user.is_super_admin:
        statement = statement.where(Role.name != RoleName.SUPER_ADMIN)
    result = await session.execute(statement)
    return list(result.scalars().all())
