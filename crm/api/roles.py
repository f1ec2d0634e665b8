"""
Roles API endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict

from crm.core.database import get_session
from crm.core.dependencies import require_permission
from crm.core.permissions import CurrentUser, Permission
from crm.models.role import Role
from crm.services.roles import list_roles

router = APIRouter()


def _role_data(role: Role) -> Dict[str, Any]:
    return {
        "id": str(role.id),
        "name": role.name.value,
        "display_name": role.display_name,
        "description": role.description,
        "permissions": role.permissions,
        "is_system_role": role.is_system_role,
    }


@router.get("")
async def get_roles(
    current_user: CurrentUser = Depends(require_permission(Permission.READ_USERS)),
    session: AsyncSession = Depends(get_session),
):
    """Roles the caller can see; super_admin is hidden from everyone else"""
    roles = await list_roles(session, current_user)
    return {"success": True, "count": len(roles), "data": [_role_data(r) for r in roles]}
