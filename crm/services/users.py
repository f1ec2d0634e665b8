"""
User administration: create, update, soft delete, reactivate and list
"""

from datetime import datetime
from typing import List, Optional, Tuple
import uuid

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
import structlog

from crm.core.auth import hash_password
from crm.core.exceptions import AuthorizationError, ConflictError, NotFoundError, StateError, ValidationFailed
from crm.core.permissions import ROLE_RANK, CurrentUser, RoleName, can_assign_role, same_scope
from crm.models.tenant import Tenant
from crm.models.user import User
from crm.schemas.common import PageParams
from crm.schemas.user import UserCreate, UserUpdate
from crm.services import quotas
from crm.services.roles import get_role
from crm.services.scoping import apply_scope, get_company_in_tenant, resolve_owner

logger = structlog.get_logger(__name__)

# Roles that may edit other accounts inside their scope
EDITOR_ROLES = frozenset({RoleName.TENANT_ADMIN, RoleName.COMPANY_ADMIN, RoleName.MANAGER})
# Roles that may deactivate other accounts inside their scope
DELETER_ROLES = frozenset({RoleName.TENANT_ADMIN, RoleName.COMPANY_ADMIN})
# Fields only privileged roles may change
SENSITIVE_FIELDS = ("role", "company_id", "is_active")


def _outranks(actor: CurrentUser, target: User) -> bool:
    """True when target holds a role above the actor's"""
    return not actor.is_super_admin and ROLE_RANK[target.role] > ROLE_RANK[actor.role]


class UserService:
    """User lifecycle with seat accounting and write authorization"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email.lower()))
        return result.scalars().first()

    async def ensure_email_available(self, email: str, exclude_id: Optional[uuid.UUID] = None) -> None:
        existing = await self.get_by_email(email)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError("User with this email already exists", code="DUPLICATE_VALUE")

    async def get_user(self, actor: CurrentUser, user_id: uuid.UUID) -> User:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.id != actor.id and not same_scope(actor, user.tenant_id, user.company_id):
            logger.warning("scope_denied", user_id=str(actor.id), resource="user", resource_id=str(user_id))
            raise AuthorizationError("Access denied")
        return user

    async def list_users(
        self,
        actor: CurrentUser,
        tenant: Optional[Tenant],
        params: PageParams,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        role: Optional[RoleName] = None,
        tenant_id: Optional[uuid.UUID] = None,
        company_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[User], int]:
        allow_override = False
        if company_id is not None and not actor.is_super_admin:
            # Requested company must live in the actor's tenant
            await get_company_in_tenant(self.session, company_id, actor.tenant_id)
            allow_override = actor.role == RoleName.COMPANY_ADMIN

        if tenant_id is not None and not actor.is_super_admin and tenant_id != actor.tenant_id:
            raise AuthorizationError("Access denied. You can only access your tenant data")

        statement = apply_scope(select(User), User, actor, tenant, company_id, allow_override)
        if actor.is_super_admin and tenant_id is not None:
            statement = statement.where(User.tenant_id == tenant_id)
        if search:
            pattern = f"%{search.lower()}%"
            statement = statement.where(or_(
                func.lower(User.first_name).like(pattern),
                func.lower(User.last_name).like(pattern),
                func.lower(User.email).like(pattern),
            ))
        if is_active is not None:
            statement = statement.where(User.is_active == is_active)
        if role is not None:
            statement = statement.where(User.role == role)

        total = (await self.session.execute(
            select(func.count()).select_from(statement.subquery())
        )).scalar_one()
        result = await self.session.execute(
            statement.order_by(User.created_at.desc()).offset(params.offset).limit(params.limit)
        )
        return list(result.scalars().all()), total

    async def create_user(self, actor: CurrentUser, tenant: Optional[Tenant], data: UserCreate) -> User:
        """
        Create a user inside the actor's scope.

        Active users take a seat from the tenant and the company in the same
        transaction as the insert.
        """
        if not can_assign_role(actor, data.role):
            logger.warning("role_escalation_denied", user_id=str(actor.id), requested_role=data.role.value)
            raise AuthorizationError(f"You cannot assign the role '{data.role.value}'")

        tenant_id, company_id = await resolve_owner(self.session, actor, tenant, data.company_id, data.tenant_id)

        if await get_role(self.session, data.role) is None:
            raise ValidationFailed(
                "Invalid role specified",
                errors=[{"field": "role", "message": "Role not found", "value": data.role.value}],
            )
        await self.ensure_email_available(data.email)

        if data.is_active:
            await quotas.reserve_user_seat(self.session, tenant_id, company_id)

        user = User(
            tenant_id=tenant_id,
            company_id=company_id,
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=data.role,
            is_active=data.is_active,
            created_by_id=actor.id,
        )
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info("user_created", user_id=str(user.id), tenant_id=str(tenant_id), role=user.role.value,
                    created_by=str(actor.id))
        return user

    def _authorize_update(self, actor: CurrentUser, target: User, changes: dict) -> None:
        is_self = actor.id == target.id
        if not (actor.is_super_admin or is_self or (
            actor.role in EDITOR_ROLES and same_scope(actor, target.tenant_id, target.company_id)
        )):
            raise AuthorizationError("Access denied")
        if not is_self and _outranks(actor, target):
            raise AuthorizationError("Access denied. You cannot modify a user with a higher role")

        for field in SENSITIVE_FIELDS:
            if field not in changes or changes[field] == getattr(target, field):
                continue
            if is_self and field in ("role", "is_active"):
                logger.warning("self_modification_denied", user_id=str(actor.id), field=field)
                raise AuthorizationError("You cannot change your own role or active status")
            if not actor.is_privileged:
                logger.warning("privileged_field_denied", user_id=str(actor.id), field=field)
                raise AuthorizationError(f"Access denied. Your role cannot change '{field}'")

        if "role" in changes and changes["role"] is not None and not can_assign_role(actor, changes["role"]):
            raise AuthorizationError(f"You cannot assign the role '{RoleName(changes['role']).value}'")

    async def update_user(self, actor: CurrentUser, user_id: uuid.UUID, data: UserUpdate) -> User:
        target = await self.session.get(User, user_id)
        if target is None:
            raise NotFoundError("User not found")

        changes = data.model_dump(exclude_unset=True)
        self._authorize_update(actor, target, changes)

        if changes.get("email") and changes["email"].lower() != target.email:
            await self.ensure_email_available(changes["email"], exclude_id=target.id)
            changes["email"] = changes["email"].lower()

        if "role" in changes:
            if changes["role"] is None:
                changes.pop("role")
            elif await get_role(self.session, changes["role"]) is None:
                raise ValidationFailed("Invalid role specified")

        new_company_id = changes.pop("company_id", target.company_id)
        if new_company_id != target.company_id:
            if new_company_id is not None:
                await get_company_in_tenant(self.session, new_company_id, target.tenant_id)
                if actor.role == RoleName.COMPANY_ADMIN and new_company_id != actor.company_id:
                    raise AuthorizationError("Access denied. You can only access your company data")
            if target.is_active:
                if target.company_id is not None:
                    await quotas.release_company_seat(self.session, target.company_id)
                if new_company_id is not None:
                    await quotas.reserve_company_seat(self.session, new_company_id)
            target.company_id = new_company_id

        is_active = changes.pop("is_active", None)
        if is_active is not None and is_active != target.is_active:
            if is_active:
                await quotas.reserve_user_seat(self.session, target.tenant_id, target.company_id)
            else:
                await quotas.release_user_seat(self.session, target.tenant_id, target.company_id)
            target.is_active = is_active

        for key, value in changes.items():
            setattr(target, key, value)
        target.updated_at = datetime.utcnow()

        self.session.add(target)
        await self.session.commit()
        await self.session.refresh(target)
        logger.info("user_updated", user_id=str(target.id), updated_by=str(actor.id), fields=sorted(data.model_fields_set))
        return target

    async def _get_for_lifecycle(self, actor: CurrentUser, user_id: uuid.UUID) -> User:
        target = await self.session.get(User, user_id)
        if target is None:
            raise NotFoundError("User not found")
        if not (actor.is_super_admin or (
            actor.role in DELETER_ROLES and same_scope(actor, target.tenant_id, target.company_id)
        )):
            raise AuthorizationError("Access denied")
        if _outranks(actor, target):
            raise AuthorizationError("Access denied. You cannot modify a user with a higher role")
        return target

    async def deactivate_user(self, actor: CurrentUser, user_id: uuid.UUID) -> User:
        """Soft delete: clear is_active and give the seat back"""
        if user_id == actor.id:
            raise StateError("You cannot delete your own account")

        target = await self._get_for_lifecycle(actor, user_id)
        if not target.is_active:
            raise StateError("User is already deactivated")

        await quotas.release_user_seat(self.session, target.tenant_id, target.company_id)
        target.is_active = False
        target.updated_at = datetime.utcnow()
        self.session.add(target)
        await self.session.commit()

        logger.info("user_deactivated", user_id=str(target.id), deactivated_by=str(actor.id))
        return target

    async def activate_user(self, actor: CurrentUser, user_id: uuid.UUID) -> User:
        target = await self._get_for_lifecycle(actor, user_id)
        if target.is_active:
            raise StateError("User is already active")

        await quotas.reserve_user_seat(self.session, target.tenant_id, target.company_id)
        target.is_active = True
        target.reset_login_attempts()
        target.updated_at = datetime.utcnow()
        self.session.add(target)
        await self.session.commit()

        logger.info("user_activated", user_id=str(target.id), activated_by=str(actor.id))
        return target
