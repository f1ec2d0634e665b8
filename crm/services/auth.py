"""
Registration, login with lockout, profile and password management
"""

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
import structlog

from crm.core.auth import create_access_token, hash_password, verify_password
from crm.core.config import Settings
from crm.core.exceptions import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    TenantAccessError,
    TenantNotIdentifiedError,
)
from crm.core.permissions import CurrentUser, RoleName
from crm.models.company import Company
from crm.models.tenant import Tenant, TenantPlan, TenantStatus
from crm.models.user import User
from crm.schemas.user import LoginRequest, PasswordChange, ProfileUpdate, RegisterRequest
from crm.services import quotas
from crm.services.users import UserService

logger = structlog.get_logger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.tenant_id, user.role.value)


class AuthService:
    """Authentication flows"""

    def __init__(self, session: AsyncSession, settings: Settings):
        self.session = session
        self.settings = settings
        self.users = UserService(session)

    async def register(self, data: RegisterRequest) -> Tuple[User, Tenant, str]:
        """
        Create a trial tenant, an optional company and its tenant_admin.

        Everything is written in one transaction, seats included.
        """
        result = await self.session.execute(select(Tenant).where(Tenant.subdomain == data.subdomain))
        if result.scalars().first() is not None:
            raise ConflictError("Subdomain is already taken", code="DUPLICATE_VALUE", field="subdomain")
        result = await self.session.execute(select(Tenant).where(Tenant.email == data.email.lower()))
        if result.scalars().first() is not None:
            raise ConflictError("A tenant with this email already exists", code="DUPLICATE_VALUE", field="email")
        await self.users.ensure_email_available(data.email)

        tenant = Tenant(
            name=data.tenant_name,
            subdomain=data.subdomain,
            email=data.email.lower(),
            phone=data.phone,
            industry=data.industry,
            plan=TenantPlan.TRIAL,
        )
        self.session.add(tenant)
        await self.session.flush()

        company = None
        if data.company_name:
            company = Company(
                tenant_id=tenant.id,
                name=data.company_name,
                email=data.email.lower(),
                phone=data.phone,
                industry=data.industry,
            )
            self.session.add(company)
            await self.session.flush()

        user = User(
            tenant_id=tenant.id,
            company_id=company.id if company else None,
            email=data.email.lower(),
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=RoleName.TENANT_ADMIN,
        )
        self.session.add(user)
        await self.session.flush()

        await quotas.reserve_user_seat(self.session, tenant.id, company.id if company else None)
        tenant.admin_user_id = user.id
        if company is not None:
            company.created_by_id = user.id
        await self.session.commit()
        await self.session.refresh(tenant)
        await self.session.refresh(user)

        logger.info("tenant_registered", tenant_id=str(tenant.id), subdomain=tenant.subdomain, user_id=str(user.id))
        return user, tenant, issue_token(user)

    async def login(
        self,
        data: LoginRequest,
        tenant: Optional[Tenant] = None,
        tenant_required: bool = False,
    ) -> Tuple[User, Optional[Tenant], str]:
        """
        Verify credentials.

        Order of checks: unknown email, inactive user, request tenant,
        tenant status and trial, inactive company, lock, password. A wrong
        password counts towards the lockout threshold and is committed before
        failing. tenant_required is set for non-development hosts, where only
        super_admin may log in without a resolved tenant.
        """
        user = await self.users.get_by_email(data.email)
        if user is None:
            logger.warning("login_failed", email=data.email.lower(), reason="unknown_email")
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            logger.warning("login_failed", user_id=str(user.id), reason="inactive")
            raise AuthenticationError("Account is deactivated")

        is_super_admin = user.role == RoleName.SUPER_ADMIN
        if tenant is None and tenant_required and not is_super_admin:
            logger.warning("login_failed", user_id=str(user.id), reason="tenant_not_identified")
            raise TenantNotIdentifiedError(
                "Tenant not identified. Please ensure you are accessing the correct subdomain."
            )
        if not is_super_admin and tenant is not None and tenant.id != user.tenant_id:
            logger.warning("login_failed", user_id=str(user.id), reason="tenant_mismatch", tenant_id=str(tenant.id))
            raise AuthenticationError("Invalid credentials")

        user_tenant = await self.session.get(Tenant, user.tenant_id)
        if not is_super_admin and user_tenant is not None:
            if user_tenant.status != TenantStatus.ACTIVE:
                logger.warning("login_failed", user_id=str(user.id), reason="tenant_inactive",
                               tenant_status=user_tenant.status.value)
                raise TenantAccessError(
                    f"Tenant account is {user_tenant.status.value}",
                    tenant_status=user_tenant.status.value,
                )
            if user_tenant.is_trial_expired:
                logger.warning("login_failed", user_id=str(user.id), reason="trial_expired")
                raise TenantAccessError(
                    "Trial period has expired. Please upgrade your plan.",
                    tenant_status=TenantStatus.TRIAL_EXPIRED.value,
                    code="TRIAL_EXPIRED",
                )

        if user.company_id is not None:
            company = await self.session.get(Company, user.company_id)
            if company is not None and not company.is_active:
                logger.warning("login_failed", user_id=str(user.id), reason="company_inactive")
                raise AuthenticationError("Company account is suspended")

        if user.is_locked:
            logger.warning("login_failed", user_id=str(user.id), reason="locked", lock_until=user.lock_until.isoformat())
            raise AccountLockedError("Account is temporarily locked due to too many failed login attempts")

        if not verify_password(data.password, user.password_hash):
            locked = user.register_failed_login(self.settings.MAX_LOGIN_ATTEMPTS, self.settings.LOCK_TIME_MINUTES)
            self.session.add(user)
            await self.session.commit()
            if locked:
                logger.warning("account_locked", user_id=str(user.id), attempts=user.login_attempts,
                               lock_until=user.lock_until.isoformat())
            else:
                logger.warning("login_failed", user_id=str(user.id), reason="bad_password", attempts=user.login_attempts)
            raise AuthenticationError("Invalid credentials")

        user.reset_login_attempts()
        user.last_login_at = datetime.utcnow()
        self.session.add(user)
        await self.session.commit()

        logger.info("login_succeeded", user_id=str(user.id), tenant_id=str(user.tenant_id))
        return user, user_tenant, issue_token(user)

    async def update_profile(self, current_user: CurrentUser, data: ProfileUpdate) -> User:
        user = await self.session.get(User, current_user.id)
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(user, key, value)
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def change_password(self, current_user: CurrentUser, data: PasswordChange) -> str:
        user = await self.session.get(User, current_user.id)
        if not verify_password(data.current_password, user.password_hash):
            logger.warning("password_change_failed", user_id=str(user.id))
            raise AuthenticationError("Password is incorrect")

        user.password_hash = hash_password(data.new_password)
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        await self.session.commit()
        logger.info("password_changed", user_id=str(user.id))
        return issue_token(user)
