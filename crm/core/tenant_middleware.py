"""
Tenant context middleware and tenant resolution for multi-tenant isolation

The middleware only extracts hints from the request (subdomain, tenant
header, super-admin route). TenantResolver turns those hints into a Tenant
row and enforces tenant status; it is driven by the dependencies in
crm.core.dependencies so that the authenticated user can serve as the last
fallback.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional
import uuid

from fastapi import Request
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

from crm.core.config import Settings, get_settings
from crm.core.database import Database
from crm.core.exceptions import TenantAccessError
from crm.core.permissions import CurrentUser
from crm.models.tenant import Tenant, TenantStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TenantHint:
    """What the request itself says about its tenant"""
    host: str = ""
    subdomain: Optional[str] = None
    header_tenant_id: Optional[str] = None
    super_admin_route: bool = False
    dev_host: bool = False


def strip_port(host: str) -> str:
    host = (host or "").strip().lower()
    if host.startswith("["):
        # IPv6 literal, e.g. [::1]:8000
        return host[1:].split("]", 1)[0]
    if host.count(":") == 1:
        return host.split(":", 1)[0]
    return host


def extract_subdomain(host: str, reserved: list[str], base_domain: Optional[str] = None) -> Optional[str]:
    """First label of the host, unless it is reserved, the bare base domain or an IP"""
    hostname = strip_port(host)
    if not hostname or ":" in hostname or hostname == base_domain:
        return None
    label = hostname.split(".", 1)[0]
    if not label or label in reserved or label.isdigit():
        return None
    return label


def is_dev_host(host: str, dev_hosts: list[str]) -> bool:
    return strip_port(host) in dev_hosts


def build_tenant_hint(request: Request, settings: Settings) -> TenantHint:
    host = request.headers.get("host") or request.headers.get("x-forwarded-host") or ""
    return TenantHint(
        host=host,
        subdomain=extract_subdomain(host, settings.RESERVED_SUBDOMAINS, settings.BASE_DOMAIN),
        header_tenant_id=request.headers.get(settings.TENANT_HEADER),
        super_admin_route=request.url.path.startswith(settings.SUPER_ADMIN_PREFIX),
        dev_host=is_dev_host(host, settings.DEV_HOSTS),
    )


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Middleware to extract tenant hints into request state"""

    def __init__(self, app, settings: Optional[Settings] = None):
        super().__init__(app)
        self.settings = settings or get_settings()

    async def dispatch(self, request: Request, call_next: Callable):
        hint = build_tenant_hint(request, self.settings)
        request.state.tenant_hint = hint
        request.state.tenant = None

        logger.debug(
            "tenant_context",
            host=hint.host,
            subdomain=hint.subdomain,
            header_tenant_id=hint.header_tenant_id,
            super_admin_route=hint.super_admin_route,
        )

        response = await call_next(request)
        return response


def get_tenant_hint(request: Request) -> TenantHint:
    hint = getattr(request.state, "tenant_hint", None)
    if hint is None:
        # Middleware not installed (bare routers in tests)
        hint = build_tenant_hint(request, get_settings())
        request.state.tenant_hint = hint
    return hint


def ensure_tenant_operational(tenant: Tenant) -> None:
    """Reject tenants that are not active or whose trial is over"""
    if tenant.status != TenantStatus.ACTIVE:
        logger.warning("tenant_rejected", tenant_id=str(tenant.id), tenant_status=tenant.status.value)
        raise TenantAccessError(
            f"Tenant account is {tenant.status.value}",
            tenant_status=tenant.status.value,
        )
    if tenant.is_trial_expired:
        logger.warning("tenant_trial_expired", tenant_id=str(tenant.id), trial_end=tenant.trial_end.isoformat())
        raise TenantAccessError(
            "Trial period has expired. Please upgrade your plan.",
            tenant_status=TenantStatus.TRIAL_EXPIRED.value,
            code="TRIAL_EXPIRED",
        )


class TenantResolver:
    """Resolve the active tenant: subdomain, then header, then the user's own tenant"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def by_subdomain(self, subdomain: str) -> Optional[Tenant]:
        result = await self.session.execute(select(Tenant).where(Tenant.subdomain == subdomain.lower()))
        return result.scalars().first()

    async def by_id(self, tenant_id) -> Optional[Tenant]:
        if not isinstance(tenant_id, uuid.UUID):
            try:
                tenant_id = uuid.UUID(str(tenant_id))
            except ValueError:
                logger.debug("invalid_tenant_header", value=str(tenant_id))
                return None
        return await self.session.get(Tenant, tenant_id)

    async def resolve(self, hint: TenantHint, user: Optional[CurrentUser] = None) -> Optional[Tenant]:
        if hint.super_admin_route:
            return None

        tenant = None
        source = None
        if hint.subdomain:
            tenant = await self.by_subdomain(hint.subdomain)
            source = "subdomain"
        if tenant is None and hint.header_tenant_id:
            tenant = await self.by_id(hint.header_tenant_id)
            source = "header"
        # super_admin acts globally and never inherits an implicit tenant
        if tenant is None and user is not None and not user.is_super_admin and user.tenant_id:
            tenant = await self.by_id(user.tenant_id)
            source = "user"

        if tenant is None:
            return None

        ensure_tenant_operational(tenant)
        logger.debug("tenant_resolved", tenant_id=str(tenant.id), source=source)
        return tenant


async def touch_tenant_activity(database: Database, tenant_id: uuid.UUID) -> None:
    """Record tenant activity after the response has been sent"""
    try:
        async with database.session() as session:
            await session.execute(
                update(Tenant).where(Tenant.id == tenant_id).values(last_activity_at=datetime.utcnow())
            )
            await session.commit()
    except SQLAlchemyError as e:
        logger.error("tenant_activity_update_failed", tenant_id=str(tenant_id), error=str(e))
