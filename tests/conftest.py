"""
Test configuration for pytest
"""

import os
from datetime import datetime, timedelta
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Test environment variables
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["DEBUG"] = "false"

from crm.core.auth import hash_password  # noqa: E402
from crm.core.config import get_settings  # noqa: E402
from crm.core.database import Database  # noqa: E402
from crm.core.permissions import RoleName  # noqa: E402
from crm.main import create_app  # noqa: E402
from crm.models.company import Company  # noqa: E402
from crm.models.tenant import Tenant, TenantPlan, TenantStatus  # noqa: E402
from crm.models.user import User  # noqa: E402
from crm.services.auth import issue_token  # noqa: E402
from crm.services.roles import ensure_system_roles  # noqa: E402

PASSWORD = "secret123"


class Factory:
    """Inserts fixtures straight into the database, bypassing the API"""

    password = PASSWORD

    def __init__(self, database: Database):
        self.database = database

    async def tenant(
        self,
        subdomain: str = "acme",
        status: TenantStatus = TenantStatus.ACTIVE,
        plan: TenantPlan = TenantPlan.PROFESSIONAL,
        **kwargs,
    ) -> Tenant:
        kwargs.setdefault("name", subdomain.capitalize())
        kwargs.setdefault("email", f"owner@{subdomain}.io")
        tenant = Tenant(subdomain=subdomain, status=status, plan=plan, **kwargs)
        async with self.database.session() as session:
            session.add(tenant)
            await session.commit()
            await session.refresh(tenant)
        return tenant

    async def expired_trial_tenant(self, subdomain: str = "lapsed") -> Tenant:
        return await self.tenant(
            subdomain=subdomain,
            plan=TenantPlan.TRIAL,
            trial_start=datetime.utcnow() - timedelta(days=30),
            trial_end=datetime.utcnow() - timedelta(days=1),
        )

    async def company(self, tenant: Tenant, name: str = "Sales", **kwargs) -> Company:
        kwargs.setdefault("email", f"{name.lower()}@{tenant.subdomain}.io")
        company = Company(tenant_id=tenant.id, name=name, **kwargs)
        async with self.database.session() as session:
            session.add(company)
            await session.commit()
            await session.refresh(company)
        return company

    async def user(
        self,
        tenant: Tenant,
        role: RoleName = RoleName.USER,
        company: Optional[Company] = None,
        email: Optional[str] = None,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        """Create a user; active users take a seat like they would through the API"""
        user = User(
            tenant_id=tenant.id,
            company_id=company.id if company else None,
            email=email or f"{role.value}.{os.urandom(3).hex()}@{tenant.subdomain}.io",
            password_hash=hash_password(kwargs.pop("password", PASSWORD)),
            first_name=kwargs.pop("first_name", "Test"),
            last_name=kwargs.pop("last_name", role.value.replace("_", " ").title()),
            role=role,
            is_active=is_active,
            **kwargs,
        )
        async with self.database.session() as session:
            session.add(user)
            if is_active:
                db_tenant = await session.get(Tenant, tenant.id)
                db_tenant.current_users += 1
                session.add(db_tenant)
                if company is not None:
                    db_company = await session.get(Company, company.id)
                    db_company.current_users += 1
                    session.add(db_company)
            await session.commit()
            await session.refresh(user)
        return user

    async def get(self, model, record_id):
        """Fresh copy of a row from its own session"""
        async with self.database.session() as session:
            return await session.get(model, record_id)


def auth_headers(user: User, host: Optional[str] = None) -> dict:
    headers = {"Authorization": f"Bearer {issue_token(user)}"}
    if host:
        headers["Host"] = host
    return headers


@pytest_asyncio.fixture
async def database(tmp_path):
    """File backed SQLite so background tasks can open their own connection"""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}")
    await db.create_all()
    async with db.session() as session:
        await ensure_system_roles(session)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def factory(database) -> Factory:
    return Factory(database)


@pytest.fixture
def app(database):
    return create_app(get_settings(), database)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as ac:
        yield ac


@pytest.fixture
def auth():
    """Build Authorization (and optional Host) headers for a user"""
    return auth_headers
