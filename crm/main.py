"""
Tenant CRM - Main Application Entry Point
Multi-tenant CRM backend with tenant-scoped access control
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging
import structlog

from crm.core.config import Settings, get_settings
from crm.core.database import Database
from crm.core.exceptions import setup_exception_handlers
from crm.core.tenant_middleware import TenantContextMiddleware
from crm.api import auth, users, roles, companies, clients, leads, tenant, super_admin
from crm.services.roles import ensure_system_roles

logger = structlog.get_logger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure structured logging"""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the application around an explicit settings object and database handle"""
    settings = settings or get_settings()
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        # Startup
        logger.info("Initializing Tenant CRM backend", environment=settings.ENVIRONMENT)
        async with app.state.database.session() as session:
            await ensure_system_roles(session)

        yield

        # Shutdown
        logger.info("Shutting down Tenant CRM backend")
        await app.state.database.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Multi-tenant CRM with tenant and company scoped access control",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings.DATABASE_URL, echo=False)

    # Configure middleware stack
    app.add_middleware(TenantContextMiddleware, settings=settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    setup_exception_handlers(app, debug=settings.DEBUG)

    # Include routers
    prefix = settings.API_PREFIX
    app.include_router(super_admin.router, prefix=settings.SUPER_ADMIN_PREFIX, tags=["super-admin"])
    app.include_router(tenant.router, prefix=f"{prefix}/tenant", tags=["tenant"])
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
    app.include_router(companies.router, prefix=f"{prefix}/companies", tags=["companies"])
    app.include_router(users.router, prefix=f"{prefix}/users", tags=["users"])
    app.include_router(clients.router, prefix=f"{prefix}/clients", tags=["clients"])
    app.include_router(leads.router, prefix=f"{prefix}/leads", tags=["leads"])
    app.include_router(roles.router, prefix=f"{prefix}/roles", tags=["roles"])

    @app.get("/health")
    @app.get(f"{prefix}/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "success": True,
            "status": "healthy",
            "service": "tenant-crm-api",
            "timestamp": datetime.utcnow().isoformat(),
        }

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Tenant CRM API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "crm.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().ENVIRONMENT == "development",
        log_level="info",
    )
