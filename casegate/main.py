import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from casegate.core.logging import configure_logging
from casegate.core.settings import settings
from casegate.domains.auth.routes import router as auth_router
from casegate.domains.auth.service import SessionRegistry, SessionService
from casegate.domains.navigation.registry import declared_permissions
from casegate.domains.navigation.routes import router as navigation_router
from casegate.domains.navigation.service import NavigationGate
from casegate.domains.permissions.routes import router as permissions_router
from casegate.shared.permissions.catalog import check_format, report_issues
from casegate.shared.permissions.modules import MODULE_PERMISSIONS, ModuleRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    configure_logging()
    modules = ModuleRegistry(MODULE_PERMISSIONS, settings.public_modules)
    declarations = declared_permissions(modules)
    report_issues(check_format(declarations), strict=settings.PERMISSION_STRICT_CATALOG)

    gate = NavigationGate(settings.ADMIN_ROLE_NAME)
    subscribed_permissions, subscribed_modules = gate.subscriptions()
    sessions = SessionRegistry()

    app.state.module_registry = modules
    app.state.declared_permissions = declarations
    app.state.navigation_gate = gate
    app.state.session_registry = sessions
    app.state.session_service = SessionService(
        sessions,
        modules,
        subscribed_permissions=subscribed_permissions,
        subscribed_modules=subscribed_modules,
        declarations=declarations,
        validate_catalog=settings.VALIDATE_CATALOG_ON_LOGIN,
    )
    logger.info("casegate started against %s", settings.UPSTREAM_API_URL)
    yield
    # Shutdown
    await sessions.close_all()


app = FastAPI(
    title="casegate",
    description="Permission-aware gateway for the case-management application",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL] if settings.FRONTEND_URL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(navigation_router, prefix="/api/v1")
app.include_router(permissions_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "casegate is running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
