# casegate/domains/navigation/routes.py
from typing import Optional

from fastapi import APIRouter, Depends

from casegate.domains.auth.dependencies import (
    get_current_session,
    get_optional_session,
)
from casegate.domains.auth.service import Session
from casegate.domains.navigation.dependencies import get_navigation_gate
from casegate.domains.navigation.models import (
    GuardDecision,
    ModuleAccessResponse,
    NavigationResponse,
    RedirectResponse,
    ResolveRouteRequest,
)
from casegate.domains.navigation.service import NavigationGate

router = APIRouter(prefix="/navigation", tags=["Navigation"])


@router.get(
    "",
    response_model=NavigationResponse,
    operation_id="getNavigation",
)
async def get_navigation(
    session: Session = Depends(get_current_session),
    gate: NavigationGate = Depends(get_navigation_gate),
) -> NavigationResponse:
    """Sidebar entries and admin sections visible to the current user."""
    await session.store.permissions_ready()
    return NavigationResponse(
        items=gate.filter_navigation(session.store),
        admin_sections=gate.filter_admin_sections(session.store),
    )


@router.get(
    "/redirect",
    response_model=RedirectResponse,
    operation_id="getLandingPage",
)
async def get_landing_page(
    session: Optional[Session] = Depends(get_optional_session),
    gate: NavigationGate = Depends(get_navigation_gate),
) -> RedirectResponse:
    return RedirectResponse(path=await gate.smart_redirect(session))


@router.post(
    "/resolve",
    response_model=GuardDecision,
    operation_id="resolveRoute",
)
async def resolve_route(
    request: ResolveRouteRequest,
    session: Optional[Session] = Depends(get_optional_session),
    gate: NavigationGate = Depends(get_navigation_gate),
) -> GuardDecision:
    """Allow or redirect decision for a client path."""
    return await gate.resolve_path(session, request.path)


@router.get(
    "/modules/{module}",
    response_model=ModuleAccessResponse,
    operation_id="getModuleAccess",
)
async def get_module_access(
    module: str,
    session: Session = Depends(get_current_session),
) -> ModuleAccessResponse:
    return ModuleAccessResponse(
        module=module.lower(),
        has_access=await session.store.can_access_module_async(module),
        is_public=session.store.registry.is_public(module),
    )
