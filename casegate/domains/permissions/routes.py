# casegate/domains/permissions/routes.py
import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from casegate.domains.auth.dependencies import get_current_session
from casegate.domains.auth.service import Session
from casegate.domains.navigation.dependencies import require_route
from casegate.domains.navigation.models import RouteRule
from casegate.domains.permissions.models import (
    CatalogIssueResponse,
    CatalogResponse,
    ModuleStructure,
    PermissionCheckRequest,
    PermissionCheckResponse,
    ScopeCheckRequest,
    ScopeCheckResponse,
    ScopeSummaryResponse,
)
from casegate.shared.exceptions import SessionNotFoundError, UpstreamConnectionError
from casegate.shared.permissions.catalog import PermissionCatalog
from casegate.shared.permissions.dependencies import (
    get_scope_resolver,
    require_permission,
)
from casegate.shared.permissions.exceptions import (
    AuthExpiredError,
    ConfigMismatchError,
    PermissionNetworkError,
)
from casegate.shared.permissions.models import Permission, Scope
from casegate.shared.permissions.scope import ScopeResolver

router = APIRouter(prefix="/permissions", tags=["Permissions"])


@router.post(
    "/check",
    response_model=PermissionCheckResponse,
    operation_id="checkPermissions",
)
async def check_permissions(
    request: PermissionCheckRequest,
    session: Session = Depends(get_current_session),
) -> PermissionCheckResponse:
    """
    Answer a batch of permission and module questions.

    Cached answers are returned unless `fresh` is set, in which case stale
    entries are re-checked upstream first.
    """
    store = session.store
    if request.fresh:
        permission_results = await asyncio.gather(
            *(store.has_permission_async(name) for name in request.permissions)
        )
        module_results = await asyncio.gather(
            *(store.can_access_module_async(module) for module in request.modules)
        )
    else:
        permission_results = [store.has_permission(n) for n in request.permissions]
        module_results = [store.can_access_module(m) for m in request.modules]

    return PermissionCheckResponse(
        permissions=dict(zip(request.permissions, permission_results)),
        modules=dict(zip(request.modules, module_results)),
    )


@router.post(
    "/scope",
    response_model=ScopeCheckResponse,
    operation_id="checkScopePermission",
)
async def check_scope_permission(
    request: ScopeCheckRequest,
    resolver: ScopeResolver = Depends(get_scope_resolver),
) -> ScopeCheckResponse:
    return ScopeCheckResponse(
        allowed=resolver.check_scope_permission(
            request.resource, request.action, request.target_user_id
        ),
        highest_scope=resolver.highest_scope(request.resource, request.action),
    )


@router.get(
    "/scope/{resource}/{action}",
    response_model=ScopeSummaryResponse,
    operation_id="getHighestScope",
)
async def get_highest_scope(
    resource: str,
    action: str,
    resolver: ScopeResolver = Depends(get_scope_resolver),
) -> ScopeSummaryResponse:
    return ScopeSummaryResponse(
        resource=resource,
        action=action,
        highest_scope=resolver.highest_scope(resource, action),
        can_perform=resolver.can_perform(resource, action),
    )


@router.get(
    "/features",
    response_model=dict[str, bool],
    operation_id="getFeaturePermissions",
)
async def get_feature_permissions(
    resolver: ScopeResolver = Depends(get_scope_resolver),
) -> dict[str, bool]:
    """Feature flags used by the client to enable buttons."""
    return resolver.feature_permissions()


@router.get(
    "/catalog",
    response_model=CatalogResponse,
    operation_id="getPermissionCatalog",
)
async def get_permission_catalog(
    request: Request,
    module: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    scope: Optional[Scope] = Query(None),
    session: Session = Depends(
        require_route(RouteRule(path="/permissions/catalog", admin_only=True))
    ),
) -> CatalogResponse:
    """
    Upstream permission catalog with the gateway's declaration issues.
    Administrators only.
    """
    catalog = await _load_catalog(session)

    declared = getattr(request.app.state, "declared_permissions", {})
    return CatalogResponse(
        permissions=catalog.search(module, action, scope),
        structure={
            name: ModuleStructure(**details)
            for name, details in catalog.structure().items()
        },
        issues=[
            CatalogIssueResponse(source=i.source, name=i.name, problem=i.problem)
            for i in catalog.validate(declared)
        ],
    )


@router.get(
    "/catalog/modules/{module}",
    response_model=List[Permission],
    operation_id="getModulePermissions",
)
async def get_module_permissions(
    module: str,
    session: Session = Depends(require_permission("permissions.read.all")),
) -> List[Permission]:
    """Active catalog permissions of one module, for the permission manager."""
    catalog = await _load_catalog(session)
    return catalog.by_module(module)


async def _load_catalog(session: Session) -> PermissionCatalog:
    try:
        return PermissionCatalog(await session.store.transport.list_permissions())
    except AuthExpiredError:
        await session.expire()
        raise SessionNotFoundError()
    except (PermissionNetworkError, ConfigMismatchError) as e:
        raise UpstreamConnectionError(str(e))
